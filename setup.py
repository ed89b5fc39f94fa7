"""Setup script for Rebate Finder."""

from setuptools import setup
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="rebate-finder",
    version="1.0.0",
    description="Energy rebate program finder with a persistent search + analysis cache",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Rebate Finder contributors",
    packages=[
        "workflows",
        "workflows.rebate_search",
        "tools",
        "tools.research",
        "tools.utils",
        "engine",
        "providers",
        "ui",
        "ui.web",
    ],
    py_modules=[
        "main",
        "web_main",
        "config",
        "llm_client",
    ],
    entry_points={
        "console_scripts": [
            "rebate-finder=main:main",
        ],
    },
    install_requires=[
        "requests>=2.28.0",
        "rich>=13.0.0",
        "ddgs>=9.0.0",
        "flask>=2.0.0",
        "google-auth>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
