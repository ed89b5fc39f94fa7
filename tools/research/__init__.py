"""
Research tools.

Provides web search for the rebate pipeline.
"""

from tools.research.web_search import web_search

__all__ = [
    "web_search",
]
