"""Configuration constants and settings."""

import os
from pathlib import Path

# LLM API Configuration (OpenAI-compatible chat completions)
API_URL = os.getenv("REBATE_LLM_API_URL", "https://api.openai.com/v1/chat/completions")
API_KEY = os.getenv("OPENAI_API_KEY")
MODEL = os.getenv("REBATE_LLM_MODEL", "gpt-3.5-turbo-1106")
MAX_TOKENS = 2000
TIMEOUT = 25  # Seconds, analysis has to fit inside a single request
TEMPERATURE = 0.3

# Web search (Google Custom Search JSON API, DuckDuckGo fallback)
GOOGLE_SEARCH = {
    "endpoint": "https://www.googleapis.com/customsearch/v1",
    "api_key": os.getenv("GOOGLE_API_KEY"),
    "engine_id": os.getenv("GOOGLE_SEARCH_ENGINE_ID"),
    "results_per_query": 7,
    "timeout": 15,
    "enabled": True,
}

# In-process search result cache (per normalized query)
SEARCH_CACHE = {
    "max_entries": 200,
    "ttl_hours": 6,
}

# Result cache
GOOGLE_SHEETS = {
    "spreadsheet_id": os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID"),
    "credentials": os.getenv("GOOGLE_SHEETS_CREDENTIALS"),  # Service account JSON
    "credentials_file": os.getenv("GOOGLE_SHEETS_CREDENTIALS_FILE"),
    "sheet_name": "Cache",
    "timeout": 30,
}

CACHE_BACKEND = os.getenv(
    "REBATE_CACHE_BACKEND",
    "sheets" if GOOGLE_SHEETS["spreadsheet_id"] else "local",
).lower()
CACHE_TTL_HOURS = int(os.getenv("REBATE_CACHE_TTL_HOURS", "336"))  # 14 days
CACHE_DB_PATH = Path(os.getenv("REBATE_CACHE_DB", str(Path.home() / ".rebate_finder" / "cache.db")))
CANONICAL_QUERIES = os.getenv("REBATE_CANONICAL_QUERIES", "true").lower() == "true"
BACKGROUND_WRITE_WORKERS = 2

# Logging Configuration
import logging
LOGGING_LEVEL = logging.INFO
LOGGING_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = Path(os.getenv("REBATE_LOG_FILE", str(Path(__file__).parent / "rebate_finder.log")))

# Web Configuration
WEB_HOST = os.getenv("REBATE_WEB_HOST", "localhost")
WEB_PORT = int(os.getenv("REBATE_WEB_PORT", "5000"))

# UI Configuration
UI_NO_COLOR = False  # Accessibility mode (respects NO_COLOR env var)
