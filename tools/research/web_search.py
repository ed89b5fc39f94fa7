"""Web search tool - Google Custom Search API with DuckDuckGo fallback."""

import logging
import time
import warnings
from typing import List, Dict, Any, Optional, Tuple

import requests
import config

from tools.utils._search_cache import get_search_cache

logger = logging.getLogger(__name__)


def _google_search_raw(query: str, max_results: int = 7) -> List[Dict[str, Any]]:
    """
    Search using the Google Custom Search JSON API and return raw results.

    Args:
        query: Search query
        max_results: Number of results (API maximum is 10)

    Returns:
        List of {title, link, snippet} dicts

    Raises:
        requests.RequestException: On HTTP or network failure
    """
    logger.info(f"Google Search API call: {query[:100]}...")

    params = {
        "key": config.GOOGLE_SEARCH["api_key"],
        "cx": config.GOOGLE_SEARCH["engine_id"],
        "q": query,
        "num": min(max_results, 10),
    }

    response = requests.get(
        config.GOOGLE_SEARCH["endpoint"],
        params=params,
        timeout=config.GOOGLE_SEARCH["timeout"]
    )
    response.raise_for_status()

    data = response.json()
    items = data.get("items", [])
    total = data.get("searchInformation", {}).get("totalResults")

    if not items:
        logger.warning(f"Google Search returned no results for query: {query[:60]}...")
        return []

    standardized = []
    for item in items:
        standardized.append({
            "title": item.get("title", "No title"),
            "link": item.get("link", ""),
            "snippet": item.get("snippet", ""),
        })

    logger.info(f"Google Search returned {len(standardized)} of {total} results for: {query[:60]}...")
    return standardized


def _duckduckgo_search_raw(query: str, max_results: int = 7) -> List[Dict[str, Any]]:
    """
    Search using DuckDuckGo and return raw results.

    Args:
        query: Search query
        max_results: Number of results

    Returns:
        List of {title, link, snippet} dicts
    """
    from ddgs import DDGS

    max_retries = 3
    retry_delay = 2

    for attempt in range(max_retries):
        try:
            logger.info(f"DuckDuckGo search: {query[:100]}... (attempt {attempt + 1}/{max_retries})")

            if attempt > 0:
                time.sleep(retry_delay * attempt)

            # Suppress SSL/TLS warnings from ddgs library
            with warnings.catch_warnings():
                warnings.filterwarnings("ignore", message=".*protocol version.*")
                with DDGS() as ddgs:
                    results = list(ddgs.text(query, max_results=max_results))

            if not results:
                logger.warning(f"DuckDuckGo returned no results for query: {query[:60]}... (attempt {attempt + 1})")
                if attempt < max_retries - 1:
                    continue
                return []

            standardized = []
            for result in results:
                standardized.append({
                    "title": result.get("title", "No title"),
                    "link": result.get("href", ""),
                    "snippet": result.get("body", ""),
                })

            logger.info(f"DuckDuckGo returned {len(standardized)} results for: {query[:60]}...")
            return standardized

        except Exception as e:
            logger.warning(f"DuckDuckGo search attempt {attempt + 1} failed: {e}")
            if attempt < max_retries - 1:
                continue
            raise

    return []


def google_search_configured() -> bool:
    return bool(
        config.GOOGLE_SEARCH.get("enabled")
        and config.GOOGLE_SEARCH.get("api_key")
        and config.GOOGLE_SEARCH.get("engine_id")
    )


def web_search(query: str, max_results: Optional[int] = None, use_cache: bool = True) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Search the web for a query.

    Google is used when configured; DuckDuckGo is the fallback when it is not
    configured or fails.

    Args:
        query: Search query
        max_results: Number of results (defaults to config)
        use_cache: Serve repeated queries from the in-process search cache

    Returns:
        (results, from_cache) where results is a list of {title, link, snippet}
    """
    if not query or not query.strip():
        raise ValueError("Search query cannot be empty")

    max_results = max_results or config.GOOGLE_SEARCH["results_per_query"]
    cache = get_search_cache()

    if use_cache:
        cached = cache.get(query, max_results)
        if cached is not None:
            return cached, True

    results: List[Dict[str, Any]] = []
    if google_search_configured():
        try:
            results = _google_search_raw(query, max_results)
        except requests.exceptions.RequestException as e:
            logger.error(f"Google Search API error: {e}, falling back to DuckDuckGo")
            results = _duckduckgo_search_raw(query, max_results)
    else:
        logger.info("Google Search not configured, using DuckDuckGo")
        results = _duckduckgo_search_raw(query, max_results)

    if results and use_cache:
        cache.set(query, max_results, results)
    return results, False
