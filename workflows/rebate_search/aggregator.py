"""Search aggregator - runs the category queries in parallel and merges hits."""

import logging
from typing import List, Dict, Any, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed

from engine.models import SearchResult, dedupe_by_link
from tools.research.web_search import web_search

logger = logging.getLogger(__name__)


def aggregate_search_results(queries: List[str], max_results_per_query: int = 7) -> Tuple[List[SearchResult], bool]:
    """
    Run every query, tolerate individual failures, dedupe by link.

    Args:
        queries: Search queries for one request
        max_results_per_query: Hits requested per query

    Returns:
        (results, all_cached): merged unique hits in query order, and whether
        every successful query was served from the search cache
    """
    if not queries:
        return [], False

    logger.info(f"Aggregating search results for {len(queries)} queries")
    by_query: Dict[str, List[Dict[str, Any]]] = {}
    cached_flags: List[bool] = []

    with ThreadPoolExecutor(max_workers=len(queries)) as executor:
        futures = {
            executor.submit(web_search, query, max_results_per_query): query
            for query in queries
        }

        for future in as_completed(futures):
            query = futures[future]
            try:
                results, from_cache = future.result()
                by_query[query] = results
                cached_flags.append(from_cache)
                logger.info(f"✓ {query[:60]}: {len(results)} results{' (cached)' if from_cache else ''}")
            except Exception as e:
                logger.warning(f"Search failed for '{query[:60]}': {e}")

    # Keep query order so the first query's hits come first
    merged = []
    for query in queries:
        merged.extend(by_query.get(query, []))

    unique = dedupe_by_link(r for r in merged if r.get("link"))
    all_cached = bool(cached_flags) and all(cached_flags)
    logger.info(f"Total unique search results: {len(unique)}")
    return unique, all_cached
