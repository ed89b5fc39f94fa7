"""In-process LRU cache for raw web search results."""

import hashlib
import time
import logging
import threading
from typing import Optional, Dict, List, Any, Tuple
from collections import OrderedDict

import config

logger = logging.getLogger(__name__)


class SearchCache:
    """LRU cache of standardized search hits, keyed by normalized query."""

    def __init__(self, max_entries: int = 200, ttl_hours: float = 6):
        """
        Initialize search cache.

        Args:
            max_entries: Maximum number of cached queries
            ttl_hours: Age after which a cached query is refetched
        """
        self.max_entries = max_entries
        self.ttl = ttl_hours * 3600  # Convert to seconds

        # Use OrderedDict for LRU behavior
        self._cache: "OrderedDict[str, Tuple[List[Dict[str, Any]], float]]" = OrderedDict()
        # Searches for one request run on a thread pool
        self._lock = threading.Lock()

    def _make_key(self, query: str, max_results: int) -> str:
        """Create cache key from query and max_results."""
        # Normalize query: lowercase, strip, remove extra spaces
        normalized = ' '.join(query.lower().strip().split())
        key_string = f"{normalized}:{max_results}"
        return hashlib.md5(key_string.encode()).hexdigest()

    def get(self, query: str, max_results: int) -> Optional[List[Dict[str, Any]]]:
        """
        Get cached results if available and not expired.

        Returns:
            Copy of the cached hits or None if not found/expired
        """
        key = self._make_key(query, max_results)

        with self._lock:
            if key not in self._cache:
                return None

            results, timestamp = self._cache[key]
            if time.time() - timestamp > self.ttl:
                del self._cache[key]
                logger.debug(f"Search cache expired for query: {query[:50]}...")
                return None

            # Move to end (most recently used)
            self._cache.move_to_end(key)

        logger.debug(f"Search cache hit for query: {query[:50]}...")
        return [dict(r) for r in results]

    def set(self, query: str, max_results: int, results: List[Dict[str, Any]]) -> None:
        """Cache the hits for a query."""
        key = self._make_key(query, max_results)

        with self._lock:
            if key in self._cache:
                del self._cache[key]
            self._cache[key] = ([dict(r) for r in results], time.time())

            # Evict oldest if cache is full
            if len(self._cache) > self.max_entries:
                self._cache.popitem(last=False)
                logger.debug(f"Search cache evicted oldest entry (cache full: {self.max_entries} entries)")

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._cache.clear()
        logger.info("Search cache cleared")

    def stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        return {
            "size": len(self._cache),
            "max_entries": self.max_entries,
            "usage_percent": int((len(self._cache) / self.max_entries) * 100) if self.max_entries > 0 else 0
        }


# Global cache instance
_cache: Optional[SearchCache] = None


def get_search_cache() -> SearchCache:
    """Get global search cache instance."""
    global _cache
    if _cache is None:
        _cache = SearchCache(
            max_entries=config.SEARCH_CACHE["max_entries"],
            ttl_hours=config.SEARCH_CACHE["ttl_hours"],
        )
    return _cache
