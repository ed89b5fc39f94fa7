"""RebateEngine - high-level interface for rebate program lookups."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List

from engine.cache_service import CacheService, create_cache_service
from engine.models import (
    ORIGIN_CACHE,
    CacheLookup,
    Provenance,
    SearchResult,
    format_timestamp,
    utc_now,
)
from workflows.rebate_search.queries import cache_query, normalize_category
from workflows.rebate_search.workflow import RebatePipeline

logger = logging.getLogger(__name__)


@dataclass
class RebateAnswer:
    """Programs for one category/county request"""
    category: str
    county: Optional[str]
    programs: List[Dict[str, Any]] = field(default_factory=list)
    search_results: List[SearchResult] = field(default_factory=list)
    source: Provenance = field(default_factory=Provenance)
    cached: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for API responses"""
        return {
            "category": self.category,
            "county": self.county,
            "programs": self.programs,
            "source": self.source.to_dict(),
            "cached": self.cached,
            "timestamp": format_timestamp(self.created_at),
        }


class RebateEngine:
    """
    High-level interface for rebate lookups.

    Provides clean API for:
    - Answering a request from cache or the live pipeline
    - Checking the cache without running the pipeline
    - Cache status and maintenance
    """

    def __init__(self, cache: Optional[CacheService] = None, pipeline: Optional[RebatePipeline] = None):
        """Initialize engine with a cache service and pipeline."""
        self.cache = cache or create_cache_service()
        self.pipeline = pipeline or RebatePipeline()

    def check_cache(self, category: str, county: Optional[str] = None) -> CacheLookup:
        """
        Look a request up in the cache only.

        Raises:
            ValueError: For unknown categories
        """
        category = normalize_category(category)
        return self.cache.lookup(cache_query(category, county), category)

    def find_programs(self, category: str, county: Optional[str] = None) -> RebateAnswer:
        """
        Answer a request, preferring a fresh cached entry.

        Args:
            category: Federal, State or County
            county: County name (required for County)

        Returns:
            RebateAnswer

        Raises:
            ValueError: Invalid category/county
            PipelineError: If the live pipeline fails on a miss
        """
        category = normalize_category(category)
        query = cache_query(category, county)

        lookup = self.cache.lookup(query, category)
        if lookup.found:
            entry = lookup.entry
            logger.info(f"Serving {category} from cache ({len(entry.programs)} programs)")
            return RebateAnswer(
                category=category,
                county=county,
                programs=entry.programs,
                search_results=list(entry.search_results),
                source=Provenance(search_origin=ORIGIN_CACHE, analysis_origin=ORIGIN_CACHE),
                cached=True,
                created_at=entry.created_at,
            )

        result = self.pipeline.run(category, county)
        source = Provenance(search_origin=result.search_origin)

        if result.has_results:
            self.cache.store_in_background(query, category, result.search_results, result.analysis, source)
        else:
            logger.info(f"Not caching {query}: no search results")

        return RebateAnswer(
            category=category,
            county=county,
            programs=result.analysis.get("programs", []),
            search_results=result.search_results,
            source=source,
            cached=False,
        )

    def status(self) -> Dict[str, Any]:
        return self.cache.status()

    def purge_expired(self) -> int:
        return self.cache.purge_expired()

    def close(self):
        self.cache.close()
