"""Rebate search pipeline - live search + LLM extraction for one request."""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any

import config
from engine.models import ORIGIN_CACHE, ORIGIN_FRESH, SearchResult
from llm_client import LLMClient
from workflows.rebate_search.aggregator import aggregate_search_results
from workflows.rebate_search.analyzer import AnalysisError, analyze_results
from workflows.rebate_search.queries import get_search_queries, normalize_category

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Search or analysis failed; nothing should be cached."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


@dataclass
class PipelineResult:
    """Output of one pipeline run"""
    category: str
    county: Optional[str]
    search_results: List[SearchResult] = field(default_factory=list)
    analysis: Dict[str, Any] = field(default_factory=lambda: {"programs": []})
    search_origin: str = ORIGIN_FRESH

    @property
    def has_results(self) -> bool:
        return bool(self.search_results)


class RebatePipeline:
    """
    Live rebate lookup.

    Phases:
    1. Search (category queries in parallel, deduped by link)
    2. Analysis (LLM extraction into a programs list)
    """

    def __init__(self, llm_client: Optional[LLMClient] = None, max_results_per_query: Optional[int] = None):
        self.llm_client = llm_client
        self.max_results_per_query = max_results_per_query or config.GOOGLE_SEARCH["results_per_query"]

    def run(self, category: str, county: Optional[str] = None) -> PipelineResult:
        """
        Execute search + analysis.

        Returns:
            PipelineResult; with no search hits the analysis is an empty programs list

        Raises:
            ValueError: Invalid category/county
            PipelineError: If analysis fails
        """
        category = normalize_category(category)
        queries = get_search_queries(category, county)
        logger.info(f"Starting rebate search: {category}{f' / {county}' if county else ''}")

        # Phase 1: Search
        results, all_cached = aggregate_search_results(queries, self.max_results_per_query)
        result = PipelineResult(
            category=category,
            county=county,
            search_results=results,
            search_origin=ORIGIN_CACHE if all_cached else ORIGIN_FRESH,
        )
        if not results:
            logger.warning(f"No search results for {category}{f' / {county}' if county else ''}")
            return result

        # Phase 2: Analysis
        try:
            result.analysis = analyze_results(results, category, county, llm_client=self.llm_client)
        except AnalysisError as e:
            logger.error(f"Analysis failed: {e}")
            raise PipelineError(f"Analysis failed: {e}") from e

        logger.info(f"✓ Rebate search complete: {len(results)} results, {len(result.analysis['programs'])} programs")
        return result
