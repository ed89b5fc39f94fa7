import unittest
from unittest.mock import MagicMock

from engine.cache_service import CacheService
from engine.models import ORIGIN_CACHE, ORIGIN_FRESH, SearchResult
from engine.rebate_engine import RebateEngine
from engine.storage import LocalStorage
from tests.fakes import FakeClock
from workflows.rebate_search.workflow import PipelineError, PipelineResult

HITS = [SearchResult("Rebate", "http://r", "s")]


def _pipeline(programs=None, results=HITS, search_origin=ORIGIN_FRESH):
    pipeline = MagicMock()
    pipeline.run.side_effect = lambda category, county=None: PipelineResult(
        category=category,
        county=county,
        search_results=list(results),
        analysis={"programs": list(programs or [])},
        search_origin=search_origin,
    )
    return pipeline


class RebateEngineTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = CacheService(LocalStorage(":memory:"), clock=self.clock)

    def tearDown(self):
        self.cache.close()

    def _wait_for_writes(self):
        # Drains pending background stores
        self.cache._executor.shutdown(wait=True)

    def test_miss_runs_pipeline_then_hit_serves_cache(self):
        pipeline = _pipeline([{"programName": "P1"}])
        engine = RebateEngine(cache=self.cache, pipeline=pipeline)

        first = engine.find_programs("County", "Alameda")
        self._wait_for_writes()
        second = engine.find_programs("county", "Alameda")

        self.assertFalse(first.cached)
        self.assertEqual(first.source.search_origin, ORIGIN_FRESH)
        self.assertTrue(second.cached)
        self.assertEqual(second.programs[0]["programName"], "P1")
        self.assertEqual(second.source.to_dict(), {"search": ORIGIN_CACHE, "analysis": ORIGIN_CACHE})
        self.assertEqual(second.search_results, HITS)
        pipeline.run.assert_called_once_with("County", "Alameda")

    def test_counties_are_cached_separately(self):
        engine = RebateEngine(cache=self.cache, pipeline=_pipeline([{"programName": "P1"}]))
        engine.find_programs("County", "Alameda")
        self._wait_for_writes()

        self.assertTrue(engine.check_cache("County", "Alameda").found)
        self.assertFalse(engine.check_cache("County", "Marin").found)

    def test_no_search_results_are_not_cached(self):
        engine = RebateEngine(cache=self.cache, pipeline=_pipeline(results=[]))
        answer = engine.find_programs("Federal")
        self._wait_for_writes()

        self.assertEqual(answer.programs, [])
        self.assertFalse(engine.check_cache("Federal").found)

    def test_pipeline_failure_propagates_and_nothing_is_cached(self):
        pipeline = MagicMock()
        pipeline.run.side_effect = PipelineError("analysis failed")
        engine = RebateEngine(cache=self.cache, pipeline=pipeline)

        with self.assertRaises(PipelineError):
            engine.find_programs("State")
        self.assertFalse(engine.check_cache("State").found)

    def test_invalid_category(self):
        engine = RebateEngine(cache=self.cache, pipeline=_pipeline())
        with self.assertRaises(ValueError):
            engine.find_programs("City")

    def test_answer_to_dict(self):
        engine = RebateEngine(cache=self.cache, pipeline=_pipeline([{"programName": "P1"}]))
        payload = engine.find_programs("State").to_dict()

        self.assertEqual(payload["category"], "State")
        self.assertIsNone(payload["county"])
        self.assertFalse(payload["cached"])
        self.assertEqual(payload["source"], {"search": "fresh", "analysis": "fresh"})
        self.assertIn("timestamp", payload)


if __name__ == "__main__":
    unittest.main()
