import importlib
import sys
import types
import unittest
from unittest.mock import MagicMock, patch

import requests

from tools.utils._search_cache import SearchCache

# The package re-exports the web_search function under the module's name
web_search_module = importlib.import_module("tools.research.web_search")

GOOGLE_CONFIG = {
    "endpoint": "https://www.googleapis.com/customsearch/v1",
    "api_key": "key",
    "engine_id": "cx",
    "results_per_query": 7,
    "timeout": 15,
    "enabled": True,
}


def _google_response(items):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"items": items, "searchInformation": {"totalResults": str(len(items))}}
    return response


class SearchCacheTests(unittest.TestCase):
    def test_get_returns_copies(self):
        cache = SearchCache(max_entries=5, ttl_hours=1)
        cache.set("Query", 7, [{"title": "A", "link": "http://a"}])

        hit = cache.get("  query ", 7)
        hit[0]["title"] = "mutated"

        self.assertEqual(cache.get("query", 7)[0]["title"], "A")
        self.assertIsNone(cache.get("query", 3))

    def test_evicts_least_recently_used(self):
        cache = SearchCache(max_entries=2, ttl_hours=1)
        cache.set("a", 7, [])
        cache.set("b", 7, [])
        cache.get("a", 7)
        cache.set("c", 7, [])

        self.assertIsNotNone(cache.get("a", 7))
        self.assertIsNone(cache.get("b", 7))
        self.assertEqual(cache.stats()["size"], 2)

    def test_expired_entries_miss(self):
        cache = SearchCache(max_entries=5, ttl_hours=1)
        with patch("tools.utils._search_cache.time.time", return_value=1000.0):
            cache.set("a", 7, [{"link": "x"}])
        with patch("tools.utils._search_cache.time.time", return_value=1000.0 + 3601):
            self.assertIsNone(cache.get("a", 7))


class WebSearchTests(unittest.TestCase):
    def setUp(self):
        self.cache = SearchCache()
        patcher = patch.object(web_search_module, "get_search_cache", return_value=self.cache)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_empty_query_raises(self):
        with self.assertRaises(ValueError):
            web_search_module.web_search("   ")

    def test_google_results_are_standardized_and_cached(self):
        items = [{"title": "Rebate", "link": "http://r", "snippet": "s", "displayLink": "r"}]
        with patch.dict(web_search_module.config.GOOGLE_SEARCH, GOOGLE_CONFIG), \
             patch.object(web_search_module.requests, "get", return_value=_google_response(items)) as get:
            results, cached = web_search_module.web_search("heat pump rebates")
            again, cached_again = web_search_module.web_search("heat pump rebates")

        self.assertEqual(results, [{"title": "Rebate", "link": "http://r", "snippet": "s"}])
        self.assertFalse(cached)
        self.assertTrue(cached_again)
        self.assertEqual(again, results)
        get.assert_called_once()
        self.assertEqual(get.call_args.kwargs["params"]["num"], 7)

    def test_google_failure_falls_back_to_duckduckgo(self):
        with patch.dict(web_search_module.config.GOOGLE_SEARCH, GOOGLE_CONFIG), \
             patch.object(web_search_module.requests, "get", side_effect=requests.ConnectionError("down")), \
             patch.object(web_search_module, "_duckduckgo_search_raw", return_value=[{"title": "D", "link": "http://d", "snippet": ""}]) as ddg:
            results, cached = web_search_module.web_search("solar rebates", max_results=3)

        ddg.assert_called_once_with("solar rebates", 3)
        self.assertEqual(results[0]["link"], "http://d")
        self.assertFalse(cached)

    def test_unconfigured_google_uses_duckduckgo(self):
        ddgs_module = types.ModuleType("ddgs")
        client = MagicMock()
        client.text.return_value = [{"title": "D", "href": "http://d", "body": "b"}]
        ddgs_module.DDGS = MagicMock()
        ddgs_module.DDGS.return_value.__enter__.return_value = client

        with patch.dict(web_search_module.config.GOOGLE_SEARCH, {"api_key": None}), \
             patch.dict(sys.modules, {"ddgs": ddgs_module}):
            results, _ = web_search_module.web_search("insulation rebates")

        self.assertEqual(results, [{"title": "D", "link": "http://d", "snippet": "b"}])

    def test_empty_results_are_not_cached(self):
        with patch.dict(web_search_module.config.GOOGLE_SEARCH, GOOGLE_CONFIG), \
             patch.object(web_search_module.requests, "get", return_value=_google_response([])):
            results, _ = web_search_module.web_search("nothing here")

        self.assertEqual(results, [])
        self.assertIsNone(self.cache.get("nothing here", 7))


if __name__ == "__main__":
    unittest.main()
