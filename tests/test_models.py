import json
import unittest
from datetime import datetime, timezone

from engine.errors import MalformedEntry
from engine.models import (
    COLUMNS,
    ORIGIN_CACHE,
    ORIGIN_FRESH,
    CacheRow,
    Entry,
    Provenance,
    SearchResult,
    dedupe_by_link,
    format_timestamp,
    normalize_origin,
    parse_row,
    parse_timestamp,
)


class TimestampTests(unittest.TestCase):
    def test_format_is_iso_utc_with_milliseconds(self):
        moment = datetime(2026, 10, 18, 12, 0, 0, 123456, tzinfo=timezone.utc)
        self.assertEqual(format_timestamp(moment), "2026-10-18T12:00:00.123+00:00")

    def test_parse_zulu_suffix(self):
        parsed = parse_timestamp("2026-10-18T12:00:00.123Z")
        self.assertEqual(parsed, datetime(2026, 10, 18, 12, 0, 0, 123000, tzinfo=timezone.utc))

    def test_parse_naive_iso_as_utc(self):
        parsed = parse_timestamp("2026-10-18T12:00:00")
        self.assertEqual(parsed.tzinfo, timezone.utc)
        self.assertEqual(parsed.hour, 12)

    def test_parse_legacy_pacific_format(self):
        try:
            from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
            ZoneInfo("America/Los_Angeles")
        except (ImportError, ZoneInfoNotFoundError):
            self.skipTest("tz database unavailable")

        # October is daylight time, UTC-7
        parsed = parse_timestamp("10/18/2026, 3:04:05 PM")
        self.assertEqual(parsed, datetime(2026, 10, 18, 22, 4, 5, tzinfo=timezone.utc))

    def test_garbage_raises_malformed(self):
        with self.assertRaises(MalformedEntry):
            parse_timestamp("yesterday-ish")
        with self.assertRaises(MalformedEntry):
            parse_timestamp("")


class OriginTests(unittest.TestCase):
    def test_legacy_search_tag_means_fresh(self):
        self.assertEqual(normalize_origin("Search"), ORIGIN_FRESH)
        self.assertEqual(normalize_origin("Cache"), ORIGIN_CACHE)
        self.assertEqual(normalize_origin(""), ORIGIN_FRESH)
        self.assertEqual(normalize_origin(None), ORIGIN_FRESH)


class SearchResultTests(unittest.TestCase):
    def test_from_dict_accepts_aliases(self):
        result = SearchResult.from_dict({"title": "T", "url": "http://a", "description": "d"})
        self.assertEqual(result, SearchResult("T", "http://a", "d"))

    def test_dedupe_keeps_first_per_link(self):
        unique = dedupe_by_link([
            {"title": "A", "link": "http://a"},
            {"title": "B", "link": "http://b"},
            {"title": "A again", "link": "http://a"},
        ])
        self.assertEqual([r.title for r in unique], ["A", "B"])


class CacheRowTests(unittest.TestCase):
    def test_short_rows_are_padded(self):
        row = CacheRow.from_values(["q", "County", "[]"])
        self.assertEqual(len(row.to_values()), len(COLUMNS))
        self.assertEqual(row.analysis_json, "")
        self.assertEqual(row.analysis_origin, "")

    def test_none_cells_become_empty(self):
        row = CacheRow.from_values(["q", None, None, None, "ts", "h", None, None])
        self.assertEqual(row.category, "")


class ParseRowTests(unittest.TestCase):
    def _row(self, **overrides):
        values = dict(
            query="q",
            category="County",
            search_results_json=json.dumps([{"title": "A", "link": "http://a", "snippet": "s"}]),
            analysis_json=json.dumps({"programs": [{"programName": "P1"}]}),
            timestamp="2026-10-18T12:00:00.000+00:00",
            hash="k",
            search_origin="fresh",
            analysis_origin="Search",
        )
        values.update(overrides)
        return CacheRow(**values)

    def test_complete_row(self):
        parsed = parse_row(self._row(), 3)
        self.assertEqual(parsed.position, 3)
        self.assertEqual(parsed.analysis["programs"][0]["programName"], "P1")
        self.assertEqual(parsed.search_results[0].link, "http://a")
        self.assertEqual(parsed.provenance, Provenance(ORIGIN_FRESH, ORIGIN_FRESH))

    def test_partial_rows_are_allowed(self):
        self.assertIsNone(parse_row(self._row(analysis_json=""), 0).analysis)
        self.assertIsNone(parse_row(self._row(search_results_json=""), 0).search_results)

    def test_empty_row_is_malformed(self):
        with self.assertRaises(MalformedEntry):
            parse_row(self._row(search_results_json="", analysis_json=""), 0)

    def test_bad_json_is_malformed(self):
        with self.assertRaises(MalformedEntry):
            parse_row(self._row(analysis_json="not json"), 0)
        with self.assertRaises(MalformedEntry):
            parse_row(self._row(search_results_json="{oops"), 0)

    def test_analysis_without_programs_list_is_malformed(self):
        with self.assertRaises(MalformedEntry):
            parse_row(self._row(analysis_json=json.dumps({"programs": "none"})), 0)

    def test_bad_timestamp_is_malformed(self):
        with self.assertRaises(MalformedEntry):
            parse_row(self._row(timestamp="not a time"), 0)


class EntryTests(unittest.TestCase):
    def test_to_row_stores_json_strings(self):
        entry = Entry(
            key="k",
            raw_query="q",
            category="Federal",
            search_results=(SearchResult("A", "http://a", "s"),),
            analysis={"programs": []},
            created_at=datetime(2026, 10, 18, tzinfo=timezone.utc),
            provenance=Provenance(ORIGIN_CACHE, ORIGIN_FRESH),
        )
        row = entry.to_row()

        self.assertEqual(json.loads(row.search_results_json), [{"title": "A", "link": "http://a", "snippet": "s"}])
        self.assertEqual(json.loads(row.analysis_json), {"programs": []})
        self.assertEqual(row.hash, "k")
        self.assertEqual(row.search_origin, "cache")
        self.assertEqual(entry.to_dict()["provenance"], {"search": "cache", "analysis": "fresh"})


if __name__ == "__main__":
    unittest.main()
