"""Data models for the rebate result cache."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Optional, Any, Iterable, Mapping, Tuple

from engine.errors import MalformedEntry

ORIGIN_FRESH = "fresh"
ORIGIN_CACHE = "cache"

# Column order of the backing row store
COLUMNS = [
    "Query",
    "Category",
    "SearchResultsJSON",
    "AnalysisJSON",
    "Timestamp",
    "Hash",
    "SearchOrigin",
    "AnalysisOrigin",
]

# Rows written by the first deployment: en-US locale strings in Pacific time
LEGACY_TIMESTAMP_FORMAT = "%m/%d/%Y, %I:%M:%S %p"
LEGACY_TIMEZONE = "America/Los_Angeles"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Serialize a datetime as ISO-8601 UTC with millisecond precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_timestamp(value: str) -> datetime:
    """
    Parse a stored timestamp into an aware UTC datetime.

    Accepts ISO-8601 (naive values are read as UTC) and the legacy
    "MM/DD/YYYY, HH:MM:SS AM" Pacific-time format.

    Raises:
        MalformedEntry: If the value matches neither format
    """
    text = (value or "").strip()
    if not text:
        raise MalformedEntry("Row has no timestamp")

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
            parsed = datetime.strptime(text, LEGACY_TIMESTAMP_FORMAT)
            parsed = parsed.replace(tzinfo=ZoneInfo(LEGACY_TIMEZONE))
        except (ValueError, ZoneInfoNotFoundError):
            raise MalformedEntry(f"Unparseable timestamp: {text!r}") from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_origin(value: Optional[str]) -> str:
    """Map stored origin tags onto fresh/cache ('Search' is the legacy spelling of fresh)."""
    return ORIGIN_CACHE if (value or "").strip().lower() == ORIGIN_CACHE else ORIGIN_FRESH


@dataclass(frozen=True)
class SearchResult:
    """Single search provider hit"""
    title: str
    link: str
    snippet: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SearchResult":
        """Build from a provider dict; accepts url/description aliases."""
        return cls(
            title=str(data.get("title") or ""),
            link=str(data.get("link") or data.get("url") or ""),
            snippet=str(data.get("snippet") or data.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "link": self.link, "snippet": self.snippet}


def dedupe_by_link(results: Iterable[Any]) -> List[SearchResult]:
    """Convert to SearchResult and keep the first hit for each link, preserving order."""
    seen = set()
    unique = []
    for result in results:
        if not isinstance(result, SearchResult):
            result = SearchResult.from_dict(result)
        if result.link in seen:
            continue
        seen.add(result.link)
        unique.append(result)
    return unique


@dataclass(frozen=True)
class Provenance:
    """Whether each half of an entry was itself served from cache when written"""
    search_origin: str = ORIGIN_FRESH
    analysis_origin: str = ORIGIN_FRESH

    def to_dict(self) -> Dict[str, str]:
        return {"search": self.search_origin, "analysis": self.analysis_origin}


@dataclass(frozen=True)
class CacheRow:
    """One raw row of the backing store, all cells as strings"""
    query: str = ""
    category: str = ""
    search_results_json: str = ""
    analysis_json: str = ""
    timestamp: str = ""
    hash: str = ""
    search_origin: str = ""
    analysis_origin: str = ""

    @classmethod
    def from_values(cls, values: List[Any]) -> "CacheRow":
        """Build from a list of cells; short rows (trailing blanks trimmed by the store) are padded."""
        cells = ["" if v is None else str(v) for v in list(values)[: len(COLUMNS)]]
        cells += [""] * (len(COLUMNS) - len(cells))
        return cls(*cells)

    def to_values(self) -> List[str]:
        return [
            self.query,
            self.category,
            self.search_results_json,
            self.analysis_json,
            self.timestamp,
            self.hash,
            self.search_origin,
            self.analysis_origin,
        ]


def is_valid_analysis(analysis: Any) -> bool:
    """An analysis is well-formed when it is a dict with a programs list (possibly empty)."""
    return isinstance(analysis, dict) and isinstance(analysis.get("programs"), list)


@dataclass(frozen=True)
class Entry:
    """One immutable cached answer"""
    key: str
    raw_query: str
    category: str
    search_results: Tuple[SearchResult, ...]
    analysis: Dict[str, Any]
    created_at: datetime = field(default_factory=utc_now)
    provenance: Provenance = field(default_factory=Provenance)

    @property
    def programs(self) -> List[Dict[str, Any]]:
        return self.analysis.get("programs", [])

    def age_hours(self, now: Optional[datetime] = None) -> float:
        now = now or utc_now()
        return (now - self.created_at).total_seconds() / 3600

    def to_row(self) -> CacheRow:
        """Serialize for the row store (JSON payloads as strings)"""
        return CacheRow(
            query=self.raw_query,
            category=self.category,
            search_results_json=json.dumps([r.to_dict() for r in self.search_results]),
            analysis_json=json.dumps(self.analysis),
            timestamp=format_timestamp(self.created_at),
            hash=self.key,
            search_origin=self.provenance.search_origin,
            analysis_origin=self.provenance.analysis_origin,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for API responses"""
        return {
            "key": self.key,
            "query": self.raw_query,
            "category": self.category,
            "searchResults": [r.to_dict() for r in self.search_results],
            "analysis": self.analysis,
            "createdAt": format_timestamp(self.created_at),
            "provenance": self.provenance.to_dict(),
        }


@dataclass(frozen=True)
class ParsedRow:
    """A stored row decoded into typed halves; either half may be absent"""
    position: int
    row: CacheRow
    created_at: datetime
    search_results: Optional[List[SearchResult]]
    analysis: Optional[Dict[str, Any]]
    provenance: Provenance


def _parse_search_results(text: str) -> Optional[List[SearchResult]]:
    if not text.strip():
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedEntry(f"SearchResultsJSON is not JSON: {e}") from None
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise MalformedEntry("SearchResultsJSON is not a list of objects")
    return dedupe_by_link(data)


def _parse_analysis(text: str) -> Optional[Dict[str, Any]]:
    if not text.strip():
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedEntry(f"AnalysisJSON is not JSON: {e}") from None
    if not is_valid_analysis(data):
        raise MalformedEntry("AnalysisJSON has no programs list")
    return data


def parse_row(row: CacheRow, position: int) -> ParsedRow:
    """
    Decode a raw row.

    A row may carry only search results or only an analysis (partial writes),
    but not neither.

    Raises:
        MalformedEntry: If a payload or the timestamp cannot be decoded
    """
    search_results = _parse_search_results(row.search_results_json)
    analysis = _parse_analysis(row.analysis_json)
    if search_results is None and analysis is None:
        raise MalformedEntry("Row carries neither search results nor analysis")

    return ParsedRow(
        position=position,
        row=row,
        created_at=parse_timestamp(row.timestamp),
        search_results=search_results,
        analysis=analysis,
        provenance=Provenance(
            search_origin=normalize_origin(row.search_origin),
            analysis_origin=normalize_origin(row.analysis_origin),
        ),
    )


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache lookup"""
    found: bool
    entry: Optional[Entry] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"found": self.found}
        if self.entry is not None:
            payload["entry"] = self.entry.to_dict()
        return payload


MISS = CacheLookup(found=False)
