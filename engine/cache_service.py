"""CacheService - hit/miss decisions and best-effort writes over an EntryStore."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import timedelta
from enum import Enum
from typing import List, Dict, Optional, Any, Iterable, Mapping

from engine.errors import MalformedEntry, StoreIOError, ValidationError
from engine.keys import canonical_query, fingerprint
from engine.models import (
    MISS,
    CacheLookup,
    CacheRow,
    Entry,
    ParsedRow,
    Provenance,
    SearchResult,
    dedupe_by_link,
    is_valid_analysis,
    parse_row,
    utc_now,
)
from engine.storage import EntryStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 336  # 14 days


def _log_background_failure(future: Future) -> None:
    """Done-callback for background writes."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Background cache write failed: {error}", exc_info=error)


class CacheState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISABLED = "disabled"


class CacheService:
    """
    Result cache in front of the search + analysis pipeline.

    Lifecycle: UNINITIALIZED -> INITIALIZING -> READY | DISABLED. The store is
    bootstrapped once; DISABLED is terminal for this instance and turns every
    lookup into a miss and every store into a no-op. In READY a failing call
    only degrades that call.
    """

    def __init__(
        self,
        store: EntryStore,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        canonicalize: bool = True,
        background_workers: int = 2,
        clock=utc_now,
    ):
        """
        Initialize cache service.

        Args:
            store: Backing entry store
            ttl_hours: Entries at or beyond this age are invisible to lookup
            canonicalize: Map queries to per-category canonical phrasing before hashing
            background_workers: Threads used by store_in_background()
            clock: Returns the current aware UTC datetime
        """
        self.entry_store = store
        self.ttl_hours = ttl_hours
        self.canonicalize = canonicalize
        self.clock = clock
        self.state = CacheState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, background_workers),
            thread_name_prefix="cache-writer",
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> CacheState:
        """Bootstrap the store once and settle on READY or DISABLED."""
        with self._state_lock:
            if self.state in (CacheState.READY, CacheState.DISABLED):
                return self.state

            self.state = CacheState.INITIALIZING
            try:
                usable = self.entry_store.bootstrap()
            except Exception as e:
                logger.error(f"Cache store bootstrap raised: {e}", exc_info=True)
                usable = False

            self.state = CacheState.READY if usable else CacheState.DISABLED
            if usable:
                logger.info(f"Cache ready ({self.entry_store.name}, ttl={self.ttl_hours}h)")
            else:
                logger.warning(f"Cache disabled ({self.entry_store.name}); every lookup will miss")
            return self.state

    @property
    def enabled(self) -> bool:
        return self.initialize() == CacheState.READY

    def key_for(self, raw_query: str, category: str) -> str:
        """Cache key for a request, after the canonical phrasing policy."""
        query = canonical_query(raw_query, category) if self.canonicalize else raw_query
        return fingerprint(query, category)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, raw_query: str, category: str) -> CacheLookup:
        """
        Find the freshest complete, unexpired entry for a request.

        Args:
            raw_query: Free-text query
            category: Category tag

        Returns:
            CacheLookup(found=True, entry=...) on a hit, MISS otherwise
        """
        if not self.enabled:
            return MISS

        key = self.key_for(raw_query, category)
        try:
            rows = self.entry_store.find_by_key(key)
        except StoreIOError as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
            return MISS
        except Exception as e:
            logger.error(f"Unexpected cache read error, treating as miss: {e}", exc_info=True)
            return MISS

        if not rows:
            logger.info(f"Cache miss: {category} / {raw_query[:60]}")
            return MISS

        entry = self._resolve(key, rows)
        if entry is None:
            logger.info(f"Cache miss (no complete entry among {len(rows)} rows): {category} / {raw_query[:60]}")
            return MISS

        age = entry.age_hours(self.clock())
        if age >= self.ttl_hours:
            logger.info(f"Cache expired ({age:.1f}h old): {category} / {raw_query[:60]}")
            return MISS

        logger.info(f"Cache hit ({age:.1f}h old, {len(entry.programs)} programs): {category} / {raw_query[:60]}")
        return CacheLookup(found=True, entry=entry)

    def _resolve(self, key: str, rows: List[CacheRow]) -> Optional[Entry]:
        """Collapse the log of rows for one key into the most recent complete entry."""
        parsed: List[ParsedRow] = []
        for position, row in enumerate(rows):
            try:
                parsed.append(parse_row(row, position))
            except MalformedEntry as e:
                logger.warning(f"Skipping malformed cache row {position} for {key[:12]}: {e}")

        analysed = [p for p in parsed if p.analysis is not None]
        searched = [p for p in parsed if p.search_results is not None]
        if not analysed or not searched:
            return None

        # Latest created_at wins, later scan position breaks ties
        latest = max(analysed, key=lambda p: (p.created_at, p.position))
        if latest.search_results is not None:
            results_row = latest
        else:
            results_row = max(searched, key=lambda p: (p.created_at, p.position))

        return Entry(
            key=key,
            raw_query=latest.row.query,
            category=latest.row.category,
            search_results=tuple(results_row.search_results),
            analysis=latest.analysis,
            created_at=latest.created_at,
            provenance=Provenance(
                search_origin=results_row.provenance.search_origin,
                analysis_origin=latest.provenance.analysis_origin,
            ),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _validate(self, search_results: Any, analysis: Any) -> None:
        if not is_valid_analysis(analysis):
            raise ValidationError("analysis must be an object with a 'programs' list")
        if not isinstance(search_results, (list, tuple)):
            raise ValidationError("search_results must be a list")
        if not all(isinstance(r, (Mapping, SearchResult)) for r in search_results):
            raise ValidationError("search_results items must be search results or mappings")

    def store(
        self,
        raw_query: str,
        category: str,
        search_results: Iterable[Any],
        analysis: Dict[str, Any],
        provenance: Optional[Provenance] = None,
    ) -> Optional[Entry]:
        """
        Append a new entry for a resolved miss. Never raises.

        Returns:
            The written Entry, or None if the cache is disabled, the input is
            invalid or the write failed
        """
        if not self.enabled:
            logger.debug("Cache disabled, skipping store")
            return None

        label = f"{category} / {str(raw_query)[:60]}"
        try:
            self._validate(search_results, analysis)
            entry = Entry(
                key=self.key_for(raw_query, category),
                raw_query=raw_query,
                category=category,
                search_results=tuple(dedupe_by_link(search_results)),
                analysis=analysis,
                created_at=self.clock(),
                provenance=provenance or Provenance(),
            )
        except ValidationError as e:
            logger.warning(f"Not caching {label}: {e}")
            return None
        except Exception as e:
            logger.error(f"Could not build cache entry for {label}, dropped: {e}", exc_info=True)
            return None

        try:
            self.entry_store.append(entry)
        except StoreIOError as e:
            logger.warning(f"Cache write dropped: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected cache write error, dropped: {e}", exc_info=True)
            return None

        logger.info(f"Cached {len(entry.programs)} programs, {len(entry.search_results)} results: {label}")
        return entry

    def store_in_background(
        self,
        raw_query: str,
        category: str,
        search_results: Iterable[Any],
        analysis: Dict[str, Any],
        provenance: Optional[Provenance] = None,
    ) -> Future:
        """Fire-and-forget store(); the returned future is only useful for tests and shutdown."""
        future = self._executor.submit(
            self.store, raw_query, category, search_results, analysis, provenance
        )
        future.add_done_callback(_log_background_failure)
        return future

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Delete rows older than the TTL where the backend supports it."""
        if not self.enabled:
            return 0
        cutoff = self.clock() - timedelta(hours=self.ttl_hours)
        try:
            return self.entry_store.purge_before(cutoff)
        except NotImplementedError as e:
            logger.info(f"Purge skipped: {e}")
            return 0
        except StoreIOError as e:
            logger.warning(f"Purge failed: {e}")
            return 0

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.initialize().value,
            "backend": self.entry_store.name,
            "ttl_hours": self.ttl_hours,
            "canonical_queries": self.canonicalize,
        }

    def close(self):
        """Wait for pending background writes, then close the store."""
        self._executor.shutdown(wait=True)
        self.entry_store.close()


def create_entry_store(backend: Optional[str] = None) -> EntryStore:
    """Build the configured entry store."""
    import config

    backend = (backend or config.CACHE_BACKEND).lower()
    if backend == "sheets":
        from engine.sheets_storage import SheetsStorage

        sheets = config.GOOGLE_SHEETS
        return SheetsStorage(
            spreadsheet_id=sheets["spreadsheet_id"],
            credentials_json=sheets["credentials"],
            credentials_file=sheets["credentials_file"],
            sheet_name=sheets["sheet_name"],
            timeout=sheets["timeout"],
        )
    if backend == "local":
        from engine.storage import LocalStorage

        return LocalStorage(config.CACHE_DB_PATH)
    raise ValueError(f"Unknown cache backend: {backend}. Expected 'local' or 'sheets'.")


def create_cache_service(store: Optional[EntryStore] = None) -> CacheService:
    """Build a CacheService from config."""
    import config

    return CacheService(
        store=store or create_entry_store(),
        ttl_hours=config.CACHE_TTL_HOURS,
        canonicalize=config.CANONICAL_QUERIES,
        background_workers=config.BACKGROUND_WRITE_WORKERS,
    )
