"""Append-only entry stores for the result cache (interface + local SQLite backend)."""

import sqlite3
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from engine.errors import MalformedEntry, StoreIOError
from engine.models import CacheRow, Entry, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)


class EntryStore(ABC):
    """Abstract append-oriented row store. Rows are a log, never updated in place."""

    name = "abstract"

    @abstractmethod
    def bootstrap(self) -> bool:
        """
        Create the storage structure (table/sheet + header) if missing.

        Must be idempotent and must not raise: misconfiguration or an
        unreachable backend is reported by returning False.

        Returns:
            True if the store is usable
        """
        pass

    @abstractmethod
    def append(self, entry: Entry) -> None:
        """
        Append one immutable row.

        Raises:
            StoreIOError: If the write fails
        """
        pass

    @abstractmethod
    def scan_all(self) -> List[CacheRow]:
        """
        Return every data row in insertion order (header excluded).

        Raises:
            StoreIOError: If the read fails
        """
        pass

    def find_by_key(self, key: str) -> List[CacheRow]:
        """All rows whose stored hash equals key, in insertion order."""
        return [row for row in self.scan_all() if row.hash == key]

    def purge_before(self, cutoff: datetime) -> int:
        """Delete rows created before cutoff. Optional retention hook."""
        raise NotImplementedError(f"{self.name} store does not support purging")

    def close(self) -> None:
        """Release backend resources."""
        pass


class LocalStorage(EntryStore):
    """SQLite-backed store for local development and tests (file path or ':memory:')"""

    name = "local"

    def __init__(self, db_path: Union[str, Path, None] = None):
        if db_path is None:
            db_path = Path.home() / '.rebate_finder' / 'cache.db'

        self.db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        # One connection shared across request and background-writer threads
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Open the SQLite connection on first use"""
        if self._conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def bootstrap(self) -> bool:
        """Initialize database schema"""
        try:
            with self._lock:
                conn = self._get_connection()
                cursor = conn.cursor()
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS cache_entries (
                        row_id INTEGER PRIMARY KEY AUTOINCREMENT,
                        query TEXT NOT NULL,
                        category TEXT NOT NULL,
                        search_results_json TEXT,
                        analysis_json TEXT,
                        timestamp TEXT NOT NULL,
                        hash TEXT NOT NULL,
                        search_origin TEXT,
                        analysis_origin TEXT
                    )
                """)
                cursor.execute("CREATE INDEX IF NOT EXISTS idx_cache_hash ON cache_entries(hash)")
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Local cache store unavailable at {self.db_path}: {e}")
            return False

        logger.info(f"Local cache store ready: {self.db_path}")
        return True

    def append(self, entry: Entry) -> None:
        self.append_row(entry.to_row())

    def append_row(self, row: CacheRow) -> None:
        """Append a raw row as-is (used for imports and partial writes)."""
        try:
            with self._lock:
                conn = self._get_connection()
                conn.execute("""
                    INSERT INTO cache_entries
                    (query, category, search_results_json, analysis_json, timestamp, hash, search_origin, analysis_origin)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, tuple(row.to_values()))
                conn.commit()
        except sqlite3.Error as e:
            raise StoreIOError(f"Failed to append cache row: {e}") from e

    def _select(self, where: str = "", params: tuple = ()) -> List[CacheRow]:
        sql = f"""
            SELECT query, category, search_results_json, analysis_json,
                   timestamp, hash, search_origin, analysis_origin
            FROM cache_entries {where}
            ORDER BY row_id
        """
        try:
            with self._lock:
                cursor = self._get_connection().execute(sql, params)
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreIOError(f"Failed to read cache rows: {e}") from e
        return [CacheRow.from_values(list(row)) for row in rows]

    def scan_all(self) -> List[CacheRow]:
        return self._select()

    def find_by_key(self, key: str) -> List[CacheRow]:
        return self._select("WHERE hash = ?", (key,))

    def purge_before(self, cutoff: datetime) -> int:
        """Delete rows older than cutoff; rows with unparseable timestamps are kept."""
        try:
            with self._lock:
                conn = self._get_connection()
                rows = conn.execute("SELECT row_id, timestamp FROM cache_entries").fetchall()
                stale = []
                for row in rows:
                    try:
                        if parse_timestamp(row["timestamp"]) < cutoff:
                            stale.append((row["row_id"],))
                    except MalformedEntry:
                        continue
                conn.executemany("DELETE FROM cache_entries WHERE row_id = ?", stale)
                conn.commit()
        except sqlite3.Error as e:
            raise StoreIOError(f"Failed to purge cache rows: {e}") from e

        logger.info(f"Purged {len(stale)} cache rows older than {format_timestamp(cutoff)}")
        return len(stale)

    def close(self):
        """Close the SQLite connection if open."""
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                finally:
                    self._conn = None
