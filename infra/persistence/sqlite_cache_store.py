from __future__ import annotations

import sqlite3
import threading
from datetime import timedelta
from pathlib import Path

from domain.errors import StorageError
from domain.models import CacheEntry
from domain.ports import ClockPort

from ._datetime import dt_to_iso, iso_to_dt


class SQLiteCacheStore:
    """SQLite-backed implementation of ``CacheStorePort``."""

    _SCHEMA_SQL = """\
    CREATE TABLE IF NOT EXISTS cache_entries (
        key        TEXT PRIMARY KEY,
        filename   TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    """

    def __init__(
        self,
        db_path: str = ":memory:",
        *,
        clock: ClockPort,
        ttl: timedelta | None = None,
    ) -> None:
        self._clock = clock
        self._ttl = ttl
        self._lock = threading.Lock()
        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            # Jobs run on the event loop thread, test clients on their own.
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(self._SCHEMA_SQL)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"cannot open cache index {db_path}: {exc}") from exc

    def __enter__(self) -> "SQLiteCacheStore":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def get(self, key: str) -> str | None:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT key, filename, created_at FROM cache_entries WHERE key = ?",
                    (key,),
                ).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"cache read failed: {exc}") from exc
        if row is None:
            return None
        entry = self._row_to_entry(row)
        if entry.is_expired(self._clock.now(), self._ttl):
            return None
        return entry.filename

    def set(self, key: str, filename: str) -> None:
        created_at = dt_to_iso(self._clock.now())
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO cache_entries (key, filename, created_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET "
                    "filename=excluded.filename, created_at=excluded.created_at",
                    (key, filename, created_at),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StorageError(f"cache write failed: {exc}") from exc

    def sweep_expired(self) -> list[CacheEntry]:
        if self._ttl is None:
            return []
        now = self._clock.now()
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT key, filename, created_at FROM cache_entries"
                ).fetchall()
                expired = [
                    entry
                    for entry in self._readable_entries(rows)
                    if entry.is_expired(now, self._ttl)
                ]
                self._conn.executemany(
                    "DELETE FROM cache_entries WHERE key = ? AND created_at = ?",
                    [(entry.key, dt_to_iso(entry.created_at)) for entry in expired],
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StorageError(f"cache sweep failed: {exc}") from exc
        return expired

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM cache_entries").fetchone()
        return int(row[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @classmethod
    def _readable_entries(cls, rows: list[tuple[str, str, str]]) -> list[CacheEntry]:
        entries = []
        for row in rows:
            try:
                entries.append(cls._row_to_entry(row))
            except StorageError:
                # Left in place until set() overwrites the timestamp.
                continue
        return entries

    @staticmethod
    def _row_to_entry(row: tuple[str, str, str]) -> CacheEntry:
        try:
            created_at = iso_to_dt(row[2])
        except (TypeError, ValueError) as exc:
            raise StorageError(f"malformed cache row for {row[0]!r}: {exc}") from exc
        return CacheEntry(key=row[0], filename=row[1], created_at=created_at)
