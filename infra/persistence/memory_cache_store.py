from __future__ import annotations

import threading
from datetime import timedelta

from domain.models import CacheEntry
from domain.ports import ClockPort


class InMemoryCacheStore:
    """
    Process-local implementation of ``CacheStorePort``.

    Entries are lost on restart. Expired entries found on read are dropped
    immediately.
    """

    def __init__(self, *, clock: ClockPort, ttl: timedelta | None = None) -> None:
        self._clock = clock
        self._ttl = ttl
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock.now(), self._ttl):
                del self._entries[key]
                return None
            return entry.filename

    def set(self, key: str, filename: str) -> None:
        entry = CacheEntry(key=key, filename=filename, created_at=self._clock.now())
        with self._lock:
            self._entries[key] = entry

    def sweep_expired(self) -> list[CacheEntry]:
        now = self._clock.now()
        with self._lock:
            expired = [e for e in self._entries.values() if e.is_expired(now, self._ttl)]
            for entry in expired:
                del self._entries[entry.key]
        return expired

    def close(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
