from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import timedelta
from pathlib import Path

from domain.errors import StorageError
from domain.models import CacheEntry
from domain.ports import ClockPort

from ._datetime import dt_to_iso, iso_to_dt


class JsonFileCacheStore:
    """
    Disk-persisted key/value implementation of ``CacheStorePort``.

    The whole index lives in one JSON document that is loaded at open and
    rewritten atomically (temporary file + rename) after every mutation.
    """

    def __init__(
        self,
        path: str,
        *,
        clock: ClockPort,
        ttl: timedelta | None = None,
    ) -> None:
        self._path = Path(path)
        self._clock = clock
        self._ttl = ttl
        self._lock = threading.Lock()
        self._entries = self._load()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock.now(), self._ttl):
            return None
        return entry.filename

    def set(self, key: str, filename: str) -> None:
        entry = CacheEntry(key=key, filename=filename, created_at=self._clock.now())
        with self._lock:
            previous = self._entries.get(key)
            self._entries[key] = entry
            try:
                self._flush()
            except StorageError:
                if previous is None:
                    del self._entries[key]
                else:
                    self._entries[key] = previous
                raise

    def sweep_expired(self) -> list[CacheEntry]:
        now = self._clock.now()
        with self._lock:
            expired = [e for e in self._entries.values() if e.is_expired(now, self._ttl)]
            if not expired:
                return []
            for entry in expired:
                del self._entries[entry.key]
            self._flush()
        return expired

    def close(self) -> None:
        return None

    def _load(self) -> dict[str, CacheEntry]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return {
                key: CacheEntry(
                    key=key,
                    filename=item["filename"],
                    created_at=iso_to_dt(item["created_at"]),
                )
                for key, item in data.items()
            }
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StorageError(f"cannot read cache index {self._path}: {exc}") from exc

    def _flush(self) -> None:
        payload = {
            key: {"filename": entry.filename, "created_at": dt_to_iso(entry.created_at)}
            for key, entry in self._entries.items()
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            raise StorageError(f"cache write failed: {exc}") from exc
