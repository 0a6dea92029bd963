from __future__ import annotations

import os
from typing import Mapping

from domain.models import DEFAULT_NAVIGATION_TIMEOUT_MS, CacheBackend, ServiceConfig

DEFAULT_STORAGE_DIR = "/tmp/capture"


class EnvConfigProvider:
    """Reads ``ServiceConfig`` from environment-style variables.

    Every public method re-reads the mapping so tests can hand in a plain
    dict and the CLI can load a ``.env`` file beforehand.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def validate(self) -> list[str]:
        errors: list[str] = []

        ttl = self._int("CACHE_TTL_DAYS", 30, errors)
        if ttl is not None and ttl < 0:
            errors.append("CACHE_TTL_DAYS must be 0 (never expire) or a positive number of days.")

        max_captures = self._int("MAX_CONCURRENT_CAPTURES", 4, errors)
        if max_captures is not None and max_captures < 1:
            errors.append("MAX_CONCURRENT_CAPTURES must be at least 1.")

        timeout = self._int("NAVIGATION_TIMEOUT_MS", DEFAULT_NAVIGATION_TIMEOUT_MS, errors)
        if timeout is not None and timeout <= 0:
            errors.append("NAVIGATION_TIMEOUT_MS must be positive.")

        port = self._int("PORT", 3000, errors)
        if port is not None and not 0 < port < 65536:
            errors.append("PORT must be between 1 and 65535.")

        sweep = self._float("CACHE_SWEEP_INTERVAL_SECONDS", 120.0, errors)
        if sweep is not None and sweep < 0:
            errors.append("CACHE_SWEEP_INTERVAL_SECONDS must be 0 (disabled) or positive.")

        backend = self._get("CACHE_BACKEND")
        if backend is not None and backend.lower() not in {b.value for b in CacheBackend}:
            choices = ", ".join(b.value for b in CacheBackend)
            errors.append(f"CACHE_BACKEND must be one of: {choices}.")

        chrome_path = self._get("CHROME_PATH")
        if chrome_path is not None and not os.path.isfile(chrome_path):
            errors.append(f"CHROME_PATH does not point to a file: {chrome_path}")

        return errors

    def get_config(self) -> ServiceConfig:
        errors = self.validate()
        if errors:
            raise ValueError("; ".join(errors))
        backend = self._get("CACHE_BACKEND")
        return ServiceConfig(
            storage_dir=self._get("STORAGE_DIR") or self._get("TMP_DIR") or DEFAULT_STORAGE_DIR,
            cache_ttl_days=int(self._get("CACHE_TTL_DAYS") or 30),
            max_concurrent_captures=int(self._get("MAX_CONCURRENT_CAPTURES") or 4),
            chrome_path=self._get("CHROME_PATH"),
            auth_token=self._get("AUTH_TOKEN"),
            cache_backend=CacheBackend(backend.lower()) if backend else CacheBackend.SQLITE,
            cache_index_path=self._get("CACHE_INDEX_PATH"),
            cache_sweep_interval_seconds=float(self._get("CACHE_SWEEP_INTERVAL_SECONDS") or 120),
            navigation_timeout_ms=int(
                self._get("NAVIGATION_TIMEOUT_MS") or DEFAULT_NAVIGATION_TIMEOUT_MS
            ),
            ffmpeg_path=self._get("FFMPEG_PATH") or "ffmpeg",
            host=self._get("HOST") or "0.0.0.0",
            port=int(self._get("PORT") or 3000),
        )

    # -- internal helpers ---------------------------------------------------

    def _get(self, name: str) -> str | None:
        value = self._environ.get(name)
        if value is None or not value.strip():
            return None
        return value.strip()

    def _int(self, name: str, default: int, errors: list[str]) -> int | None:
        raw = self._get(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            errors.append(f"{name} must be an integer, got {raw!r}.")
            return None

    def _float(self, name: str, default: float, errors: list[str]) -> float | None:
        raw = self._get(name)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            errors.append(f"{name} must be a number, got {raw!r}.")
            return None
