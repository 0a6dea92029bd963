from __future__ import annotations

import asyncio
from pathlib import Path

from domain.errors import StorageError
from domain.models import (
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    CaptureRequest,
    CaptureResult,
)
from domain.ports import (
    CacheStorePort,
    ClockPort,
    FrameEncoderPort,
    IdGeneratorPort,
    LoggerPort,
    RenderEnginePort,
)
from domain.services.capture_job import CaptureJob
from domain.services.gate import ConcurrencyGate
from domain.services.keys import cache_key_for


class CaptureService:
    """
    Serves capture requests from the cache or by running a ``CaptureJob``.

    Cache hits never touch the gate. Concurrent misses for the same key are
    not coalesced; each one renders and the last successful write wins.
    """

    def __init__(
        self,
        *,
        engine: RenderEnginePort,
        encoder: FrameEncoderPort,
        cache_store: CacheStorePort,
        gate: ConcurrencyGate,
        storage_dir: str | Path,
        clock: ClockPort,
        logger: LoggerPort,
        id_generator: IdGeneratorPort,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        frame_interval: float | None = None,
    ) -> None:
        self._engine = engine
        self._encoder = encoder
        self._cache_store = cache_store
        self._gate = gate
        self._storage_dir = Path(storage_dir)
        self._clock = clock
        self._logger = logger
        self._id_generator = id_generator
        self._navigation_timeout_ms = navigation_timeout_ms
        self._frame_interval = frame_interval

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        key = cache_key_for(request)
        if not request.bypass_cache:
            cached = self.lookup(key)
            if cached is not None:
                self._logger.info("cache hit", key=key, url=request.url)
                return CaptureResult(key=key, path=cached, format=request.format, from_cache=True)

        job = CaptureJob(
            job_id=self._id_generator.new_job_id(),
            key=key,
            request=request,
            engine=self._engine,
            encoder=self._encoder,
            cache_store=self._cache_store,
            storage_dir=self._storage_dir,
            clock=self._clock,
            logger=self._logger,
            navigation_timeout_ms=self._navigation_timeout_ms,
            frame_interval=self._frame_interval,
        )
        self._logger.info(
            "cache miss",
            key=key,
            url=request.url,
            job_id=job.job_id,
            bypass=request.bypass_cache,
            queued=self._gate.waiting,
        )
        async with self._gate.slot():
            path = await job.run()
        return CaptureResult(key=key, path=path, format=request.format)

    def lookup(self, key: str) -> Path | None:
        try:
            filename = self._cache_store.get(key)
        except StorageError as exc:
            self._logger.warning("cache read failed", key=key, error=str(exc))
            return None
        if filename is None:
            return None
        path = self._storage_dir / filename
        if not path.is_file():
            self._logger.warning("cached artifact missing", key=key, filename=filename)
            return None
        return path

    def sweep_expired(self) -> int:
        """Drop expired index entries and delete their artifact files."""
        removed = self._cache_store.sweep_expired()
        for entry in removed:
            try:
                (self._storage_dir / entry.filename).unlink(missing_ok=True)
            except OSError as exc:
                self._logger.warning(
                    "expired artifact delete failed",
                    key=entry.key,
                    filename=entry.filename,
                    error=str(exc),
                )
        if removed:
            self._logger.info("cache swept", removed=len(removed))
        return len(removed)

    async def run_sweeper(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.sweep_expired()
            except StorageError as exc:
                self._logger.error("cache sweep failed", error=str(exc))
