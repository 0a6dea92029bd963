from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path

from domain.errors import NotReadyError
from domain.models import DEFAULT_NAVIGATION_TIMEOUT_MS, EngineState, ServiceConfig
from domain.ports import (
    CacheStorePort,
    ClockPort,
    FrameEncoderPort,
    IdGeneratorPort,
    LoggerPort,
    RenderEnginePort,
)
from domain.services import CaptureService, ConcurrencyGate


class ServiceRuntime:
    """
    Owns the render engine and everything built around it.

    Lifecycle is ``UNINITIALIZED -> READY -> SHUTTING_DOWN``. HTTP handlers get
    this object injected and ask it for the capture service, which is only
    handed out once the engine has launched.
    """

    def __init__(
        self,
        *,
        engine: RenderEnginePort,
        encoder: FrameEncoderPort,
        cache_store: CacheStorePort,
        storage_dir: str | Path,
        max_concurrent_captures: int,
        clock: ClockPort,
        logger: LoggerPort,
        id_generator: IdGeneratorPort,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        sweep_interval_seconds: float = 0,
        frame_interval: float | None = None,
    ) -> None:
        self._engine = engine
        self._cache_store = cache_store
        self._storage_dir = Path(storage_dir)
        self._logger = logger
        self._sweep_interval_seconds = sweep_interval_seconds
        self._sweeper: asyncio.Task[None] | None = None
        self.state = EngineState.UNINITIALIZED
        self.gate = ConcurrencyGate(max_concurrent_captures)
        self.service = CaptureService(
            engine=engine,
            encoder=encoder,
            cache_store=cache_store,
            gate=self.gate,
            storage_dir=self._storage_dir,
            clock=clock,
            logger=logger,
            id_generator=id_generator,
            navigation_timeout_ms=navigation_timeout_ms,
            frame_interval=frame_interval,
        )

    @classmethod
    def from_config(cls, config: ServiceConfig, *, logger: LoggerPort) -> "ServiceRuntime":
        from infra.browser import PlaywrightRenderEngine
        from infra.encoding import FfmpegWebpEncoder
        from infra.persistence import build_cache_store
        from infra.runtime import SystemClock, UuidIdGenerator

        clock = SystemClock()
        return cls(
            engine=PlaywrightRenderEngine(executable_path=config.chrome_path),
            encoder=FfmpegWebpEncoder(ffmpeg_path=config.ffmpeg_path),
            cache_store=build_cache_store(config, clock),
            storage_dir=config.storage_dir,
            max_concurrent_captures=config.max_concurrent_captures,
            clock=clock,
            logger=logger,
            id_generator=UuidIdGenerator(),
            navigation_timeout_ms=config.navigation_timeout_ms,
            sweep_interval_seconds=config.cache_sweep_interval_seconds,
        )

    @property
    def is_ready(self) -> bool:
        return self.state is EngineState.READY

    def require_ready(self) -> CaptureService:
        if not self.is_ready:
            raise NotReadyError()
        return self.service

    async def start(self) -> None:
        if self.state is not EngineState.UNINITIALIZED:
            raise RuntimeError(f"runtime cannot start from state {self.state.value}")
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        await self._engine.launch()
        removed = self.service.sweep_expired()
        if self._sweep_interval_seconds > 0:
            self._sweeper = asyncio.create_task(
                self.service.run_sweeper(self._sweep_interval_seconds)
            )
        self.state = EngineState.READY
        self._logger.info(
            "renderer ready",
            storage_dir=str(self._storage_dir),
            max_concurrent_captures=self.gate.capacity,
            expired_removed=removed,
        )

    async def boot(self) -> bool:
        """Start the runtime, logging instead of raising on failure."""
        try:
            await self.start()
        except Exception as exc:
            self._logger.error(
                "renderer boot failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return False
        return True

    def close_cache(self) -> None:
        self._cache_store.close()

    async def shutdown(self) -> None:
        if self.state is EngineState.SHUTTING_DOWN:
            return
        self.state = EngineState.SHUTTING_DOWN
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        await self._engine.close()
        self.close_cache()
        self._logger.info("renderer stopped")
