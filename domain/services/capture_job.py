from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import Awaitable, Callable

from domain.errors import CaptureFailedError, StorageError
from domain.models import (
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    FRAME_FILENAME,
    FRAMES_PER_SECOND,
    CaptureFormat,
    CaptureRequest,
    CaptureState,
)
from domain.ports import (
    CacheStorePort,
    ClockPort,
    FrameEncoderPort,
    LoggerPort,
    RenderEnginePort,
    RenderSurfacePort,
)

_TRANSITIONS: dict[CaptureState, frozenset[CaptureState]] = {
    CaptureState.PENDING: frozenset({CaptureState.NAVIGATING}),
    CaptureState.NAVIGATING: frozenset({CaptureState.SCREENSHOTTING, CaptureState.SAMPLING}),
    CaptureState.SCREENSHOTTING: frozenset({CaptureState.PERSISTING}),
    CaptureState.SAMPLING: frozenset({CaptureState.ENCODING}),
    CaptureState.ENCODING: frozenset({CaptureState.PERSISTING}),
    CaptureState.PERSISTING: frozenset({CaptureState.DONE}),
    CaptureState.DONE: frozenset(),
    CaptureState.FAILED: frozenset(),
}


class CaptureJob:
    """
    Drives one render from page load to a persisted artifact.

    Still captures go ``NAVIGATING -> SCREENSHOTTING -> PERSISTING``; animated
    captures sample ``4 x length`` frames and encode them
    (``NAVIGATING -> SAMPLING -> ENCODING -> PERSISTING``). Any failure before
    persisting moves the job to ``FAILED`` and raises ``CaptureFailedError``;
    cancellation also ends in ``FAILED`` but propagates unchanged. The
    rendering surface and every intermediate file are released on all paths.
    """

    def __init__(
        self,
        *,
        job_id: str,
        key: str,
        request: CaptureRequest,
        engine: RenderEnginePort,
        encoder: FrameEncoderPort,
        cache_store: CacheStorePort,
        storage_dir: Path,
        clock: ClockPort,
        logger: LoggerPort,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        frames_per_second: int = FRAMES_PER_SECOND,
        frame_interval: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.job_id = job_id
        self.key = key
        self.request = request
        self._engine = engine
        self._encoder = encoder
        self._cache_store = cache_store
        self._storage_dir = Path(storage_dir)
        self._clock = clock
        self._logger = logger
        self._navigation_timeout_ms = navigation_timeout_ms
        self._fps = frames_per_second
        self._frame_interval = 1.0 / frames_per_second if frame_interval is None else frame_interval
        self._sleep = sleep

        self.state = CaptureState.PENDING
        self.history: list[CaptureState] = [CaptureState.PENDING]
        self.frames: list[Path] = []
        self.frame_dir: Path | None = None
        self.artifact_path: Path | None = None

    @property
    def artifact_filename(self) -> str:
        return f"{self.key}{self.request.format.extension}"

    @property
    def expected_frame_count(self) -> int:
        if self.request.format is not CaptureFormat.ANIMATED:
            return 0
        return self._fps * (self.request.length or 0)

    async def run(self) -> Path:
        if self.state is not CaptureState.PENDING:
            raise RuntimeError(f"job {self.job_id} already ran (state={self.state.value})")

        partial = self._partial_path()
        try:
            self._storage_dir.mkdir(parents=True, exist_ok=True)
            self._transition(CaptureState.NAVIGATING)
            async with self._engine.open_surface() as surface:
                await surface.navigate(self.request.url, timeout_ms=self._navigation_timeout_ms)
                if self.request.format is CaptureFormat.ANIMATED:
                    await self._sample_frames(surface)
                else:
                    self._transition(CaptureState.SCREENSHOTTING)
                    await surface.screenshot(partial, full_page=True)
            if self.request.format is CaptureFormat.ANIMATED:
                self._transition(CaptureState.ENCODING)
                try:
                    await self._encoder.encode(self.frame_dir, partial, fps=self._fps)
                finally:
                    self._discard_frames()
            final_path = self._storage_dir / self.artifact_filename
            partial.replace(final_path)
        except asyncio.CancelledError as exc:
            self._fail(exc, partial, message="capture cancelled")
            raise
        except Exception as exc:
            self._fail(exc, partial)
            raise CaptureFailedError() from exc
        finally:
            # Covers failures before encoding started.
            self._discard_frames()

        self.artifact_path = final_path
        self._transition(CaptureState.PERSISTING)
        self._persist()
        self._transition(CaptureState.DONE)
        return final_path

    async def _sample_frames(self, surface: RenderSurfacePort) -> None:
        self._transition(CaptureState.SAMPLING)
        self.frame_dir = Path(
            tempfile.mkdtemp(prefix=f"frames-{self.key}-", dir=self._storage_dir)
        )
        total = self.expected_frame_count
        for index in range(total):
            started = self._clock.monotonic()
            frame_path = self.frame_dir / FRAME_FILENAME.format(index=index)
            await surface.screenshot(frame_path, full_page=False)
            self.frames.append(frame_path)
            if index + 1 < total:
                remaining = self._frame_interval - (self._clock.monotonic() - started)
                if remaining > 0:
                    await self._sleep(remaining)
        self._logger.info(
            "frames sampled",
            job_id=self.job_id,
            key=self.key,
            frames=len(self.frames),
        )

    def _persist(self) -> None:
        try:
            self._cache_store.set(self.key, self.artifact_filename)
        except StorageError as exc:
            self._logger.error(
                "cache index write failed",
                job_id=self.job_id,
                key=self.key,
                error=str(exc),
            )

    def _fail(self, exc: BaseException, partial: Path, *, message: str = "capture failed") -> None:
        self.state = CaptureState.FAILED
        self.history.append(CaptureState.FAILED)
        self._logger.error(
            message,
            job_id=self.job_id,
            key=self.key,
            url=self.request.url,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        try:
            partial.unlink(missing_ok=True)
        except OSError as cleanup_exc:
            self._logger.warning(
                "partial artifact cleanup failed",
                job_id=self.job_id,
                error=str(cleanup_exc),
            )

    def _discard_frames(self) -> None:
        if self.frame_dir is None or not self.frame_dir.exists():
            return
        try:
            shutil.rmtree(self.frame_dir)
        except OSError as exc:
            self._logger.warning(
                "frame directory cleanup failed",
                job_id=self.job_id,
                frame_dir=str(self.frame_dir),
                error=str(exc),
            )

    def _partial_path(self) -> Path:
        return self._storage_dir / f".partial-{self.job_id}-{self.artifact_filename}"

    def _transition(self, target: CaptureState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"illegal capture transition {self.state.value} -> {target.value}"
            )
        self.state = target
        self.history.append(target)
        self._logger.info(
            "capture state",
            job_id=self.job_id,
            key=self.key,
            state=target.value,
        )
