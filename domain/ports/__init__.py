from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncContextManager, Protocol, Sequence, runtime_checkable

from domain.models import CacheEntry


@runtime_checkable
class CacheStorePort(Protocol):
    """
    Key to artifact-filename index with TTL expiry.

    Implementations must treat expired entries as absent on read and must be
    safe to call from many in-flight capture jobs at once.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, filename: str) -> None:
        ...

    @abstractmethod
    def sweep_expired(self) -> Sequence[CacheEntry]:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


@runtime_checkable
class RenderSurfacePort(Protocol):
    """One page loaded in the render engine."""

    async def navigate(self, url: str, *, timeout_ms: int) -> None:
        ...

    async def screenshot(self, path: Path, *, full_page: bool) -> None:
        ...


@runtime_checkable
class RenderEnginePort(Protocol):
    """
    Shared rendering engine.

    ``open_surface`` hands out a fresh surface scoped to an ``async with``
    block; leaving the block releases it.
    """

    async def launch(self) -> None:
        ...

    async def close(self) -> None:
        ...

    def open_surface(self) -> AsyncContextManager[RenderSurfacePort]:
        ...


@runtime_checkable
class FrameEncoderPort(Protocol):
    """Turns ``frame-000.png``, ``frame-001.png``, ... into one animated file."""

    async def encode(self, frame_dir: Path, output_path: Path, *, fps: int) -> None:
        ...


@runtime_checkable
class ClockPort(Protocol):
    """Time source for deterministic and easily testable code."""

    def now(self) -> datetime:
        ...

    def monotonic(self) -> float:
        ...


@runtime_checkable
class IdGeneratorPort(Protocol):
    def new_job_id(self) -> str:
        ...


@runtime_checkable
class LoggerPort(Protocol):
    """Structured, testable logging abstraction."""

    def info(self, message: str, **fields: Any) -> None:
        ...

    def warning(self, message: str, **fields: Any) -> None:
        ...

    def error(self, message: str, **fields: Any) -> None:
        ...


__all__ = [
    "CacheStorePort",
    "RenderSurfacePort",
    "RenderEnginePort",
    "FrameEncoderPort",
    "ClockPort",
    "IdGeneratorPort",
    "LoggerPort",
]
