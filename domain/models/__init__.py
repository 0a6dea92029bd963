from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path

FRAMES_PER_SECOND = 4
MIN_SEQUENCE_LENGTH = 1
MAX_SEQUENCE_LENGTH = 5
DEFAULT_NAVIGATION_TIMEOUT_MS = 60_000

# Frame files share one naming scheme between the sampler and the encoder.
FRAME_FILENAME = "frame-{index:03d}.png"
FRAME_FILENAME_PATTERN = "frame-%03d.png"


class CaptureFormat(str, Enum):
    """Output formats; the value is the wire name accepted in ``format=``."""

    STILL = "png"
    ANIMATED = "webp"

    @classmethod
    def parse(cls, value: str) -> "CaptureFormat":
        lowered = value.strip().lower()
        for member in cls:
            if lowered in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown capture format: {value!r}")

    @property
    def requires_length(self) -> bool:
        return self is CaptureFormat.ANIMATED

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def media_type(self) -> str:
        return f"image/{self.value}"


class CaptureState(str, Enum):
    """Lifecycle states of a single capture job."""

    PENDING = "pending"
    NAVIGATING = "navigating"
    SCREENSHOTTING = "screenshotting"
    SAMPLING = "sampling"
    ENCODING = "encoding"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CaptureState.DONE, CaptureState.FAILED)


class EngineState(str, Enum):
    """Lifecycle of the process-wide render engine handle."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"


class CacheBackend(str, Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"
    FILE = "file"


@dataclass(frozen=True)
class CaptureRequest:
    """
    A validated capture request.

    ``url`` is already normalized. ``length`` is only set for animated
    captures; still captures always carry ``None``.
    """

    url: str
    format: CaptureFormat
    length: int | None = None
    bypass_cache: bool = False


@dataclass(frozen=True)
class CacheEntry:
    """Cache index row: artifact filename relative to the storage root."""

    key: str
    filename: str
    created_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta | None) -> bool:
        if ttl is None:
            return False
        return now - self.created_at >= ttl


@dataclass(frozen=True)
class CaptureResult:
    key: str
    path: Path
    format: CaptureFormat
    from_cache: bool = False


@dataclass(frozen=True)
class ServiceConfig:
    """Process configuration loaded from the environment."""

    storage_dir: str
    cache_ttl_days: int = 30
    max_concurrent_captures: int = 4
    chrome_path: str | None = None
    auth_token: str | None = None
    cache_backend: CacheBackend = CacheBackend.SQLITE
    cache_index_path: str | None = None
    cache_sweep_interval_seconds: float = 120.0
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    ffmpeg_path: str = "ffmpeg"
    host: str = "0.0.0.0"
    port: int = 3000

    @property
    def cache_ttl(self) -> timedelta | None:
        if self.cache_ttl_days <= 0:
            return None
        return timedelta(days=self.cache_ttl_days)

    @property
    def resolved_cache_index_path(self) -> str:
        if self.cache_index_path:
            return self.cache_index_path
        suffix = ".json" if self.cache_backend is CacheBackend.FILE else ".db"
        return str(Path(self.storage_dir) / f"cache-index{suffix}")


__all__ = [
    "FRAMES_PER_SECOND",
    "MIN_SEQUENCE_LENGTH",
    "MAX_SEQUENCE_LENGTH",
    "DEFAULT_NAVIGATION_TIMEOUT_MS",
    "FRAME_FILENAME",
    "FRAME_FILENAME_PATTERN",
    "CaptureFormat",
    "CaptureState",
    "EngineState",
    "CacheBackend",
    "CaptureRequest",
    "CacheEntry",
    "CaptureResult",
    "ServiceConfig",
]
