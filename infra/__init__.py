"""Infrastructure adapters – concrete implementations of domain ports."""

from .browser import PlaywrightRenderEngine, PlaywrightRenderSurface
from .config import EnvConfigProvider
from .encoding import FfmpegWebpEncoder
from .persistence import (
    InMemoryCacheStore,
    JsonFileCacheStore,
    SQLiteCacheStore,
    build_cache_store,
)
from .runtime import StructuredLogger, SystemClock, UuidIdGenerator

__all__ = [
    "PlaywrightRenderEngine",
    "PlaywrightRenderSurface",
    "EnvConfigProvider",
    "FfmpegWebpEncoder",
    "InMemoryCacheStore",
    "SQLiteCacheStore",
    "JsonFileCacheStore",
    "build_cache_store",
    "SystemClock",
    "UuidIdGenerator",
    "StructuredLogger",
]
