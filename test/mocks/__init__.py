"""
Reusable fakes and in-memory implementations for tests.
"""

from .fake_cache_store import FailingCacheStore
from .fake_encoder import FAKE_WEBP, EncodeCall, FakeEncoder
from .fake_render_engine import FAKE_PNG, FakeRenderEngine, FakeRenderSurface
from .fake_runtime import InMemoryLogger, ManualClock, SequentialIdGenerator

__all__ = [
    "FAKE_PNG",
    "FAKE_WEBP",
    "EncodeCall",
    "FailingCacheStore",
    "FakeEncoder",
    "FakeRenderEngine",
    "FakeRenderSurface",
    "InMemoryLogger",
    "ManualClock",
    "SequentialIdGenerator",
]
