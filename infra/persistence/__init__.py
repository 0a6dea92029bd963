"""Cache index adapters for ``CacheStorePort``."""

from .factory import build_cache_store
from .json_file_cache_store import JsonFileCacheStore
from .memory_cache_store import InMemoryCacheStore
from .sqlite_cache_store import SQLiteCacheStore

__all__ = [
    "InMemoryCacheStore",
    "SQLiteCacheStore",
    "JsonFileCacheStore",
    "build_cache_store",
]
