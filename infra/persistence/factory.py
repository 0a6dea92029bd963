from __future__ import annotations

from domain.models import CacheBackend, ServiceConfig
from domain.ports import CacheStorePort, ClockPort

from .json_file_cache_store import JsonFileCacheStore
from .memory_cache_store import InMemoryCacheStore
from .sqlite_cache_store import SQLiteCacheStore


def build_cache_store(config: ServiceConfig, clock: ClockPort) -> CacheStorePort:
    """Pick the cache backend named by ``CACHE_BACKEND``."""
    ttl = config.cache_ttl
    if config.cache_backend is CacheBackend.MEMORY:
        return InMemoryCacheStore(clock=clock, ttl=ttl)
    if config.cache_backend is CacheBackend.FILE:
        return JsonFileCacheStore(config.resolved_cache_index_path, clock=clock, ttl=ttl)
    return SQLiteCacheStore(config.resolved_cache_index_path, clock=clock, ttl=ttl)
