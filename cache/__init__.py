"""
Cache clients for the session store.

This package defines the key-value contract the session handler consumes
and its implementations: Momento (the default serverless cache), Redis,
and an in-process store for development.
"""

from cache.client import (
    CacheClient,
    CacheError,
    CacheErrorKind,
    CacheHit,
    CacheMiss,
    CacheSuccess,
    RETRYABLE_KINDS,
)
from cache.factory import build_cache_client
from cache.memory import InMemoryCacheClient
from cache.momento_client import MomentoCacheClient
from cache.redis_client import RedisCacheClient

__all__ = [
    "CacheClient",
    "CacheError",
    "CacheErrorKind",
    "CacheHit",
    "CacheMiss",
    "CacheSuccess",
    "RETRYABLE_KINDS",
    "build_cache_client",
    "InMemoryCacheClient",
    "MomentoCacheClient",
    "RedisCacheClient",
]
