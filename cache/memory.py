"""
In-process cache client for development and tests.

Entries live in a dictionary with expiry deadlines measured on a
monotonic clock, mimicking the TTL behaviour of the remote cache.
"""

import time
from datetime import timedelta
from typing import Callable, Optional

from cache.client import (
    CacheClient,
    CacheError,
    CacheErrorKind,
    CacheGetResult,
    CacheHit,
    CacheMiss,
    CacheSuccess,
    CacheWriteResult,
)


class InMemoryCacheClient(CacheClient):
    """
    Dictionary-backed CacheClient.

    Keys are scoped by namespace, so two caches never see each other's
    entries. Expired entries are dropped lazily on access.

    Attributes:
        connected: Whether connect() has been called and close() has not.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Initialize the in-memory client.

        Args:
            clock: Monotonic clock used for expiry, overridable in tests.
        """
        self._clock = clock or time.monotonic
        self._entries: dict[tuple[str, str], tuple[str, float]] = {}
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    def _not_connected(self) -> CacheError:
        return CacheError(
            kind=CacheErrorKind.UNAVAILABLE,
            message="In-memory cache client is not connected"
        )

    async def get(self, namespace: str, key: str) -> CacheGetResult:
        if not self.connected:
            return self._not_connected()

        entry = self._entries.get((namespace, key))
        if entry is None:
            return CacheMiss()

        value, deadline = entry
        if self._clock() >= deadline:
            del self._entries[(namespace, key)]
            return CacheMiss()

        return CacheHit(value=value)

    async def set(
        self,
        namespace: str,
        key: str,
        value: str,
        ttl: timedelta
    ) -> CacheWriteResult:
        if not self.connected:
            return self._not_connected()

        seconds = ttl.total_seconds()
        if seconds <= 0:
            return CacheError(
                kind=CacheErrorKind.INVALID_ARGUMENT,
                message=f"TTL must be positive, got {seconds} seconds"
            )

        self._entries[(namespace, key)] = (value, self._clock() + seconds)
        return CacheSuccess()

    async def delete(self, namespace: str, key: str) -> CacheWriteResult:
        if not self.connected:
            return self._not_connected()

        self._entries.pop((namespace, key), None)
        return CacheSuccess()

    async def close(self) -> None:
        self.connected = False
