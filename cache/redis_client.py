"""
Redis-based cache client implementation.

Redis has no notion of named caches, so the namespace becomes a key
prefix: session "abc" in cache "php-sessions" is stored under
"php-sessions:abc". TTLs are applied with SETEX.
"""

from datetime import timedelta
from typing import Optional

from redis import exceptions as redis_exceptions

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


def classify_redis_error(error: Exception) -> CacheErrorKind:
    """
    Map a redis-py exception onto a CacheErrorKind.

    Args:
        error: The exception raised by the Redis client.

    Returns:
        The matching classification, UNKNOWN when nothing fits.
    """
    # decode_responses=True raises a plain UnicodeDecodeError for binary values
    if isinstance(error, UnicodeDecodeError):
        return CacheErrorKind.INVALID_ARGUMENT
    # AuthenticationError subclasses ConnectionError, so it is checked first
    if isinstance(error, redis_exceptions.AuthenticationError):
        return CacheErrorKind.AUTHENTICATION
    if isinstance(error, redis_exceptions.TimeoutError):
        return CacheErrorKind.TIMEOUT
    if isinstance(error, redis_exceptions.ConnectionError):
        return CacheErrorKind.UNAVAILABLE
    if isinstance(error, redis_exceptions.ResponseError):
        return CacheErrorKind.INVALID_ARGUMENT
    if isinstance(error, redis_exceptions.RedisError):
        return CacheErrorKind.INTERNAL
    return CacheErrorKind.UNKNOWN


class RedisCacheClient(CacheClient):
    """
    Redis-backed CacheClient.

    Attributes:
        redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
        client: Redis async client instance (initialized via connect())
    """

    def __init__(self, redis_url: str):
        """
        Initialize the Redis cache client.

        Args:
            redis_url: Redis connection URL.
        """
        self.redis_url = redis_url
        self.client = None

    async def connect(self) -> None:
        """
        Create the async Redis client and verify it answers PING.

        Raises:
            redis.exceptions.RedisError: If Redis cannot be reached.
        """
        import redis.asyncio as redis
        client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            await client.ping()
        except redis_exceptions.RedisError:
            await client.close()
            raise
        self.client = client

    def _get_key(self, namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    def _error(self, error: Exception) -> CacheError:
        return CacheError(kind=classify_redis_error(error), message=str(error))

    def _not_connected(self) -> Optional[CacheError]:
        if self.client is None:
            return CacheError(
                kind=CacheErrorKind.UNAVAILABLE,
                message="Redis client not connected. Call connect() first."
            )
        return None

    async def get(self, namespace: str, key: str) -> CacheGetResult:
        error = self._not_connected()
        if error:
            return error

        try:
            data = await self.client.get(self._get_key(namespace, key))
        except (redis_exceptions.RedisError, UnicodeDecodeError) as e:
            return self._error(e)

        if data is None:
            return CacheMiss()
        return CacheHit(value=data)

    async def set(
        self,
        namespace: str,
        key: str,
        value: str,
        ttl: timedelta
    ) -> CacheWriteResult:
        error = self._not_connected()
        if error:
            return error

        ttl_seconds = int(ttl.total_seconds())
        if ttl_seconds <= 0:
            return CacheError(
                kind=CacheErrorKind.INVALID_ARGUMENT,
                message=f"TTL must be at least one second, got {ttl.total_seconds()}"
            )

        try:
            await self.client.setex(self._get_key(namespace, key), ttl_seconds, value)
        except (redis_exceptions.RedisError, UnicodeDecodeError) as e:
            return self._error(e)
        return CacheSuccess()

    async def delete(self, namespace: str, key: str) -> CacheWriteResult:
        error = self._not_connected()
        if error:
            return error

        try:
            await self.client.delete(self._get_key(namespace, key))
        except (redis_exceptions.RedisError, UnicodeDecodeError) as e:
            return self._error(e)
        return CacheSuccess()

    async def close(self) -> None:
        if self.client:
            await self.client.close()
            self.client = None
