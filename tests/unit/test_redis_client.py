"""
Unit tests for the Redis cache client.

The redis-py client is replaced with a mock, so these tests check key
layout, TTL handling and error classification without a server.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis import exceptions as redis_exceptions

from cache.client import CacheError, CacheErrorKind, CacheHit, CacheMiss, CacheSuccess
from cache.redis_client import RedisCacheClient, classify_redis_error
from session.cache_handler import CacheSessionHandler
from session.handler import SessionRead
from tests.conftest import make_settings


@pytest.fixture
def redis_client(mock_redis) -> RedisCacheClient:
    client = RedisCacheClient("redis://localhost:6379/0")
    client.client = mock_redis
    return client


class TestClassifyRedisError:

    @pytest.mark.parametrize("error,kind", [
        (redis_exceptions.AuthenticationError("bad password"), CacheErrorKind.AUTHENTICATION),
        (redis_exceptions.TimeoutError("timed out"), CacheErrorKind.TIMEOUT),
        (redis_exceptions.ConnectionError("refused"), CacheErrorKind.UNAVAILABLE),
        (redis_exceptions.ResponseError("WRONGTYPE"), CacheErrorKind.INVALID_ARGUMENT),
        (redis_exceptions.RedisError("other"), CacheErrorKind.INTERNAL),
        (UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"), CacheErrorKind.INVALID_ARGUMENT),
        (RuntimeError("not redis"), CacheErrorKind.UNKNOWN),
    ])
    def test_classification(self, error, kind):
        assert classify_redis_error(error) == kind

    def test_authentication_failure_is_not_retried(self):
        kind = classify_redis_error(redis_exceptions.AuthenticationError("denied"))
        assert CacheError(kind=kind, message="denied").retryable is False


class TestRedisCacheClient:

    @pytest.mark.asyncio
    async def test_get_uses_namespaced_key(self, redis_client, mock_redis):
        mock_redis.get.return_value = '{"data":"x","expiry":1}'

        result = await redis_client.get("php-sessions", "abc")

        mock_redis.get.assert_awaited_once_with("php-sessions:abc")
        assert result == CacheHit(value='{"data":"x","expiry":1}')

    @pytest.mark.asyncio
    async def test_get_miss(self, redis_client, mock_redis):
        mock_redis.get.return_value = None
        assert await redis_client.get("php-sessions", "abc") == CacheMiss()

    @pytest.mark.asyncio
    async def test_set_uses_setex_with_whole_seconds(self, redis_client, mock_redis):
        result = await redis_client.set("php-sessions", "abc", "v", timedelta(seconds=300))

        mock_redis.setex.assert_awaited_once_with("php-sessions:abc", 300, "v")
        assert result == CacheSuccess()

    @pytest.mark.asyncio
    async def test_set_rejects_sub_second_ttl(self, redis_client, mock_redis):
        result = await redis_client.set("php-sessions", "abc", "v", timedelta(milliseconds=500))

        assert isinstance(result, CacheError)
        assert result.kind == CacheErrorKind.INVALID_ARGUMENT
        mock_redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, redis_client, mock_redis):
        assert await redis_client.delete("php-sessions", "abc") == CacheSuccess()
        mock_redis.delete.assert_awaited_once_with("php-sessions:abc")

    @pytest.mark.asyncio
    async def test_errors_become_cache_errors(self, redis_client, mock_redis):
        mock_redis.get.side_effect = redis_exceptions.ConnectionError("connection reset")
        mock_redis.setex.side_effect = redis_exceptions.TimeoutError("slow")
        mock_redis.delete.side_effect = redis_exceptions.ResponseError("bad")

        get_result = await redis_client.get("c", "k")
        set_result = await redis_client.set("c", "k", "v", timedelta(seconds=5))
        delete_result = await redis_client.delete("c", "k")

        assert get_result == CacheError(kind=CacheErrorKind.UNAVAILABLE, message="connection reset")
        assert set_result.kind == CacheErrorKind.TIMEOUT
        assert delete_result.kind == CacheErrorKind.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_undecodable_value_becomes_cache_error(self, redis_client, mock_redis):
        mock_redis.get.side_effect = UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte")

        result = await redis_client.get("c", "k")

        assert isinstance(result, CacheError)
        assert result.kind == CacheErrorKind.INVALID_ARGUMENT
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_undecodable_session_is_a_miss_for_the_handler(self, redis_client, mock_redis, clock):
        mock_redis.get.side_effect = UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte")
        handler = CacheSessionHandler(make_settings(), clock=clock)
        handler.client = redis_client

        assert await handler.read("abc") == SessionRead.miss("abc")
        assert await handler.validate_id("abc") is False

    @pytest.mark.asyncio
    async def test_operations_fail_before_connect(self):
        client = RedisCacheClient("redis://localhost:6379/0")

        result = await client.get("c", "k")

        assert isinstance(result, CacheError)
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_close_releases_client(self, redis_client, mock_redis):
        await redis_client.close()

        mock_redis.close.assert_awaited_once()
        assert redis_client.client is None

    @pytest.mark.asyncio
    async def test_connect_pings_server(self, mock_redis):
        client = RedisCacheClient("redis://localhost:6379/0")

        with patch("redis.asyncio.from_url", return_value=mock_redis) as from_url:
            await client.connect()

        from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)
        mock_redis.ping.assert_awaited_once()
        assert client.client is mock_redis

    @pytest.mark.asyncio
    async def test_connect_failure_closes_and_raises(self):
        failing = MagicMock()
        failing.ping = AsyncMock(side_effect=redis_exceptions.ConnectionError("refused"))
        failing.close = AsyncMock()
        client = RedisCacheClient("redis://localhost:6379/0")

        with patch("redis.asyncio.from_url", return_value=failing):
            with pytest.raises(redis_exceptions.ConnectionError):
                await client.connect()

        failing.close.assert_awaited_once()
        assert client.client is None
