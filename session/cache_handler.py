"""
Cache-backed session handler.

CacheSessionHandler stores each session as one entry in a remote cache
(Momento by default), named by the session ID. The cache enforces expiry
through its native TTL, so gc has nothing to do. Each entry also embeds its
own absolute expiry so update_timestamp can skip the write while a session
still has more than half of its lifetime left.
"""

import asyncio
import time
from datetime import timedelta
from typing import Callable, Optional

from cache.client import (
    CacheClient,
    CacheError,
    CacheErrorKind,
    CacheGetResult,
    CacheHit,
    CacheSuccess,
    CacheWriteResult,
)
from cache.factory import build_cache_client
from config.settings import Settings
from resilience.retry import RetryConfig, RetryExhaustedException, retry_async
from session.codec import CorruptSessionError, decode_record, encode_record
from session.handler import SessionHandler, SessionRead
from telemetry.events import SessionEventLogger

HEALTH_CHECK_KEY = "__session_handler_health__"


class CacheSessionHandler(SessionHandler):
    """
    Session handler that keeps sessions in a remote key-value cache.

    The cache client is built with a bounded retry. If every attempt fails
    the handler keeps running without a client: reads miss and writes
    report False until a later rebuild succeeds. Operations that need the
    client rebuild it when it is missing.

    A read that fails with a retryable error rebuilds the client once and
    repeats the read once.

    Every rebuild is a single connect attempt without backoff. After a
    failed rebuild, further rebuilds are skipped until
    session_reinit_cooldown_seconds have passed.

    Attributes:
        settings: Application settings the handler was built from
        cache_name: Cache namespace holding the sessions
        ttl_seconds: Lifetime given to every written session
        client: The connected cache client, or None
        events: Structured event logger
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[], CacheClient]] = None,
        events: Optional[SessionEventLogger] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the handler. No connection is made until initialize().

        Args:
            settings: Application settings (cache name, TTL, backend, retry).
            client_factory: Builds an unconnected CacheClient, defaults to
                build_cache_client(settings).
            events: Event logger, defaults to one on the "session" logger.
            clock: Wall clock returning Unix time, overridable in tests.
        """
        self.settings = settings
        self.cache_name = settings.session_cache_name
        self.ttl_seconds = settings.session_ttl_seconds
        self.lazy_touch = settings.session_lazy_touch
        self.client: Optional[CacheClient] = None
        self.events = events or SessionEventLogger(cache_name=self.cache_name)
        self._client_factory = client_factory or (lambda: build_cache_client(settings))
        self._clock = clock or time.time
        self._retry_config = RetryConfig(
            max_attempts=settings.session_init_max_attempts,
            initial_delay=settings.session_init_backoff_seconds,
        )
        self._rebuild_config = RetryConfig(max_attempts=1, initial_delay=0.0)
        self._reinit_cooldown = settings.session_reinit_cooldown_seconds
        self._last_rebuild_failure: Optional[float] = None
        self._init_lock = asyncio.Lock()
        self._connect_attempts = 0

    @classmethod
    async def create(cls, settings: Settings, **kwargs) -> "CacheSessionHandler":
        """Build a handler and initialize its cache client."""
        handler = cls(settings, **kwargs)
        await handler.initialize()
        return handler

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)

    async def initialize(self) -> bool:
        """
        Build and connect a fresh cache client, replacing any existing one.

        Returns:
            True if a client is connected, False if every attempt failed.
        """
        async with self._init_lock:
            self._last_rebuild_failure = None
            return await self._initialize_locked(self._retry_config)

    async def _initialize_locked(self, retry_config: RetryConfig) -> bool:
        await self._discard_client()
        backend = self.settings.cache_backend.value
        self._connect_attempts = 0

        try:
            self.client = await retry_async(
                self._connect_client,
                config=retry_config,
                operation_name="cache_client_connect"
            )
        except RetryExhaustedException as e:
            self.events.init(
                success=False,
                backend=backend,
                attempts=e.attempts,
                error=str(e.last_exception),
            )
            return False

        self.events.init(success=True, backend=backend, attempts=self._connect_attempts)
        return True

    async def _connect_client(self) -> CacheClient:
        self._connect_attempts += 1
        client = self._client_factory()
        await client.connect()
        return client

    async def _reinitialize(self, stale: Optional[CacheClient]) -> bool:
        """
        Rebuild the client with one connect attempt.

        Skipped when another request already replaced ``stale``, or when a
        rebuild failed less than the cool-down ago.
        """
        async with self._init_lock:
            if self.client is not None and self.client is not stale:
                return True

            now = self._clock()
            if (
                self._last_rebuild_failure is not None
                and now - self._last_rebuild_failure < self._reinit_cooldown
            ):
                return False

            if await self._initialize_locked(self._rebuild_config):
                self._last_rebuild_failure = None
                return True
            self._last_rebuild_failure = now
            return False

    async def _current_client(self) -> Optional[CacheClient]:
        if self.client is None:
            await self._reinitialize(None)
        return self.client

    async def _discard_client(self) -> None:
        if self.client is not None:
            client, self.client = self.client, None
            await client.close()

    async def shutdown(self) -> None:
        """Release the cache client at application exit."""
        async with self._init_lock:
            await self._discard_client()

    def _uninitialized(self) -> CacheError:
        return CacheError(
            kind=CacheErrorKind.UNAVAILABLE,
            message=f"cache client for '{self.cache_name}' is not initialized"
        )

    async def _get(self, client: Optional[CacheClient], session_id: str) -> CacheGetResult:
        if client is None:
            return self._uninitialized()
        return await client.get(self.cache_name, session_id)

    async def _delete(self, session_id: str, reason: str) -> bool:
        client = await self._current_client()
        if client is None:
            result: CacheWriteResult = self._uninitialized()
        else:
            result = await client.delete(self.cache_name, session_id)

        success = isinstance(result, CacheSuccess)
        if isinstance(result, CacheError):
            self.events.error(
                "delete", result.message, session_id=session_id,
                kind=result.kind.value, retryable=result.retryable,
            )
        self.events.delete(session_id, success=success, reason=reason)
        return success

    async def open(self, save_path: str, name: str) -> bool:
        return True

    async def close(self) -> bool:
        return True

    async def read(self, session_id: str) -> SessionRead:
        if not session_id:
            return SessionRead.miss(session_id)

        client = await self._current_client()
        result = await self._get(client, session_id)

        if isinstance(result, CacheError) and result.retryable:
            self.events.error(
                "read", result.message, session_id=session_id,
                kind=result.kind.value, retryable=True,
            )
            if await self._reinitialize(client):
                result = await self._get(self.client, session_id)

        if isinstance(result, CacheHit):
            try:
                record = decode_record(result.value)
            except CorruptSessionError as e:
                self.events.error(
                    "read", f"unexpected cache entry: {e}", session_id=session_id,
                )
                return SessionRead.miss(session_id)

            self.events.read(session_id, hit=True)
            return SessionRead(
                session_id=session_id,
                data=record.data,
                found=True,
                expiry=record.expiry,
            )

        if isinstance(result, CacheError):
            self.events.error(
                "read", result.message, session_id=session_id,
                kind=result.kind.value, retryable=result.retryable,
            )
        else:
            self.events.read(session_id, hit=False)
        return SessionRead.miss(session_id)

    async def write(
        self,
        session_id: str,
        data: str,
        previous: Optional[SessionRead] = None
    ) -> bool:
        if not session_id:
            return False

        found = previous is not None and previous.applies_to(session_id)

        # An emptied session is torn down rather than stored as ""
        if found and not data:
            return await self._delete(session_id, reason="empty_write")

        if not data:
            return True

        client = await self._current_client()
        if client is None:
            result: CacheWriteResult = self._uninitialized()
        else:
            expiry = int(self._clock()) + self.ttl_seconds
            result = await client.set(
                self.cache_name,
                session_id,
                encode_record(data, expiry),
                self.ttl,
            )

        success = isinstance(result, CacheSuccess)
        if isinstance(result, CacheError):
            self.events.error(
                "write", result.message, session_id=session_id,
                kind=result.kind.value, retryable=result.retryable,
            )
        self.events.write(session_id, success=success, ttl_seconds=self.ttl_seconds)
        return success

    async def update_timestamp(
        self,
        session_id: str,
        data: str,
        previous: Optional[SessionRead] = None
    ) -> bool:
        remaining: Optional[int] = None
        if previous is not None and previous.applies_to(session_id) and previous.expiry is not None:
            remaining = int(previous.expiry - self._clock())

        if self.lazy_touch and remaining is not None and remaining > self.ttl_seconds / 2:
            self.events.touch(session_id, refreshed=False, remaining_seconds=remaining)
            return True

        success = await self.write(session_id, data, previous)
        self.events.touch(session_id, refreshed=success, remaining_seconds=remaining)
        return success

    async def destroy(self, session_id: str) -> bool:
        if not session_id:
            return False
        return await self._delete(session_id, reason="destroy")

    async def validate_id(self, session_id: str) -> bool:
        if not session_id:
            return False

        result = await self._get(await self._current_client(), session_id)
        if isinstance(result, CacheError):
            self.events.error(
                "validate_id", result.message, session_id=session_id,
                kind=result.kind.value, retryable=result.retryable,
            )
        return isinstance(result, CacheHit)

    async def gc(self, max_lifetime: int) -> bool:
        # Expiry is enforced by the cache's own TTL
        return True

    async def health_check(self) -> bool:
        """
        Check that the cache answers requests.

        Returns:
            True if a probe read reaches the cache (hit or miss), False otherwise.

        Note:
            This method does not raise.
        """
        result = await self._get(self.client, HEALTH_CHECK_KEY)
        return not isinstance(result, CacheError)
