"""
Shared pytest fixtures and configuration for all tests.
"""
import os
from typing import Callable, Optional
from unittest.mock import MagicMock, AsyncMock, patch

import pytest

# Hypothesis configuration for property-based testing
from hypothesis import settings as hypothesis_settings, Verbosity, Phase

from cache.client import CacheClient, CacheError, CacheErrorKind
from cache.memory import InMemoryCacheClient
from config.settings import Settings
from session.cache_handler import CacheSessionHandler

# Default profile: balanced for local development
hypothesis_settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

# CI profile: more thorough testing for continuous integration
hypothesis_settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

# Debug profile: minimal examples for quick debugging
hypothesis_settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

hypothesis_settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class FakeClock:
    """Settable clock usable as both the wall clock and the monotonic clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyCacheClient(InMemoryCacheClient):
    """In-memory client whose next get calls fail with a scripted error."""

    def __init__(self, clock=None, failures: Optional[list[CacheError]] = None):
        super().__init__(clock=clock)
        self.failures = list(failures or [])
        self.get_calls = 0

    async def get(self, namespace, key):
        self.get_calls += 1
        if self.failures:
            return self.failures.pop(0)
        return await super().get(namespace, key)


def retryable_error(message: str = "server unavailable") -> CacheError:
    return CacheError(kind=CacheErrorKind.UNAVAILABLE, message=message)


def permanent_error(message: str = "bad key") -> CacheError:
    return CacheError(kind=CacheErrorKind.INVALID_ARGUMENT, message=message)


def make_settings(**overrides) -> Settings:
    """Build development settings using the in-memory backend."""
    values = {
        "environment": "development",
        "cache_backend": "memory",
        "session_cache_name": "test-sessions",
        "session_ttl_seconds": 300,
        "session_init_max_attempts": 3,
        "session_init_backoff_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock shared by the handler and the in-memory cache."""
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def memory_client(clock) -> InMemoryCacheClient:
    return InMemoryCacheClient(clock=clock)


@pytest.fixture
def handler_factory(clock) -> Callable[..., CacheSessionHandler]:
    """Build handlers around a given client, sharing the fake clock."""
    def build(client: CacheClient, **setting_overrides) -> CacheSessionHandler:
        return CacheSessionHandler(
            make_settings(**setting_overrides),
            client_factory=lambda: client,
            clock=clock,
        )
    return build


@pytest.fixture
def handler(handler_factory, memory_client) -> CacheSessionHandler:
    """An uninitialized handler backed by the in-memory client."""
    return handler_factory(memory_client)


@pytest.fixture
def mock_redis() -> MagicMock:
    """Create a mock Redis client for unit tests."""
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.setex = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.ping = AsyncMock(return_value=True)
    mock.close = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def recorded_sleeps():
    """Patch asyncio.sleep inside the retry module and record the delays."""
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    with patch("resilience.retry.asyncio.sleep", side_effect=fake_sleep):
        yield delays
