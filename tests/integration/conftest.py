"""
Integration test configuration and fixtures.

This module provides the demo application wired to an in-memory session
cache, and optional fixtures for running the session handler against a
real Redis server or Momento cache.

Environment Variables:
- TEST_REDIS_URL: Redis URL for live Redis tests (skipped when unset)
- TEST_MOMENTO_AUTH_TOKEN: Momento API key for live Momento tests (skipped when unset)
- TEST_MOMENTO_CACHE: Existing Momento cache to use (default: "php-sessions-test")
"""
import os
import uuid
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from cache.memory import InMemoryCacheClient
from main import create_app
from session.cache_handler import CacheSessionHandler
from tests.conftest import make_settings

logger = logging.getLogger(__name__)


@dataclass
class LiveCacheConfig:
    """
    Configuration for live cache backends used by integration tests.

    Each key prefix is unique per test run so parallel runs against the
    same server never see each other's sessions.
    """
    redis_url: str = field(default_factory=lambda: os.getenv("TEST_REDIS_URL", ""))
    momento_auth_token: str = field(default_factory=lambda: os.getenv("TEST_MOMENTO_AUTH_TOKEN", ""))
    momento_cache: str = field(default_factory=lambda: os.getenv("TEST_MOMENTO_CACHE", "php-sessions-test"))
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    @property
    def namespace(self) -> str:
        return f"test-sessions-{self.run_id}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging."""
        return {
            "redis_configured": bool(self.redis_url),
            "momento_configured": bool(self.momento_auth_token),
            "momento_cache": self.momento_cache,
            "namespace": self.namespace,
        }


@pytest.fixture(scope="session")
def live_cache_config() -> LiveCacheConfig:
    config = LiveCacheConfig()
    logger.info(f"Live cache config: {config.to_dict()}")
    return config


@pytest.fixture
def demo_handler(clock) -> CacheSessionHandler:
    """A session handler over an in-memory cache, sharing the fake clock."""
    client = InMemoryCacheClient(clock=clock)
    return CacheSessionHandler(make_settings(), client_factory=lambda: client, clock=clock)


@pytest.fixture
def demo_client(demo_handler):
    """
    TestClient for the demo application.

    Entering the client runs the lifespan, so the handler is initialized
    before the first request and shut down afterwards.
    """
    app = create_app(make_settings(), handler=demo_handler)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def redis_handler(live_cache_config) -> CacheSessionHandler:
    """Session handler settings for a live Redis server."""
    if not live_cache_config.redis_url:
        pytest.skip("Live Redis not configured. Set TEST_REDIS_URL to run.")
    settings = make_settings(
        cache_backend="redis",
        redis_url=live_cache_config.redis_url,
        session_cache_name=live_cache_config.namespace,
        session_ttl_seconds=5,
    )
    return CacheSessionHandler(settings)


@pytest.fixture
def momento_handler(live_cache_config) -> CacheSessionHandler:
    """Session handler settings for a live Momento cache."""
    if not live_cache_config.momento_auth_token:
        pytest.skip("Live Momento not configured. Set TEST_MOMENTO_AUTH_TOKEN to run.")
    settings = make_settings(
        cache_backend="momento",
        momento_auth_token=live_cache_config.momento_auth_token,
        session_cache_name=live_cache_config.momento_cache,
        session_ttl_seconds=5,
    )
    return CacheSessionHandler(settings)
