"""
Cache client construction from application settings.
"""

from datetime import timedelta

from cache.client import CacheClient
from cache.memory import InMemoryCacheClient
from cache.momento_client import MomentoCacheClient
from cache.redis_client import RedisCacheClient
from config.settings import CacheBackend, Settings


def build_cache_client(settings: Settings) -> CacheClient:
    """
    Build an unconnected cache client for the configured backend.

    Args:
        settings: Application settings selecting the backend and its credentials.

    Returns:
        A CacheClient; call connect() before use.

    Raises:
        ValueError: If the backend's credential or URL is missing.
    """
    if settings.cache_backend == CacheBackend.MOMENTO:
        if settings.momento_auth_token is None:
            raise ValueError("MOMENTO_AUTH_TOKEN is not set")
        return MomentoCacheClient(
            auth_token=settings.momento_auth_token.get_secret_value(),
            default_ttl=timedelta(seconds=settings.session_ttl_seconds),
        )

    if settings.cache_backend == CacheBackend.REDIS:
        if not settings.redis_url:
            raise ValueError("REDIS_URL is not set")
        return RedisCacheClient(settings.redis_url)

    return InMemoryCacheClient()
