"""
Momento serverless cache client implementation.

Wraps the Momento SDK's CacheClientAsync. The SDK reports failures as
Error response objects carrying a MomentoErrorCode; those codes are
translated into CacheErrorKind so retry decisions never depend on the
wording of an error message.
"""

import logging
from datetime import timedelta
from typing import Any, Optional

from momento import CacheClientAsync, Configurations, CredentialProvider
from momento.responses import CacheDelete, CacheGet, CacheSet

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

logger = logging.getLogger(__name__)


# Keyed by MomentoErrorCode member name
MOMENTO_ERROR_KINDS: dict[str, CacheErrorKind] = {
    "SERVER_UNAVAILABLE": CacheErrorKind.UNAVAILABLE,
    "CONNECTION_ERROR": CacheErrorKind.UNAVAILABLE,
    "CANCELLED_ERROR": CacheErrorKind.UNAVAILABLE,
    "TIMEOUT_ERROR": CacheErrorKind.TIMEOUT,
    "AUTHENTICATION_ERROR": CacheErrorKind.AUTHENTICATION,
    "PERMISSION_ERROR": CacheErrorKind.AUTHENTICATION,
    "INVALID_ARGUMENT_ERROR": CacheErrorKind.INVALID_ARGUMENT,
    "BAD_REQUEST_ERROR": CacheErrorKind.INVALID_ARGUMENT,
    "FAILED_PRECONDITION_ERROR": CacheErrorKind.INVALID_ARGUMENT,
    "NOT_FOUND_ERROR": CacheErrorKind.NOT_FOUND,
    "LIMIT_EXCEEDED_ERROR": CacheErrorKind.LIMIT_EXCEEDED,
    "CLIENT_RESOURCE_EXHAUSTED": CacheErrorKind.LIMIT_EXCEEDED,
    "INTERNAL_SERVER_ERROR": CacheErrorKind.INTERNAL,
}


def classify_momento_error(error_code: Any) -> CacheErrorKind:
    """
    Map a MomentoErrorCode onto a CacheErrorKind.

    Args:
        error_code: A MomentoErrorCode member (or anything with a ``name``).

    Returns:
        The matching classification, UNKNOWN for unmapped codes.
    """
    name = getattr(error_code, "name", str(error_code))
    return MOMENTO_ERROR_KINDS.get(name, CacheErrorKind.UNKNOWN)


def _to_cache_error(response: Any) -> CacheError:
    return CacheError(
        kind=classify_momento_error(response.error_code),
        message=response.message
    )


class MomentoCacheClient(CacheClient):
    """
    CacheClient backed by Momento.

    The namespace passed to each call is the Momento cache name. The cache
    must already exist; this client never creates caches.

    Attributes:
        default_ttl: TTL handed to the SDK for writes without an explicit TTL
        client: CacheClientAsync instance (initialized via connect())
    """

    def __init__(
        self,
        auth_token: str,
        default_ttl: timedelta,
        configuration: Optional[Any] = None
    ):
        """
        Initialize the Momento cache client.

        Args:
            auth_token: Momento API key / auth token.
            default_ttl: Default item TTL for the SDK client.
            configuration: Optional SDK configuration, defaults to the
                latest Laptop profile.
        """
        self._auth_token = auth_token
        self.default_ttl = default_ttl
        self.configuration = configuration
        self.client: Optional[CacheClientAsync] = None

    async def connect(self) -> None:
        """
        Build the SDK client.

        Raises:
            momento.errors.SdkException: If the credential is malformed or the
                client cannot be created.
        """
        credential_provider = CredentialProvider.from_string(self._auth_token)
        configuration = self.configuration or Configurations.Laptop.latest()
        self.client = await CacheClientAsync.create(
            configuration,
            credential_provider,
            self.default_ttl
        )
        logger.debug("Momento cache client created")

    def _not_connected(self) -> CacheError:
        return CacheError(
            kind=CacheErrorKind.UNAVAILABLE,
            message="Momento client not connected. Call connect() first."
        )

    async def get(self, namespace: str, key: str) -> CacheGetResult:
        if self.client is None:
            return self._not_connected()

        response = await self.client.get(namespace, key)
        if isinstance(response, CacheGet.Hit):
            try:
                return CacheHit(value=response.value_string)
            except UnicodeDecodeError as e:
                return CacheError(
                    kind=CacheErrorKind.INVALID_ARGUMENT,
                    message=f"Cached value is not valid UTF-8: {e}"
                )
        if isinstance(response, CacheGet.Miss):
            return CacheMiss()
        if isinstance(response, CacheGet.Error):
            return _to_cache_error(response)
        return CacheError(
            kind=CacheErrorKind.UNKNOWN,
            message=f"Unexpected get response: {type(response).__name__}"
        )

    async def set(
        self,
        namespace: str,
        key: str,
        value: str,
        ttl: timedelta
    ) -> CacheWriteResult:
        if self.client is None:
            return self._not_connected()

        response = await self.client.set(namespace, key, value, ttl)
        if isinstance(response, CacheSet.Success):
            return CacheSuccess()
        if isinstance(response, CacheSet.Error):
            return _to_cache_error(response)
        return CacheError(
            kind=CacheErrorKind.UNKNOWN,
            message=f"Unexpected set response: {type(response).__name__}"
        )

    async def delete(self, namespace: str, key: str) -> CacheWriteResult:
        if self.client is None:
            return self._not_connected()

        response = await self.client.delete(namespace, key)
        if isinstance(response, CacheDelete.Success):
            return CacheSuccess()
        if isinstance(response, CacheDelete.Error):
            return _to_cache_error(response)
        return CacheError(
            kind=CacheErrorKind.UNKNOWN,
            message=f"Unexpected delete response: {type(response).__name__}"
        )

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
