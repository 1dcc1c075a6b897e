"""
Cache client abstraction for the remote session cache.

This module defines the contract consumed by the session handler: a small
async key-value interface (get/set/delete within a named cache) whose
results are plain values instead of exceptions. Failures are reported as
CacheError results carrying a structured CacheErrorKind, so callers decide
whether to retry from the classification rather than from message text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Union


class CacheErrorKind(str, Enum):
    """Classification of cache failures reported by a CacheClient."""
    UNAVAILABLE = "UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    AUTHENTICATION = "AUTHENTICATION"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


# Kinds that may succeed after the client handle is rebuilt
RETRYABLE_KINDS = frozenset({
    CacheErrorKind.UNAVAILABLE,
    CacheErrorKind.TIMEOUT,
    CacheErrorKind.INTERNAL,
})


@dataclass(frozen=True)
class CacheHit:
    """A get that found a value."""
    value: str


@dataclass(frozen=True)
class CacheMiss:
    """A get that found nothing."""


@dataclass(frozen=True)
class CacheSuccess:
    """A set or delete the cache acknowledged."""


@dataclass(frozen=True)
class CacheError:
    """
    A failed cache call.

    Attributes:
        kind: Structured classification of the failure
        message: Human-readable description from the underlying client
    """
    kind: CacheErrorKind
    message: str

    @property
    def retryable(self) -> bool:
        """Whether rebuilding the client and retrying may succeed."""
        return self.kind in RETRYABLE_KINDS


CacheGetResult = Union[CacheHit, CacheMiss, CacheError]
CacheWriteResult = Union[CacheSuccess, CacheError]


class CacheClient(ABC):
    """
    Abstract base class for remote cache clients.

    Implementations wrap a concrete cache SDK (Momento, Redis) or keep data
    in process for development. Every data method returns a result value;
    library exceptions are caught and translated into CacheError so the
    session handler never has to guard individual calls.

    connect() is the only method allowed to raise, which lets the handler
    run client construction under its bounded retry policy.
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish the connection to the cache service.

        Raises:
            Exception: Any error raised while building the underlying client.
        """

    @abstractmethod
    async def get(self, namespace: str, key: str) -> CacheGetResult:
        """
        Look up a key.

        Args:
            namespace: Cache name (Momento) or key prefix (Redis).
            key: The entry key.

        Returns:
            CacheHit with the stored string, CacheMiss, or CacheError.
        """

    @abstractmethod
    async def set(
        self,
        namespace: str,
        key: str,
        value: str,
        ttl: timedelta
    ) -> CacheWriteResult:
        """
        Store a value with a time-to-live.

        Returns:
            CacheSuccess or CacheError.
        """

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> CacheWriteResult:
        """
        Delete a key. Deleting a missing key succeeds.

        Returns:
            CacheSuccess or CacheError.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection. Safe to call more than once."""
