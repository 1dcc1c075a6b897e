"""
Session handler contract.

This module defines the lifecycle interface a web host drives for every
request: open, read, then write or update_timestamp, then close, with
destroy, validate_id and gc called independently.

The outcome of read is returned as a SessionRead value which the host
passes back into write and update_timestamp. Handlers keep no per-request
state of their own, so a single handler instance can serve concurrent
requests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SessionRead:
    """
    Result of reading one session.

    Attributes:
        session_id: The session that was read.
        data: Serialized session payload, "" on a miss.
        found: Whether the cache held a valid record for the session.
        expiry: Absolute Unix timestamp embedded in the record, None on a miss.
    """
    session_id: str
    data: str = ""
    found: bool = False
    expiry: Optional[int] = None

    @classmethod
    def miss(cls, session_id: str) -> "SessionRead":
        """Build the result of a read that found nothing."""
        return cls(session_id=session_id)

    def applies_to(self, session_id: str) -> bool:
        """Whether this read was a hit for the given session."""
        return self.found and self.session_id == session_id


class SessionHandler(ABC):
    """
    Abstract base class for session storage handlers.

    All methods are async to support non-blocking I/O with external
    storage. Implementations must not raise: every failure is reported
    as False, or as a miss for read.
    """

    @abstractmethod
    async def open(self, save_path: str, name: str) -> bool:
        """
        Prepare the handler for a request.

        Args:
            save_path: Storage location hint from the host (unused by cache stores).
            name: Session name, typically the cookie name.

        Returns:
            True if the handler is ready.
        """

    @abstractmethod
    async def close(self) -> bool:
        """End the request cycle."""

    @abstractmethod
    async def read(self, session_id: str) -> SessionRead:
        """
        Read a session.

        Args:
            session_id: Session identifier from the host.

        Returns:
            The read state; ``data`` is "" and ``found`` is False when the
            session does not exist or could not be read.
        """

    @abstractmethod
    async def write(
        self,
        session_id: str,
        data: str,
        previous: Optional[SessionRead] = None
    ) -> bool:
        """
        Persist session data.

        An empty payload for a session that ``previous`` shows was found
        deletes it. An empty payload for a session that was not found is a
        no-op.

        Args:
            session_id: Session identifier.
            data: Serialized session payload.
            previous: Result of the read earlier in the same request.

        Returns:
            True if the data was stored, deleted, or nothing needed doing.
        """

    @abstractmethod
    async def destroy(self, session_id: str) -> bool:
        """Delete a session. Returns whether the store acknowledged it."""

    @abstractmethod
    async def gc(self, max_lifetime: int) -> bool:
        """Remove sessions older than ``max_lifetime`` seconds."""

    @abstractmethod
    async def validate_id(self, session_id: str) -> bool:
        """Return whether a session with this ID currently exists."""

    @abstractmethod
    async def update_timestamp(
        self,
        session_id: str,
        data: str,
        previous: Optional[SessionRead] = None
    ) -> bool:
        """
        Extend the lifetime of an unchanged session.

        Args:
            session_id: Session identifier.
            data: Serialized session payload (unchanged since read).
            previous: Result of the read earlier in the same request.

        Returns:
            True if the session's lifetime is acceptable afterwards.
        """
