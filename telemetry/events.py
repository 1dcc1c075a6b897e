"""
Session lifecycle events.

The session handler reports what it does through a SessionEventLogger
instead of calling the logging module directly. Each event has a fixed
name (``session.init``, ``session.read``, ``session.write``,
``session.delete``, ``session.touch``, ``session.error``) and a flat set of
fields that the JSON formatter emits alongside the message.

Session IDs are bearer secrets, so events carry a short SHA-256
fingerprint of the ID rather than the ID itself.
"""

import hashlib
import logging
from typing import Any, Optional


def session_fingerprint(session_id: str) -> str:
    """Return a 12-character fingerprint identifying a session ID in logs."""
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()[:12]


class SessionEventLogger:
    """
    Emits structured session events on a standard logger.

    Args:
        logger: Logger to write to, defaults to the "session" logger.
        cache_name: Cache namespace included in every event.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, cache_name: str = ""):
        self.logger = logger or logging.getLogger("session")
        self.cache_name = cache_name

    def _emit(
        self,
        level: int,
        event: str,
        message: str,
        session_id: Optional[str] = None,
        **fields: Any
    ) -> None:
        data: dict[str, Any] = {"event": event, "cache_name": self.cache_name}
        if session_id is not None:
            data["session"] = session_fingerprint(session_id)
        data.update(fields)
        self.logger.log(level, message, extra={"extra_data": data})

    def init(self, success: bool, backend: str, attempts: int, error: Optional[str] = None) -> None:
        if success:
            self._emit(
                logging.INFO, "session.init", "Session cache client initialized",
                backend=backend, attempts=attempts, success=True,
            )
        else:
            self._emit(
                logging.ERROR, "session.init",
                f"Failed to initialize cache '{self.cache_name}' after {attempts} attempts",
                backend=backend, attempts=attempts, success=False, error=error,
            )

    def read(self, session_id: str, hit: bool) -> None:
        self._emit(
            logging.DEBUG, "session.read",
            "Session cache hit" if hit else "Session cache miss",
            session_id=session_id, hit=hit,
        )

    def write(self, session_id: str, success: bool, ttl_seconds: int) -> None:
        self._emit(
            logging.DEBUG if success else logging.WARNING, "session.write",
            "Session written" if success else "Session write failed",
            session_id=session_id, success=success, ttl_seconds=ttl_seconds,
        )

    def delete(self, session_id: str, success: bool, reason: str) -> None:
        self._emit(
            logging.DEBUG if success else logging.WARNING, "session.delete",
            "Session deleted" if success else "Session delete failed",
            session_id=session_id, success=success, reason=reason,
        )

    def touch(self, session_id: str, refreshed: bool, remaining_seconds: Optional[int]) -> None:
        self._emit(
            logging.DEBUG, "session.touch",
            "Session timestamp refreshed" if refreshed else "Session timestamp refresh skipped",
            session_id=session_id, refreshed=refreshed, remaining_seconds=remaining_seconds,
        )

    def error(
        self,
        operation: str,
        message: str,
        session_id: Optional[str] = None,
        kind: Optional[str] = None,
        retryable: Optional[bool] = None
    ) -> None:
        self._emit(
            logging.ERROR, "session.error", f"Session {operation} failed: {message}",
            session_id=session_id, operation=operation, kind=kind, retryable=retryable,
        )
