"""
Telemetry module for structured logging.

This module provides:
- JSONFormatter for structured JSON log output
- setup_logging to install it on the root logger
- SessionEventLogger for session lifecycle events
- Request ID context helpers for log correlation
"""

from telemetry.events import SessionEventLogger, session_fingerprint
from telemetry.service import (
    JSONFormatter,
    get_request_id,
    request_id_var,
    set_request_id,
    setup_logging,
)

__all__ = [
    "JSONFormatter",
    "SessionEventLogger",
    "get_request_id",
    "request_id_var",
    "session_fingerprint",
    "set_request_id",
    "setup_logging",
]
