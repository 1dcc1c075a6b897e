"""
Middleware components for the session demo application.

This module contains FastAPI middleware for request correlation and for
driving the session handler lifecycle on every request.
"""

from middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, get_request_id
from middleware.session import (
    SessionMiddleware,
    decode_session_data,
    encode_session_data,
    generate_session_id,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestIDMiddleware",
    "SessionMiddleware",
    "decode_session_data",
    "encode_session_data",
    "generate_session_id",
    "get_request_id",
]
