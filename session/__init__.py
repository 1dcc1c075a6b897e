"""
Session handling backed by a remote cache.

This module provides the session handler contract driven by the web host
and its cache-backed implementation, which stores each session as a single
cache entry with an embedded expiry timestamp.
"""

from session.cache_handler import CacheSessionHandler
from session.codec import CorruptSessionError, SessionRecord, decode_record, encode_record
from session.handler import SessionHandler, SessionRead

__all__ = [
    "CacheSessionHandler",
    "CorruptSessionError",
    "SessionHandler",
    "SessionRead",
    "SessionRecord",
    "decode_record",
    "encode_record",
]
