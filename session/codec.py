"""
Encoding of session records stored in the cache.

A record is the JSON object ``{"data": <str>, "expiry": <int>}``. The
expiry is an absolute Unix timestamp kept inside the value so that the
handler can decide whether a refresh is due without asking the cache for
the entry's remaining TTL.
"""

import json
from dataclasses import dataclass


class CorruptSessionError(ValueError):
    """Raised when a cached value is not a valid session record."""


@dataclass(frozen=True)
class SessionRecord:
    """A decoded session record."""
    data: str
    expiry: int


def encode_record(data: str, expiry: int) -> str:
    """Serialize a session payload and its expiry timestamp."""
    return json.dumps({"data": data, "expiry": int(expiry)}, separators=(",", ":"))


def decode_record(raw: str) -> SessionRecord:
    """
    Parse a cached value into a SessionRecord.

    Args:
        raw: The string stored in the cache.

    Returns:
        The decoded record.

    Raises:
        CorruptSessionError: If the value is not JSON, is not an object,
            lacks an integer ``expiry`` or has a non-string ``data``.
    """
    try:
        value = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as e:
        raise CorruptSessionError(f"value is not valid JSON: {e}") from e

    if not isinstance(value, dict):
        raise CorruptSessionError("value is not a JSON object")

    expiry = value.get("expiry")
    # bool is an int subclass but never a timestamp
    if isinstance(expiry, bool) or not isinstance(expiry, int):
        raise CorruptSessionError("missing or non-integer 'expiry' field")

    data = value.get("data", "")
    if not isinstance(data, str):
        raise CorruptSessionError("'data' field is not a string")

    return SessionRecord(data=data, expiry=expiry)
