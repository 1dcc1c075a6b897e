"""
Resilience patterns for the session cache service.

Provides bounded retry with exponential backoff, used when building the
cache client.
"""

from resilience.retry import (
    RetryConfig,
    RetryExhaustedException,
    calculate_delay,
    retry_async,
)

__all__ = [
    "RetryConfig",
    "RetryExhaustedException",
    "calculate_delay",
    "retry_async",
]
