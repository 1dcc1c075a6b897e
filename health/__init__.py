"""
Health check module for the session demo application.

This module reports process liveness and readiness of the remote
session cache.
"""

from health.service import (
    HealthCheckService,
    HealthStatus,
    DependencyHealth,
)

__all__ = [
    "HealthCheckService",
    "HealthStatus",
    "DependencyHealth",
]
