"""
Health check service for the session demo application.

This module provides the HealthCheckService class, which reports liveness
of the process and readiness of the remote session cache, including how
long the cache took to answer.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DependencyHealth:
    """
    Health status of a single dependency.

    Attributes:
        name: The name of the dependency (e.g., "session_cache")
        healthy: Whether the dependency is healthy and responding
        response_time_ms: The time taken to check the dependency in milliseconds
        error: Optional error message if the dependency check failed
    """
    name: str
    healthy: bool
    response_time_ms: float
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "name": self.name,
            "healthy": self.healthy,
            "response_time_ms": round(self.response_time_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class HealthStatus:
    """
    Overall health status of the service.

    Attributes:
        status: Overall status - "healthy" or "unhealthy"
        timestamp: When the health check was performed
        dependencies: List of individual dependency health statuses
    """
    status: str
    timestamp: str
    dependencies: list[DependencyHealth] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "dependencies": [dep.to_dict() for dep in self.dependencies],
        }


class HealthCheckService:
    """
    Service for checking the health of the session cache.

    Attributes:
        session_handler: Object exposing ``async health_check() -> bool``
        check_timeout: Timeout in seconds for dependency checks (default: 5.0)
    """

    def __init__(self, session_handler: Any, check_timeout: float = 5.0):
        self.session_handler = session_handler
        self.check_timeout = check_timeout

    async def check_readiness(self) -> HealthStatus:
        """
        Check that the session cache is reachable.

        Returns:
            HealthStatus: "healthy" when the cache answered within the timeout
        """
        cache_health = await self._check_session_cache()
        return HealthStatus(
            status="healthy" if cache_health.healthy else "unhealthy",
            timestamp=_utc_timestamp(),
            dependencies=[cache_health],
        )

    async def check_liveness(self) -> dict[str, Any]:
        """
        Simple liveness check - process is running.

        Returns:
            dict: A simple status response with "alive" status and timestamp
        """
        return {"status": "alive", "timestamp": _utc_timestamp()}

    async def check_health(self) -> dict[str, Any]:
        """
        Basic health check - service is accepting requests.

        Returns:
            dict: A simple status response indicating the service is up
        """
        return {"status": "ok", "timestamp": _utc_timestamp()}

    async def _check_session_cache(self) -> DependencyHealth:
        start_time = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                self.session_handler.health_check(),
                timeout=self.check_timeout
            )
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            error_msg = f"Session cache health check timed out after {self.check_timeout} seconds"
            logger.warning(error_msg)
            return DependencyHealth(
                name="session_cache",
                healthy=False,
                response_time_ms=elapsed_ms,
                error=error_msg
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if result:
            logger.debug(f"Session cache health check passed in {elapsed_ms:.2f}ms")
            return DependencyHealth(
                name="session_cache",
                healthy=True,
                response_time_ms=elapsed_ms
            )

        logger.warning(f"Session cache health check failed after {elapsed_ms:.2f}ms")
        return DependencyHealth(
            name="session_cache",
            healthy=False,
            response_time_ms=elapsed_ms,
            error="Session cache is not reachable"
        )
