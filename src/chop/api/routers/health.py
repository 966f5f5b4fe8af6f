"""Health check endpoints.

Provides Kubernetes-compatible liveness and readiness checks:
- /health       - Full report of database and cache
- /health/live  - Liveness check (always returns OK if process is running)
- /health/ready - Readiness check (verifies database and cache connectivity)

The cache is optional: when it is not configured it is reported as
``disabled`` and does not make the service unhealthy.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from chop.cache.backend import get_backend
from chop.cache.backend import health_check as cache_health_check
from chop.persistence.db import health_check as db_health_check

router = APIRouter(tags=["health"])


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DISABLED = "disabled"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != HealthStatus.UNHEALTHY

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def _check_component(name: str, check: Any) -> ComponentHealth:
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(check(), timeout=5.0)
        message = None if healthy else f"{name.capitalize()} check failed"
    except asyncio.TimeoutError:
        healthy, message = False, f"{name.capitalize()} check timed out"
    except Exception as e:
        healthy, message = False, str(e)
    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
        message=message,
    )


async def check_database() -> ComponentHealth:
    """Check database connectivity."""
    return await _check_component("database", db_health_check)


async def check_cache() -> ComponentHealth:
    """Check cache connectivity, or report it disabled."""
    if get_backend() is None:
        return ComponentHealth(name="cache", status=HealthStatus.DISABLED, latency_ms=0.0)
    return await _check_component("cache", cache_health_check)


@router.get("/health")
async def full_health() -> ORJSONResponse:
    """Full health report for external checks.

    Returns 200 when all required dependencies are up, 503 otherwise.
    """
    components = await asyncio.gather(check_database(), check_cache())

    checks: dict[str, dict[str, Any]] = {}
    for component in components:
        if component.status == HealthStatus.DISABLED:
            state = "disabled"
        else:
            state = "up" if component.ok else "down"
        checks[component.name] = {
            "status": state,
            "latency_ms": round(component.latency_ms, 2),
        }
        if component.message:
            checks[component.name]["message"] = component.message

    healthy = all(component.ok for component in components)
    overall = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY
    return ORJSONResponse(
        content={"status": overall.value, "checks": checks},
        status_code=200 if healthy else 503,
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness check.

    Returns OK if the process is running. Used by Kubernetes
    to determine if the container should be restarted.
    """
    return {"status": "ok"}


@router.get("/health/ready")
async def ready() -> ORJSONResponse:
    """Readiness check.

    Returns 200 if the database and, when configured, the cache are
    reachable; 503 otherwise.
    """
    components = await asyncio.gather(check_database(), check_cache())
    healthy = all(component.ok for component in components)
    overall = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY
    return ORJSONResponse(
        content={
            "status": overall.value,
            "components": [component.to_dict() for component in components],
        },
        status_code=200 if healthy else 503,
    )
