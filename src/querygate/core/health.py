"""Health endpoints for querygate.

``/health/live`` answers whenever the process is up.  ``/health`` and
``/health/ready`` run the configured probes: by default one per registry
listed in ``QUERYGATE_HEALTH_REGISTRIES``, each asking the query service
whether it still knows that registry.

Probes are plain synchronous callables (the query service API is
synchronous), executed on a worker thread under a timeout so a stuck
downstream never stalls the event loop.

Quick start::

    router = create_health_router(
        "querygate",
        "0.1.0",
        checks=registry_checks(query_service, ["reg1"]),
    )
    app.include_router(router)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING, Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from querygate.dispatch.processor import QueryService

_STARTED = time.monotonic()

Status = Literal["healthy", "degraded", "unhealthy"]


class CheckResult(BaseModel):
    status: Status
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Body of ``GET /health`` and ``GET /health/ready``."""

    status: Status = "healthy"
    service: str = ""
    version: str = ""
    uptime_s: float = Field(default_factory=lambda: round(time.monotonic() - _STARTED, 1))
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    checks: dict[str, CheckResult] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    status: str = "alive"


@dataclass(frozen=True)
class HealthCheck:
    """One named probe.

    Parameters
    ----------
    name : str
        Key under ``checks`` in the response.
    probe : () -> bool
        Synchronous callable; ``False`` or an exception means down.
    required : bool
        A required probe being down makes the service ``unhealthy``;
        an optional one only ``degraded``.
    timeout_s : float
        Seconds before the probe counts as down.
    """

    name: str
    probe: Callable[[], bool]
    required: bool = True
    timeout_s: float = 2.0


def registry_checks(
    service: QueryService,
    registries: Iterable[str],
    *,
    required: bool = True,
) -> list[HealthCheck]:
    """One probe per registry: is it still known to *service*?"""
    return [
        HealthCheck(f"registry:{name}", partial(service.is_valid_registry, name), required=required)
        for name in registries
    ]


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


async def run_check(check: HealthCheck) -> CheckResult:
    start = time.monotonic()
    try:
        ok = await asyncio.wait_for(asyncio.to_thread(check.probe), timeout=check.timeout_s)
    except TimeoutError:
        return CheckResult(status="unhealthy", error="timeout")
    except Exception as exc:  # noqa: BLE001
        return CheckResult(status="unhealthy", latency_ms=_elapsed_ms(start), error=str(exc)[:200])
    if not ok:
        return CheckResult(status="unhealthy", latency_ms=_elapsed_ms(start), error="probe failed")
    return CheckResult(status="healthy", latency_ms=_elapsed_ms(start))


async def run_checks(checks: list[HealthCheck]) -> dict[str, CheckResult]:
    """Run *checks* concurrently; returns name → result."""
    results = await asyncio.gather(*(run_check(c) for c in checks))
    return {check.name: result for check, result in zip(checks, results)}


def overall_status(results: dict[str, CheckResult], checks: list[HealthCheck]) -> Status:
    down = [c for c in checks if results[c.name].status != "healthy"]
    if any(c.required for c in down):
        return "unhealthy"
    return "degraded" if down else "healthy"


def create_health_router(
    service_name: str,
    version: str,
    checks: Iterable[HealthCheck] = (),
    prefix: str = "/health",
) -> APIRouter:
    """Router with ``{prefix}``, ``{prefix}/ready`` and ``{prefix}/live``.

    ``{prefix}`` reports 503 only when unhealthy; ``{prefix}/ready`` also
    when degraded.
    """
    router = APIRouter()
    probes = list(checks)

    async def _report(*, strict: bool) -> JSONResponse:
        results = await run_checks(probes)
        status = overall_status(results, probes)
        body = HealthResponse(status=status, service=service_name, version=version, checks=results)
        failing = status != "healthy" if strict else status == "unhealthy"
        return JSONResponse(content=body.model_dump(), status_code=503 if failing else 200)

    @router.get(prefix, response_model=HealthResponse)
    async def health() -> JSONResponse:
        return await _report(strict=False)

    @router.get(f"{prefix}/ready", response_model=HealthResponse)
    async def readiness() -> JSONResponse:
        return await _report(strict=True)

    @router.get(f"{prefix}/live", response_model=LivenessResponse)
    async def liveness() -> LivenessResponse:
        return LivenessResponse()

    return router
