# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Health endpoints (Adapters Layer).

Purpose:
    Liveness (``/healthz``, no I/O) and readiness (``/readyz``, database
    ping) signals for container orchestrators.

Design:
    * Readiness returns HTTP 200 when every check passes, otherwise 503.
    * Each probe is bounded by a short timeout.
"""

from __future__ import annotations

import asyncio
import typing as t
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from dart_enrichment.bootstrap import Runtime, get_runtime
from dart_enrichment.infrastructure.database.session import ping
from dart_enrichment.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)
router = APIRouter(tags=["health"])

_PROBE_TIMEOUT_S = 2.0


class CheckResult(BaseModel):
    """Result of a single dependency check."""

    name: str = Field(..., examples=["db"])
    status: t.Literal["ok", "down"]
    detail: str | None = None
    duration_ms: float


class ReadinessResponse(BaseModel):
    """Aggregated readiness response."""

    status: t.Literal["ok", "degraded"]
    checks: list[CheckResult] = Field(default_factory=list)


class LivenessResponse(BaseModel):
    """Liveness response indicating the process is running."""

    status: t.Literal["ok"] = "ok"


@router.get("/healthz", response_model=LivenessResponse, operation_id="health_liveness")
async def liveness() -> LivenessResponse:
    """Return a fast liveness signal (no external I/O)."""
    return LivenessResponse()


@router.get(
    "/readyz",
    response_model=ReadinessResponse,
    operation_id="health_readiness",
    responses={503: {"description": "Service degraded", "model": ReadinessResponse}},
)
async def readiness(
    response: Response,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ReadinessResponse:
    """Ping the database and report readiness."""
    loop = asyncio.get_running_loop()
    start = loop.time()
    detail: str | None = None
    try:
        async with asyncio.timeout(_PROBE_TIMEOUT_S):
            await ping(runtime.engine)
        ok = True
    except Exception as exc:  # noqa: BLE001
        ok = False
        detail = f"{type(exc).__name__}: {exc}"
    check = CheckResult(
        name="db",
        status="ok" if ok else "down",
        detail=detail,
        duration_ms=(loop.time() - start) * 1000.0,
    )

    if not ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("readiness_probe_failed", extra={"check": check.model_dump()})

    return ReadinessResponse(status="ok" if ok else "degraded", checks=[check])
