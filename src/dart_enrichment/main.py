# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Application Entry

Synopsis:
    FastAPI bootstrap: builds the runtime in the lifespan (consumer
    subscription and registry scheduler included) and mounts the health,
    metrics and admin routers. Provides an application factory
    (``create_app``).
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRoute

from dart_enrichment import __version__
from dart_enrichment.adapters.routers.admin_router import router as admin_router
from dart_enrichment.adapters.routers.health_router import router as health_router
from dart_enrichment.adapters.routers.metrics_router import router as metrics_router
from dart_enrichment.bootstrap import Runtime, build_runtime
from dart_enrichment.config.settings import get_settings
from dart_enrichment.infrastructure.logging.logger import (
    configure_root_logging,
    get_json_logger,
)

logger = get_json_logger(__name__)

RuntimeFactory = Callable[[], Runtime]


def _stable_operation_id(route: APIRoute) -> str:
    """Deterministic operationId, e.g. ``post__v1_admin_registry_sync``."""
    methods = ",".join(sorted(route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "")
    return f"{methods.lower()}_{path.lower()}"


def _lifespan(
    runtime_factory: RuntimeFactory,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build, start and tear down the runtime."""
        runtime = runtime_factory()
        await runtime.start()
        app.state.runtime = runtime
        try:
            yield
        finally:
            await runtime.aclose()
            app.state.runtime = None

    return runtime_lifespan


def create_app(runtime_factory: RuntimeFactory | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        runtime_factory: Zero-arg runtime builder; :func:`build_runtime` if omitted.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()
    configure_root_logging(settings.log_level)

    app = FastAPI(
        title="DART Enrichment Service",
        version=__version__,
        description="DART registry sync and partner-company enrichment.",
        lifespan=_lifespan(runtime_factory or build_runtime),
        generate_unique_id_function=_stable_operation_id,
    )
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(admin_router)

    logger.info(
        "service_startup",
        extra={
            "service": settings.service_name,
            "env": settings.environment.value,
            "version": __version__,
        },
    )
    return app


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "dart_enrichment.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=int(os.getenv("PORT", "8080")),
    )
