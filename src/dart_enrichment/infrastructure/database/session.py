# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Async SQLAlchemy engine/session factory.

This module owns the process-global async SQLAlchemy engine and
``async_sessionmaker``.

Lifecycle:
    * Call ``init_engine_and_sessionmaker(settings)`` at startup (lifespan/CLI).
    * Pass ``get_sessionmaker()`` to units of work.
    * Call ``dispose_engine()`` during shutdown.

Notes:
    * ``pool_pre_ping=True`` surfaces dead connections before use.
    * ``create_schema`` is a development convenience; production schemas are
      managed by migrations.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dart_enrichment.config.settings import Settings
from dart_enrichment.infrastructure.database.models.base import Base

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def init_engine_and_sessionmaker(settings: Settings) -> None:
    """Initialize the global async engine and sessionmaker (idempotent).

    Args:
        settings: Application settings providing ``database_url``.

    Raises:
        ValueError: If ``database_url`` is empty.
    """
    global _engine, _sessionmaker

    if not settings.database_url:
        raise ValueError("database_url must be configured")
    if _engine is not None:
        return

    _engine = create_async_engine(
        url=settings.database_url,
        pool_pre_ping=True,
        echo=False,
    )
    _sessionmaker = async_sessionmaker(bind=_engine, expire_on_commit=False, class_=AsyncSession)


async def dispose_engine() -> None:
    """Dispose the global engine at shutdown."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Return the initialized engine.

    Raises:
        RuntimeError: If the engine is not yet initialized.
    """
    if _engine is None:
        raise RuntimeError("DB engine not initialized (call init_engine_and_sessionmaker)")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Return the initialized async sessionmaker.

    Raises:
        RuntimeError: If the sessionmaker is not yet initialized.
    """
    if _sessionmaker is None:
        raise RuntimeError("DB sessionmaker not initialized (call init_engine_and_sessionmaker)")
    return _sessionmaker


async def create_schema(engine: AsyncEngine) -> None:
    """Create every mapped table that does not exist yet."""
    # Register models on the metadata.
    from dart_enrichment.infrastructure.database.models import dart  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping(engine: AsyncEngine) -> None:
    """Run a trivial query; raises if the database is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
