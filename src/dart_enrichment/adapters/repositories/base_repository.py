# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
BaseRepository: shared repository foundation.

Purpose:
    Shared mechanics for all repositories:
      * Safe fetch helpers (one, optional, all).
      * Scalar helpers for counts and existence checks.
      * UTC timestamp helper for audit fields.

Layer: adapters / repositories

Notes:
    * No business logic, no domain decisions.
    * Repositories never commit; use cases own transactions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

TModel = TypeVar("TModel")


class BaseRepository(Generic[TModel]):  # noqa: UP046
    """Base class for all repositories."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the target database.
        """
        self._session: AsyncSession = session

    @staticmethod
    def utc_now() -> datetime:
        """Return current UTC time with timezone info."""
        return datetime.now(UTC)

    async def fetch_one(self, stmt: Select[Any]) -> TModel:
        """Execute a statement and return a single row or raise."""
        res = await self._session.execute(stmt)
        return res.scalars().one()

    async def fetch_optional(self, stmt: Select[Any]) -> TModel | None:
        """Execute a statement and return zero or one row."""
        res = await self._session.execute(stmt)
        return res.scalars().first()

    async def fetch_all(self, stmt: Select[Any]) -> list[TModel]:
        """Execute a statement and return all rows as a list."""
        res = await self._session.execute(stmt)
        return list(res.scalars().all())

    async def count_rows(self, model: type[Any]) -> int:
        """Return ``SELECT count(*)`` for a mapped table."""
        res = await self._session.execute(select(func.count()).select_from(model))
        return int(res.scalar_one())
