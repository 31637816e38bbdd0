# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Declarative Base and persistence mixins.

This module defines:
    - The project-wide SQLAlchemy Declarative Base with deterministic naming
      conventions (for stable migration diffs).
    - An audit timestamp mixin (UTC).

Design Goals:
    * UTC everywhere; timestamps are timezone-aware.
    * Dialect-neutral column types so the same models run on PostgreSQL in
      production and SQLite in tests.
    * Persistence only; no domain behavior.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

__all__ = ["Base", "TimestampMixin", "metadata", "now_utc"]

#: Deterministic naming conventions for migration-friendly diffs.
NAMING_CONVENTIONS: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTIONS)


def now_utc() -> datetime:
    """Return the current UTC time with timezone info."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative Base for all ORM models."""

    metadata = metadata


class TimestampMixin:
    """Mixin providing immutable ``created_at`` and mutable ``updated_at`` timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        server_default=func.now(),
    )
