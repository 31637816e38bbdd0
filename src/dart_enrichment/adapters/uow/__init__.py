# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Unit of Work implementations (Adapters Layer)

Purpose:
    Concrete UnitOfWork backed by a SQLAlchemy AsyncSession. Use cases depend
    only on the ``UnitOfWork`` protocol from
    ``dart_enrichment.application.uow``.

Exports:
    - SqlAlchemyUnitOfWork
    - sqlalchemy_uow_factory: zero-arg factory used by the composition root.
"""

from __future__ import annotations

from .sqlalchemy_uow import SqlAlchemyUnitOfWork, sqlalchemy_uow_factory

__all__ = ["SqlAlchemyUnitOfWork", "sqlalchemy_uow_factory"]
