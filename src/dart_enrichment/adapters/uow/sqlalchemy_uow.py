# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""SQLAlchemy-backed Unit of Work implementation.

Purpose:
    Provide a concrete implementation of the application-layer UnitOfWork
    protocol using SQLAlchemy's AsyncSession. One UoW instance wraps one
    transaction; use cases create a fresh instance per atomic unit.

Layer:
    adapters/uow
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dart_enrichment.adapters.repositories.company_profile_repository import (
    CompanyProfileRepository,
)
from dart_enrichment.adapters.repositories.disclosure_repository import DisclosureRepository
from dart_enrichment.adapters.repositories.financial_statement_repository import (
    FinancialStatementRepository,
)
from dart_enrichment.adapters.repositories.registry_repository import RegistryRepository
from dart_enrichment.application.uow import UnitOfWork
from dart_enrichment.domain.interfaces.repositories import (
    company_profile_repository,
    disclosure_repository,
    financial_statement_repository,
    registry_repository,
)

RepoFactory = Callable[[AsyncSession], Any]


def _default_factories() -> dict[type[Any], RepoFactory]:
    """Interface → implementation wiring, plus direct concrete keys."""
    pairs: list[tuple[type[Any], type[Any]]] = [
        (registry_repository.RegistryRepository, RegistryRepository),
        (company_profile_repository.CompanyProfileRepository, CompanyProfileRepository),
        (disclosure_repository.DisclosureRepository, DisclosureRepository),
        (
            financial_statement_repository.FinancialStatementRepository,
            FinancialStatementRepository,
        ),
    ]
    factories: dict[type[Any], RepoFactory] = {}
    for protocol, impl in pairs:
        factories[protocol] = impl
        factories[impl] = impl
    return factories


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy-based UnitOfWork implementation.

    Usage:

        async with SqlAlchemyUnitOfWork(session_factory=sf) as uow:
            repo = uow.get_repository(RegistryRepository)
            ...
            await uow.commit()
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        repo_factories: Mapping[type[Any], RepoFactory] | None = None,
    ) -> None:
        """Initialize the UnitOfWork.

        Args:
            session_factory: Factory for creating new AsyncSession instances.
            repo_factories: Optional overrides mapping a repository key to a
                factory taking an AsyncSession.
        """
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._repo_factories: dict[type[Any], RepoFactory] = {
            **_default_factories(),
            **(dict(repo_factories) if repo_factories is not None else {}),
        }
        self._repos: dict[type[Any], Any] = {}
        self._committed = False
        self._rolled_back = False

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        """Open a new AsyncSession.

        Raises:
            RuntimeError: If a session is already active (nested usage).
        """
        if self._session is not None:
            raise RuntimeError("UnitOfWork is already active; nested usage is not supported.")

        self._session = self._session_factory()
        self._committed = False
        self._rolled_back = False
        self._repos.clear()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Roll back anything not committed, then close the session.

        Exceptions raised inside the block are propagated.
        """
        try:
            if not self._committed and not self._rolled_back:
                await self.rollback()
        finally:
            if self._session is not None:
                await self._session.close()
                self._session = None
            self._repos.clear()
        return None

    async def commit(self) -> None:
        """Commit the current transaction (no-op if already finished).

        Raises:
            RuntimeError: If called without an active session.
        """
        if self._session is None:
            raise RuntimeError("Cannot commit: UnitOfWork has no active session.")
        if self._committed or self._rolled_back:
            return
        await self._session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the current transaction (no-op if already finished)."""
        if self._session is None or self._rolled_back or self._committed:
            return
        await self._session.rollback()
        self._rolled_back = True

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return a repository instance bound to the active session.

        Raises:
            RuntimeError: If called outside of an active UnitOfWork context.
            KeyError: If no factory is registered for ``repo_type``.
        """
        if self._session is None:
            raise RuntimeError(
                "get_repository() called outside of an active UnitOfWork scope. "
                "Use 'async with uow:' before requesting repositories.",
            )
        if repo_type in self._repos:
            return self._repos[repo_type]
        try:
            factory = self._repo_factories[repo_type]
        except KeyError as exc:
            raise KeyError(f"No repository factory registered for type {repo_type!r}.") from exc
        repo = factory(self._session)
        self._repos[repo_type] = repo
        return repo


def sqlalchemy_uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SqlAlchemyUnitOfWork]:
    """Return a zero-arg factory producing fresh units of work."""

    def _factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(session_factory=session_factory)

    return _factory
