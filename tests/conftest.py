from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from datetime import date
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dart_enrichment.adapters.uow.sqlalchemy_uow import sqlalchemy_uow_factory
from dart_enrichment.application.uow import UnitOfWorkFactory
from dart_enrichment.config.settings import CacheSettings
from dart_enrichment.domain.entities.company_profile import CompanyProfile
from dart_enrichment.domain.entities.disclosure import DisclosureRecord
from dart_enrichment.domain.entities.financial_statement import (
    FinancialStatementLine,
    StatementTarget,
)
from dart_enrichment.domain.entities.registry_feed import RegistryFeed
from dart_enrichment.domain.enums.dart import StatementDivision
from dart_enrichment.infrastructure.caching.memory_cache import InMemoryDatasetCache
from dart_enrichment.infrastructure.database.session import create_schema


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with the full schema created."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(eng)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def uow_factory(session_factory: async_sessionmaker[AsyncSession]) -> UnitOfWorkFactory:
    return sqlalchemy_uow_factory(session_factory)


@pytest.fixture
def cache() -> InMemoryDatasetCache:
    return InMemoryDatasetCache.from_settings(CacheSettings())


class FakeDartGateway:
    """Scriptable in-memory DartGateway.

    Each attribute is either a value to return or an exception instance to
    raise. Statement answers are keyed by ``(fiscal_year, report_code)``.
    """

    def __init__(self) -> None:
        self.profile: CompanyProfile | None | Exception = None
        self.disclosures: Sequence[DisclosureRecord] | Exception = ()
        self.statements: dict[tuple[str, str], Sequence[FinancialStatementLine] | Exception] = {}
        self.registry: RegistryFeed | Exception = RegistryFeed(records=())
        self.calls: list[tuple[str, Any]] = []

    async def fetch_company_profile(self, entity_code: str) -> CompanyProfile | None:
        self.calls.append(("profile", entity_code))
        if isinstance(self.profile, Exception):
            raise self.profile
        return self.profile

    async def search_disclosures(
        self, entity_code: str, *, begin: date, end: date
    ) -> Sequence[DisclosureRecord]:
        self.calls.append(("disclosures", (entity_code, begin, end)))
        if isinstance(self.disclosures, Exception):
            raise self.disclosures
        return self.disclosures

    async def fetch_financial_statements(
        self,
        target: StatementTarget,
        *,
        division: StatementDivision = StatementDivision.SEPARATE,
    ) -> Sequence[FinancialStatementLine]:
        self.calls.append(("statements", (target.fiscal_year, target.report_code.value)))
        answer = self.statements.get((target.fiscal_year, target.report_code.value), ())
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def download_registry(self) -> RegistryFeed:
        self.calls.append(("registry", None))
        if isinstance(self.registry, Exception):
            raise self.registry
        return self.registry


@pytest.fixture
def fake_gateway() -> FakeDartGateway:
    return FakeDartGateway()
