# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Use case: enrich a partner company from DART.

Purpose:
    React to a ``partner-company-updated`` event by pulling the company's
    overview, its recent disclosures and its financial statements, and
    persisting each into the local store.

Stages (strictly in order):
    1. Resolve the entity code; a blank code skips the event entirely.
    2. Fetch the company overview; no data or a failure aborts the run.
    3. Upsert the overview (own transaction).
    4. Insert unseen disclosures for the trailing year (one transaction per
       receipt; a failing receipt does not stop the batch).
    5. For each statement triple, fetch first, then replace the stored lines
       in one transaction. A failed fetch leaves prior lines untouched.

Layer:
    application/use_cases

Notes:
    Every stage failure is logged and contained; ``execute`` only raises on
    cancellation. Replaying the same event converges to the same store state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from dart_enrichment.application.uow import UnitOfWorkFactory
from dart_enrichment.domain.entities.company_profile import CompanyProfile
from dart_enrichment.domain.entities.disclosure import DisclosureRecord
from dart_enrichment.domain.entities.financial_statement import (
    FinancialStatementLine,
    StatementTarget,
)
from dart_enrichment.domain.entities.partner_company_event import PartnerCompanyEvent
from dart_enrichment.domain.enums.dart import ReportCode
from dart_enrichment.domain.exceptions.dart import DartError
from dart_enrichment.domain.interfaces.gateways.dart_gateway import DartGateway
from dart_enrichment.domain.interfaces.repositories.company_profile_repository import (
    CompanyProfileRepository,
)
from dart_enrichment.domain.interfaces.repositories.disclosure_repository import (
    DisclosureRepository,
)
from dart_enrichment.domain.interfaces.repositories.financial_statement_repository import (
    FinancialStatementRepository,
)
from dart_enrichment.infrastructure.observability.metrics_dart import (
    get_enrichment_stage_total,
)

logger = logging.getLogger(__name__)

OUTCOME_SKIPPED = "skipped"
OUTCOME_PROFILE_UNAVAILABLE = "profile_unavailable"
OUTCOME_PROFILE_FAILED = "profile_failed"
OUTCOME_COMPLETED = "completed"


def statement_targets(entity_code: str, today: date) -> list[StatementTarget]:
    """Return the statement triples fetched for one enrichment, in order."""
    this_year = str(today.year)
    last_year = str(today.year - 1)
    return [
        StatementTarget(entity_code, last_year, ReportCode.ANNUAL),
        StatementTarget(entity_code, this_year, ReportCode.THIRD_QUARTER),
        StatementTarget(entity_code, this_year, ReportCode.HALF_YEAR),
        StatementTarget(entity_code, this_year, ReportCode.FIRST_QUARTER),
    ]


def one_year_before(day: date) -> date:
    """Return the same calendar day one year earlier (Feb 29 → Feb 28)."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class EnrichmentReport:
    """Per-stage outcome of one enrichment run.

    ``statements`` maps a triple's cache key to the number of stored lines,
    or None when that triple was left untouched after a failure.
    """

    entity_code: str | None
    event_id: str | None = None
    outcome: str = OUTCOME_SKIPPED
    profile_created: bool | None = None
    disclosures_fetched: bool = False
    disclosures_inserted: int = 0
    disclosures_existing: int = 0
    disclosures_failed: int = 0
    statements: dict[str, int | None] = field(default_factory=dict)

    @property
    def statements_failed(self) -> int:
        return sum(1 for count in self.statements.values() if count is None)


class EnrichPartnerCompanyUseCase:
    """Orchestrate profile, disclosure and statement enrichment.

    Args:
        gateway: Cache-fronted DART gateway.
        uow_factory: Factory returning a fresh UnitOfWork per transaction.
        clock: Returns the current aware datetime; ``today`` derives from it.
    """

    def __init__(
        self,
        *,
        gateway: DartGateway,
        uow_factory: UnitOfWorkFactory,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._gateway = gateway
        self._uow_factory = uow_factory
        self._clock = clock

    async def execute(self, event: PartnerCompanyEvent) -> EnrichmentReport:
        """Run every stage for ``event`` and return the report."""
        code = event.entity_code
        report = EnrichmentReport(entity_code=code, event_id=event.event_id)
        if not code:
            logger.info(
                "dart.enrichment.skipped_blank_code",
                extra={"company_name": event.company_name},
            )
            self._count("event", OUTCOME_SKIPPED)
            return report

        logger.info("dart.enrichment.start", extra={"entity_code": code})

        profile = await self._stage_profile(code, report)
        if profile is None:
            return report

        today = self._clock().date()
        await self._stage_disclosures(code, today, report)
        for target in statement_targets(code, today):
            await self._stage_statement(target, report)

        report.outcome = OUTCOME_COMPLETED
        self._count("event", OUTCOME_COMPLETED)
        logger.info(
            "dart.enrichment.completed",
            extra={
                "entity_code": code,
                "profile_created": report.profile_created,
                "disclosures_inserted": report.disclosures_inserted,
                "disclosures_existing": report.disclosures_existing,
                "disclosures_failed": report.disclosures_failed,
                "statements": report.statements,
            },
        )
        return report

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    async def _stage_profile(self, code: str, report: EnrichmentReport) -> CompanyProfile | None:
        try:
            profile = await self._gateway.fetch_company_profile(code)
        except DartError as exc:
            logger.warning(
                "dart.enrichment.profile.fetch_failed",
                extra={"entity_code": code, "error_code": exc.code, "reason": exc.message},
            )
            report.outcome = OUTCOME_PROFILE_FAILED
            self._count("profile", "fetch_failed")
            return None

        if profile is None:
            logger.info("dart.enrichment.profile.unavailable", extra={"entity_code": code})
            report.outcome = OUTCOME_PROFILE_UNAVAILABLE
            self._count("profile", "unavailable")
            return None

        try:
            async with self._uow_factory() as tx:
                repo: CompanyProfileRepository = tx.get_repository(CompanyProfileRepository)
                created = await repo.upsert(profile, now=self._clock())
                await tx.commit()
        except Exception:  # noqa: BLE001
            logger.exception("dart.enrichment.profile.persist_failed", extra={"entity_code": code})
            report.outcome = OUTCOME_PROFILE_FAILED
            self._count("profile", "persist_failed")
            return None

        report.profile_created = created
        self._count("profile", "created" if created else "updated")
        logger.info(
            "dart.enrichment.profile.upserted",
            extra={"entity_code": code, "profile_created": created},
        )
        return profile

    async def _stage_disclosures(self, code: str, today: date, report: EnrichmentReport) -> None:
        begin = one_year_before(today)
        try:
            records = await self._gateway.search_disclosures(code, begin=begin, end=today)
        except DartError as exc:
            logger.warning(
                "dart.enrichment.disclosures.fetch_failed",
                extra={"entity_code": code, "error_code": exc.code, "reason": exc.message},
            )
            self._count("disclosures", "fetch_failed")
            return
        report.disclosures_fetched = True

        unique: dict[str, DisclosureRecord] = {}
        for record in records:
            unique.setdefault(record.receipt_number, record)
        if not unique:
            self._count("disclosures", "empty")
            return

        try:
            async with self._uow_factory() as tx:
                repo: DisclosureRepository = tx.get_repository(DisclosureRepository)
                existing = await repo.existing_receipts(unique.keys())
        except Exception:  # noqa: BLE001
            logger.exception("dart.enrichment.disclosures.lookup_failed", extra={"entity_code": code})
            self._count("disclosures", "lookup_failed")
            return

        report.disclosures_existing = len(existing)
        for receipt, record in unique.items():
            if receipt in existing:
                continue
            await self._insert_disclosure(record, report)

        self._count("disclosures", "stored")
        logger.info(
            "dart.enrichment.disclosures.stored",
            extra={
                "entity_code": code,
                "inserted": report.disclosures_inserted,
                "existing": report.disclosures_existing,
                "failed": report.disclosures_failed,
            },
        )

    async def _insert_disclosure(self, record: DisclosureRecord, report: EnrichmentReport) -> None:
        try:
            async with self._uow_factory() as tx:
                repo: DisclosureRepository = tx.get_repository(DisclosureRepository)
                if await repo.exists(record.receipt_number):
                    report.disclosures_existing += 1
                    return
                await repo.add(record)
                await tx.commit()
        except Exception:  # noqa: BLE001
            report.disclosures_failed += 1
            logger.exception(
                "dart.enrichment.disclosures.insert_failed",
                extra={"entity_code": record.entity_code, "receipt_number": record.receipt_number},
            )
            return
        report.disclosures_inserted += 1

    async def _stage_statement(self, target: StatementTarget, report: EnrichmentReport) -> None:
        key = f"{target.fiscal_year}_{target.report_code.value}"
        try:
            lines: Sequence[FinancialStatementLine] = (
                await self._gateway.fetch_financial_statements(target)
            )
        except DartError as exc:
            report.statements[key] = None
            logger.warning(
                "dart.enrichment.statements.fetch_failed",
                extra={
                    "entity_code": target.entity_code,
                    "bsns_year": target.fiscal_year,
                    "reprt_code": target.report_code.value,
                    "error_code": exc.code,
                    "reason": exc.message,
                },
            )
            self._count("statements", "fetch_failed")
            return

        try:
            async with self._uow_factory() as tx:
                repo: FinancialStatementRepository = tx.get_repository(
                    FinancialStatementRepository
                )
                inserted = await repo.replace_target(target, lines)
                await tx.commit()
        except Exception:  # noqa: BLE001
            report.statements[key] = None
            logger.exception(
                "dart.enrichment.statements.persist_failed",
                extra={
                    "entity_code": target.entity_code,
                    "bsns_year": target.fiscal_year,
                    "reprt_code": target.report_code.value,
                },
            )
            self._count("statements", "persist_failed")
            return

        report.statements[key] = inserted
        self._count("statements", "replaced")
        logger.info(
            "dart.enrichment.statements.replaced",
            extra={
                "entity_code": target.entity_code,
                "bsns_year": target.fiscal_year,
                "reprt_code": target.report_code.value,
                "lines": inserted,
            },
        )

    @staticmethod
    def _count(stage: str, outcome: str) -> None:
        with suppress(Exception):
            get_enrichment_stage_total().labels(stage, outcome).inc()
