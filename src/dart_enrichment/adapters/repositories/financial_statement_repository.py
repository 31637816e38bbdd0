# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
SQLAlchemy financial statement repository.

Layer:
    adapters/repositories

Notes:
    The (corp_code, bsns_year, reprt_code) triple is the only write unit:
    lines are never updated individually.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, insert, select

from dart_enrichment.adapters.repositories.base_repository import BaseRepository
from dart_enrichment.domain.entities.financial_statement import (
    FinancialStatementLine,
    StatementTarget,
)
from dart_enrichment.infrastructure.database.models.dart import FinancialStatementRow


def _to_domain(row: FinancialStatementRow) -> FinancialStatementLine:
    return FinancialStatementLine(
        entity_code=row.corp_code,
        fiscal_year=row.bsns_year,
        report_code=row.reprt_code,
        account_name=row.account_nm,
        receipt_number=row.rcept_no,
        statement_division=row.sj_div,
        statement_name=row.sj_nm,
        account_id=row.account_id,
        account_detail=row.account_detail,
        current_term_name=row.thstrm_nm,
        current_term_amount=row.thstrm_amount,
        current_term_add_amount=row.thstrm_add_amount,
        prior_term_name=row.frmtrm_nm,
        prior_term_amount=row.frmtrm_amount,
        prior_term_quarter_name=row.frmtrm_q_nm,
        prior_term_quarter_amount=row.frmtrm_q_amount,
        prior_term_add_amount=row.frmtrm_add_amount,
        prior_prior_term_name=row.bfefrmtrm_nm,
        prior_prior_term_amount=row.bfefrmtrm_amount,
        ordinal=row.ord,
        currency=row.currency,
    )


class FinancialStatementRepository(BaseRepository[FinancialStatementRow]):
    """Financial statement line repository."""

    async def replace_target(
        self,
        target: StatementTarget,
        lines: Sequence[FinancialStatementLine],
    ) -> int:
        """Delete every line of ``target`` and insert ``lines``."""
        await self._session.execute(
            delete(FinancialStatementRow).where(
                FinancialStatementRow.corp_code == target.entity_code,
                FinancialStatementRow.bsns_year == target.fiscal_year,
                FinancialStatementRow.reprt_code == target.report_code.value,
            )
        )
        if not lines:
            return 0

        now = self.utc_now()
        rows = [
            {
                "corp_code": target.entity_code,
                "bsns_year": target.fiscal_year,
                "reprt_code": target.report_code.value,
                "rcept_no": line.receipt_number,
                "sj_div": line.statement_division,
                "sj_nm": line.statement_name,
                "account_id": line.account_id,
                "account_nm": line.account_name,
                "account_detail": line.account_detail,
                "thstrm_nm": line.current_term_name,
                "thstrm_amount": line.current_term_amount,
                "thstrm_add_amount": line.current_term_add_amount,
                "frmtrm_nm": line.prior_term_name,
                "frmtrm_amount": line.prior_term_amount,
                "frmtrm_q_nm": line.prior_term_quarter_name,
                "frmtrm_q_amount": line.prior_term_quarter_amount,
                "frmtrm_add_amount": line.prior_term_add_amount,
                "bfefrmtrm_nm": line.prior_prior_term_name,
                "bfefrmtrm_amount": line.prior_prior_term_amount,
                "ord": line.ordinal,
                "currency": line.currency,
                "created_at": now,
            }
            for line in lines
        ]
        await self._session.execute(insert(FinancialStatementRow), rows)
        return len(rows)

    async def list_for_target(self, target: StatementTarget) -> list[FinancialStatementLine]:
        """Return stored lines for ``target`` in upstream order."""
        stmt = (
            select(FinancialStatementRow)
            .where(
                FinancialStatementRow.corp_code == target.entity_code,
                FinancialStatementRow.bsns_year == target.fiscal_year,
                FinancialStatementRow.reprt_code == target.report_code.value,
            )
            .order_by(FinancialStatementRow.ord.asc(), FinancialStatementRow.id.asc())
        )
        return [_to_domain(row) for row in await self.fetch_all(stmt)]
