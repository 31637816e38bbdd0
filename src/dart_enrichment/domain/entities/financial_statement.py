# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Financial statement entities.

Purpose:
    Represent single-company full financial statement lines and the
    ``StatementTarget`` triple that identifies one replaceable line set.

Layer:
    domain

Notes:
    Amounts are kept as the upstream's raw strings: they carry thousands
    separators, signs and blanks that downstream evaluators normalize.
"""

from __future__ import annotations

from dataclasses import dataclass

from dart_enrichment.domain.enums.dart import ReportCode, StatementDivision
from dart_enrichment.domain.exceptions.dart import RecordMappingError


@dataclass(frozen=True)
class StatementTarget:
    """(entity_code, fiscal_year, report_code) unit of idempotent replacement."""

    entity_code: str
    fiscal_year: str
    report_code: ReportCode

    def cache_key(self, division: StatementDivision) -> str:
        """Return the cache key for this triple and a statement division."""
        return f"{self.entity_code}_{self.fiscal_year}_{self.report_code.value}_{division.value}"


@dataclass(frozen=True)
class FinancialStatementLine:
    """One account line of a single-company full financial statement."""

    entity_code: str
    fiscal_year: str
    report_code: str
    account_name: str
    receipt_number: str | None = None
    statement_division: str | None = None
    statement_name: str | None = None
    account_id: str | None = None
    account_detail: str | None = None
    current_term_name: str | None = None
    current_term_amount: str | None = None
    current_term_add_amount: str | None = None
    prior_term_name: str | None = None
    prior_term_amount: str | None = None
    prior_term_quarter_name: str | None = None
    prior_term_quarter_amount: str | None = None
    prior_term_add_amount: str | None = None
    prior_prior_term_name: str | None = None
    prior_prior_term_amount: str | None = None
    ordinal: int | None = None
    currency: str | None = None

    def __post_init__(self) -> None:
        """Validate the triple columns."""
        for name in ("entity_code", "fiscal_year", "report_code"):
            value = (getattr(self, name) or "").strip()
            if not value:
                raise RecordMappingError(
                    f"FinancialStatementLine.{name} must not be empty.",
                    details={"account_name": self.account_name},
                )
            object.__setattr__(self, name, value)

    @property
    def target(self) -> StatementTarget:
        """The replaceable unit this line belongs to."""
        return StatementTarget(self.entity_code, self.fiscal_year, ReportCode(self.report_code))
