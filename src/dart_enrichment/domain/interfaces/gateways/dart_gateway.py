# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
DART gateway interface.

Purpose:
    Domain-facing contract for reading DART data. Implementations front the
    rate-limited transport with a cache and map payloads into entities.

Layer:
    domain

Notes:
    "No data" is never an exception: a payload whose embedded status is not
    successful maps to None or an empty list. Failed calls raise one of the
    DART error types.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from dart_enrichment.domain.entities.company_profile import CompanyProfile
from dart_enrichment.domain.entities.disclosure import DisclosureRecord
from dart_enrichment.domain.entities.financial_statement import (
    FinancialStatementLine,
    StatementTarget,
)
from dart_enrichment.domain.entities.registry_feed import RegistryFeed
from dart_enrichment.domain.enums.dart import StatementDivision


class DartGateway(Protocol):
    """Protocol for DART data access."""

    async def fetch_company_profile(self, entity_code: str) -> CompanyProfile | None:
        """Return the company overview, or None when the upstream has no data."""

    async def search_disclosures(
        self,
        entity_code: str,
        *,
        begin: date,
        end: date,
    ) -> Sequence[DisclosureRecord]:
        """Return disclosure receipts filed within ``[begin, end]``."""

    async def fetch_financial_statements(
        self,
        target: StatementTarget,
        *,
        division: StatementDivision = StatementDivision.SEPARATE,
    ) -> Sequence[FinancialStatementLine]:
        """Return the full statement line set for a triple (possibly empty)."""

    async def download_registry(self) -> RegistryFeed:
        """Download, decompress and parse the full identifier registry."""
