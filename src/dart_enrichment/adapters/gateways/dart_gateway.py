# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Adapter Gateway: DART → domain.

Purpose:
    Implement the domain :class:`DartGateway` on top of the rate-limited DART
    client, fronted by the dataset cache:

    * Company overview lookup (``company_profiles`` dataset).
    * Disclosure search for a date window (``disclosure_search`` dataset).
    * Full financial statements per triple (``financial_statements`` dataset).
    * Registry download, decompression and parsing (never cached).

Layer:
    adapters

Notes:
    Only successful upstream answers are cached. A payload carrying a
    non-success status maps to None/empty and is re-fetched next time.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any, cast

from dart_enrichment.adapters.mappers.dart_payload_mapper import (
    is_success,
    map_company_profile,
    map_disclosure_row,
    map_financial_statement_row,
    payload_rows,
    payload_status,
)
from dart_enrichment.adapters.mappers.registry_feed_parser import RegistryFeedParser
from dart_enrichment.application.interfaces.cache_port import (
    COMPANY_PROFILES,
    DISCLOSURE_SEARCH,
    FINANCIAL_STATEMENTS,
    CachePort,
)
from dart_enrichment.domain.entities.company_profile import CompanyProfile
from dart_enrichment.domain.entities.disclosure import DisclosureRecord
from dart_enrichment.domain.entities.financial_statement import (
    FinancialStatementLine,
    StatementTarget,
)
from dart_enrichment.domain.entities.registry_feed import RegistryFeed
from dart_enrichment.domain.enums.dart import StatementDivision
from dart_enrichment.domain.exceptions.dart import RecordMappingError
from dart_enrichment.domain.interfaces.gateways.dart_gateway import DartGateway
from dart_enrichment.infrastructure.external_apis.dart.client import DartClient
from dart_enrichment.infrastructure.external_apis.dart.types import (
    DartCompanyPayload,
    DartDisclosureRow,
    DartDisclosureSearchPayload,
    DartFinancialStatementPayload,
    DartFinancialStatementRow,
)

logger = logging.getLogger(__name__)


class CachedDartGateway(DartGateway):
    """Cache-fronted DART gateway implementation."""

    def __init__(
        self,
        client: DartClient,
        cache: CachePort,
        *,
        parser: RegistryFeedParser | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Rate-limited DART HTTP client.
            cache: Dataset cache placed in front of the client.
            parser: Registry feed parser; a default instance if omitted.
        """
        self._client = client
        self._cache = cache
        self._parser = parser or RegistryFeedParser()

    async def fetch_company_profile(self, entity_code: str) -> CompanyProfile | None:
        """Return the company overview, or None when the upstream has no data."""

        async def _load() -> CompanyProfile | None:
            payload = cast(DartCompanyPayload, await self._client.fetch_company(entity_code))
            if not is_success(payload):
                self._log_no_data("company", entity_code, payload)
                return None
            return map_company_profile(payload)

        return await self._cache.get_or_load(COMPANY_PROFILES, entity_code, _load)

    async def search_disclosures(
        self,
        entity_code: str,
        *,
        begin: date,
        end: date,
    ) -> Sequence[DisclosureRecord]:
        """Return disclosure receipts filed within ``[begin, end]``.

        Rows that cannot be coerced are dropped and logged.
        """
        key = f"{entity_code}_{begin:%Y%m%d}_{end:%Y%m%d}"

        async def _load() -> tuple[DisclosureRecord, ...] | None:
            payload = cast(
                DartDisclosureSearchPayload,
                await self._client.search_disclosures(entity_code, begin=begin, end=end),
            )
            if not is_success(payload):
                self._log_no_data("disclosure_search", entity_code, payload)
                return None
            rows = cast(list[DartDisclosureRow], payload_rows(payload))
            return tuple(self._map_rows(rows, map_disclosure_row, "disclosure_search"))

        return await self._cache.get_or_load(DISCLOSURE_SEARCH, key, _load) or ()

    async def fetch_financial_statements(
        self,
        target: StatementTarget,
        *,
        division: StatementDivision = StatementDivision.SEPARATE,
    ) -> Sequence[FinancialStatementLine]:
        """Return the full statement line set for a triple (possibly empty)."""

        def _map(row: DartFinancialStatementRow) -> FinancialStatementLine:
            return map_financial_statement_row(
                row,
                entity_code=target.entity_code,
                fiscal_year=target.fiscal_year,
                report_code=target.report_code.value,
            )

        async def _load() -> tuple[FinancialStatementLine, ...] | None:
            payload = cast(
                DartFinancialStatementPayload,
                await self._client.fetch_financial_statements(
                    target.entity_code,
                    bsns_year=target.fiscal_year,
                    reprt_code=target.report_code.value,
                    fs_div=division.value,
                ),
            )
            if not is_success(payload):
                self._log_no_data("financial_statements", target.entity_code, payload)
                return None
            rows = cast(list[DartFinancialStatementRow], payload_rows(payload))
            return tuple(self._map_rows(rows, _map, "financial_statements"))

        key = target.cache_key(division)
        return await self._cache.get_or_load(FINANCIAL_STATEMENTS, key, _load) or ()

    async def download_registry(self) -> RegistryFeed:
        """Download, decompress and parse the full identifier registry."""
        payload = await self._client.download_registry()
        return self._parser.parse(payload)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _map_rows(rows: Sequence[Any], mapper: Any, endpoint: str) -> list[Any]:
        mapped: list[Any] = []
        skipped = 0
        for row in rows:
            try:
                mapped.append(mapper(row))
            except RecordMappingError as exc:
                skipped += 1
                logger.warning(
                    "dart.gateway.row_skipped",
                    extra={"endpoint": endpoint, "reason": exc.message, "details": exc.details},
                )
        if skipped:
            logger.info(
                "dart.gateway.rows_mapped",
                extra={"endpoint": endpoint, "mapped": len(mapped), "skipped": skipped},
            )
        return mapped

    @staticmethod
    def _log_no_data(endpoint: str, entity_code: str, payload: Mapping[str, object]) -> None:
        logger.info(
            "dart.gateway.no_data",
            extra={
                "endpoint": endpoint,
                "entity_code": entity_code,
                "status": payload_status(payload),
                "upstream_message": payload.get("message"),
            },
        )
