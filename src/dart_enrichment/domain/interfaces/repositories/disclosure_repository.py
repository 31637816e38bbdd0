# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Disclosure repository interface.

Layer:
    domain
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from dart_enrichment.domain.entities.disclosure import DisclosureRecord


class DisclosureRepository(Protocol):
    """Protocol for disclosure receipt persistence."""

    async def existing_receipts(self, receipt_numbers: Iterable[str]) -> set[str]:
        """Return the subset of ``receipt_numbers`` already stored."""

    async def exists(self, receipt_number: str) -> bool:
        """Return True if a receipt with this number is stored."""

    async def add(self, record: DisclosureRecord) -> None:
        """Insert a new receipt. Receipts are never updated."""

    async def list_for_entity(self, entity_code: str) -> list[DisclosureRecord]:
        """Return stored receipts for ``entity_code``, newest first."""
