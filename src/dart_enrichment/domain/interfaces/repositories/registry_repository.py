# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Registry repository interface.

Purpose:
    Persistence contract for the local registry snapshot.

Layer:
    domain

Notes:
    Implementations never commit; the calling use case owns the transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from dart_enrichment.domain.entities.registry_record import RegistryRecord


class RegistryRepository(Protocol):
    """Protocol for the registry snapshot store."""

    async def count(self) -> int:
        """Return the number of stored registry records."""

    async def replace_all(self, records: Sequence[RegistryRecord]) -> int:
        """Delete every stored record and bulk-insert ``records``.

        Returns:
            int: Number of inserted records.
        """

    async def get(self, entity_code: str) -> RegistryRecord | None:
        """Return the record for ``entity_code``, if any."""

    async def get_by_listing_code(self, listing_code: str) -> RegistryRecord | None:
        """Return the record carrying ``listing_code``, if any."""

    async def search_by_name(
        self,
        fragment: str,
        *,
        listed_only: bool = False,
        limit: int = 20,
    ) -> list[RegistryRecord]:
        """Return records whose legal name contains ``fragment``."""
