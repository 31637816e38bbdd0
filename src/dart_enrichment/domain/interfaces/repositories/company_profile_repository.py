# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Company profile repository interface.

Layer:
    domain
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from dart_enrichment.domain.entities.company_profile import CompanyProfile


class CompanyProfileRepository(Protocol):
    """Protocol for company profile persistence."""

    async def get(self, entity_code: str) -> CompanyProfile | None:
        """Return the stored profile for ``entity_code``, if any."""

    async def upsert(self, profile: CompanyProfile, *, now: datetime) -> bool:
        """Insert or overwrite the profile keyed by entity code.

        Existing rows keep ``created_at``; ``updated_at`` is set to ``now``.
        New rows get ``created_at = updated_at = now``.

        Returns:
            bool: True if a new row was inserted.
        """
