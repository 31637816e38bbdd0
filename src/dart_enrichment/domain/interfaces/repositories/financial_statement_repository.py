# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Financial statement repository interface.

Layer:
    domain
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from dart_enrichment.domain.entities.financial_statement import (
    FinancialStatementLine,
    StatementTarget,
)


class FinancialStatementRepository(Protocol):
    """Protocol for financial statement line persistence."""

    async def replace_target(
        self,
        target: StatementTarget,
        lines: Sequence[FinancialStatementLine],
    ) -> int:
        """Delete every line of ``target`` and insert ``lines``.

        Must run inside the caller's transaction so the delete and insert
        commit together.

        Returns:
            int: Number of inserted lines.
        """

    async def list_for_target(self, target: StatementTarget) -> list[FinancialStatementLine]:
        """Return stored lines for ``target`` in upstream order."""
