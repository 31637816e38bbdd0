# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Disclosure entity.

Purpose:
    One filing receipt from the upstream disclosure search. Receipts are
    immutable: the receipt number is the identity and a stored receipt is
    never rewritten.

Layer:
    domain
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.domain.exceptions.dart import RecordMappingError


@dataclass(frozen=True)
class DisclosureRecord:
    """Normalized disclosure receipt."""

    receipt_number: str
    entity_code: str
    report_name: str
    receipt_date: date
    corp_name: str | None = None
    listing_code: str | None = None
    market_segment: MarketSegment | None = None
    submitter: str | None = None
    remark: str | None = None

    def __post_init__(self) -> None:
        """Validate identity fields."""
        receipt = (self.receipt_number or "").strip()
        if not receipt:
            raise RecordMappingError("Disclosure receipt_number must not be empty.")
        object.__setattr__(self, "receipt_number", receipt)
        if not (self.entity_code or "").strip():
            raise RecordMappingError(
                "Disclosure entity_code must not be empty.",
                details={"receipt_number": receipt},
            )
