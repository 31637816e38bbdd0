# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Registry record entity.

Purpose:
    One row of the upstream corporate identifier registry, normalized so that
    every feed schema variant yields the same value object.

Layer:
    domain

Notes:
    Invariants are enforced in ``__post_init__``; violations raise
    RecordMappingError so parsers can skip and count the offending record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from dart_enrichment.domain.enums.dart import MarketSegment
from dart_enrichment.domain.exceptions.dart import RecordMappingError

ENTITY_CODE_LENGTH = 8
LISTING_CODE_LENGTH = 6


def normalize_entity_code(raw: str | None) -> str | None:
    """Return a stripped entity code, or None when blank."""
    if raw is None:
        return None
    cleaned = str(raw).strip()
    return cleaned or None


@dataclass(frozen=True)
class RegistryRecord:
    """Normalized registry entry.

    Args:
        entity_code: Stable 8-digit DART corporation code.
        legal_name: Registered company name.
        english_name: Optional English company name.
        listing_code: Optional 6-character exchange listing code.
        last_modified_date: Date the upstream last touched the record.
        market_segment: Optional market segment.

    Raises:
        RecordMappingError: If the entity code or legal name is invalid.
    """

    entity_code: str
    legal_name: str
    english_name: str | None = None
    listing_code: str | None = None
    last_modified_date: date | None = None
    market_segment: MarketSegment | None = None

    def __post_init__(self) -> None:
        """Validate and normalize identifier fields."""
        code = (self.entity_code or "").strip()
        if len(code) != ENTITY_CODE_LENGTH or not code.isdigit():
            raise RecordMappingError(
                "entity_code must be an 8-digit string.",
                details={"entity_code": self.entity_code},
            )
        object.__setattr__(self, "entity_code", code)

        name = (self.legal_name or "").strip()
        if not name:
            raise RecordMappingError(
                "legal_name must not be empty.",
                details={"entity_code": code},
            )
        object.__setattr__(self, "legal_name", name)

        english = (self.english_name or "").strip()
        object.__setattr__(self, "english_name", english or None)

        listing = (self.listing_code or "").strip()
        if listing and len(listing) > LISTING_CODE_LENGTH:
            raise RecordMappingError(
                "listing_code must be at most 6 characters.",
                details={"entity_code": code, "listing_code": listing},
            )
        object.__setattr__(self, "listing_code", listing or None)

    @property
    def is_listed(self) -> bool:
        """True when the company carries an exchange listing code."""
        return self.listing_code is not None
