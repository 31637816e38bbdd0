# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Parsed registry feed.

Purpose:
    Outcome of decoding one registry download: the normalized records plus
    the upstream's embedded status, and bookkeeping about how the feed was
    decoded.

Layer:
    domain
"""

from __future__ import annotations

from dataclasses import dataclass

from dart_enrichment.domain.entities.registry_record import RegistryRecord
from dart_enrichment.domain.enums.dart import UPSTREAM_STATUS_SUCCESS


@dataclass(frozen=True)
class RegistryFeed:
    """Normalized registry feed.

    Attributes:
        records: Valid, de-duplicated registry records.
        status: Upstream status code, or None when the feed carried none.
        message: Upstream status message, if any.
        skipped: Number of raw records dropped during normalization.
        strategy: Name of the decoding strategy that succeeded.
        degraded: True when records were located heuristically.
    """

    records: tuple[RegistryRecord, ...]
    status: str | None = None
    message: str | None = None
    skipped: int = 0
    strategy: str = ""
    degraded: bool = False

    @property
    def is_success(self) -> bool:
        """A missing status counts as success when records are present."""
        if self.status is None:
            return bool(self.records)
        return self.status == UPSTREAM_STATUS_SUCCESS
