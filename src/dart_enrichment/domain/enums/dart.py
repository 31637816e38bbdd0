# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
DART-specific enumerations.

Purpose:
    Name the handful of upstream codes the pipeline relies on: report codes,
    statement divisions, market segments and the upstream success status.

Layer:
    domain
"""

from __future__ import annotations

from enum import Enum
from typing import Final

#: Status value embedded in every successful DART payload.
UPSTREAM_STATUS_SUCCESS: Final[str] = "000"

#: Status returned when a query matched no data.
UPSTREAM_STATUS_NO_DATA: Final[str] = "013"


class ReportCode(str, Enum):
    """Periodic report selector (``reprt_code``)."""

    ANNUAL = "11011"
    HALF_YEAR = "11012"
    FIRST_QUARTER = "11013"
    THIRD_QUARTER = "11014"


class StatementDivision(str, Enum):
    """Financial statement division (``fs_div``)."""

    SEPARATE = "OFS"
    CONSOLIDATED = "CFS"


class MarketSegment(str, Enum):
    """Market segment (``corp_cls``).

    Y: KOSPI, K: KOSDAQ, N: KONEX, E: other.
    """

    KOSPI = "Y"
    KOSDAQ = "K"
    KONEX = "N"
    OTHER = "E"

    @classmethod
    def parse(cls, raw: str | None) -> MarketSegment | None:
        """Return the segment for ``raw`` or None when blank or unknown."""
        if raw is None:
            return None
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return None
