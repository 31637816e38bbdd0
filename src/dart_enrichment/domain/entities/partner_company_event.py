# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Partner-company changed event.

Purpose:
    Inbound domain event announcing that a partner company was created or
    updated. Only the entity code drives enrichment; the other fields are
    carried for logging.

Layer:
    domain
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from dart_enrichment.domain.entities.registry_record import normalize_entity_code


@dataclass(frozen=True)
class PartnerCompanyEvent:
    """Decoded ``partner-company-updated`` message."""

    event_id: str | None
    entity_code: str | None
    company_name: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PartnerCompanyEvent:
        """Build an event from a decoded bus payload.

        Accepts both camelCase (as published by the partner service) and
        snake_case keys.
        """
        raw_id = payload.get("id")
        code = payload.get("corpCode", payload.get("corp_code", payload.get("entity_code")))
        name = (
            payload.get("companyName")
            or payload.get("corpName")
            or payload.get("company_name")
        )
        return cls(
            event_id=None if raw_id is None else str(raw_id),
            entity_code=normalize_entity_code(code),
            company_name=None if name is None else str(name),
        )
