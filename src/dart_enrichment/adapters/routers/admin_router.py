# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Administrative endpoints.

Purpose:
    * Manual trigger for the registry sync. The request returns immediately
      with 202; the sync runs in the background and coalesces with any run
      already in flight.
    * Partner-event ingress: publishes a partner-company change onto the
      message bus, where the enrichment consumer picks it up.

Layer:
    adapters/routers
"""

from __future__ import annotations

import json
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel, ConfigDict, Field

from dart_enrichment.bootstrap import Runtime, get_runtime
from dart_enrichment.domain.entities.partner_company_event import PartnerCompanyEvent
from dart_enrichment.infrastructure.logging.logger import get_json_logger
from dart_enrichment.infrastructure.scheduling.registry_scheduler import TRIGGER_MANUAL

logger = get_json_logger(__name__)
router = APIRouter(prefix="/v1/admin", tags=["admin"])


class SyncAccepted(BaseModel):
    """Acknowledgement of a manual sync trigger."""

    status: str = "accepted"
    trigger: str = TRIGGER_MANUAL


@router.post(
    "/registry/sync",
    response_model=SyncAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    operation_id="admin_registry_sync",
)
async def trigger_registry_sync(
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> SyncAccepted:
    """Fire-and-forget registry sync."""
    runtime.scheduler.trigger(TRIGGER_MANUAL)
    logger.info("admin.registry_sync.triggered")
    return SyncAccepted()


class PartnerCompanyEventIn(BaseModel):
    """Inbound partner-company change, in the partner service's wire shape."""

    model_config = ConfigDict(populate_by_name=True)

    event_id: str | int | None = Field(default=None, alias="id")
    corp_code: str | None = Field(default=None, alias="corpCode")
    company_name: str | None = Field(default=None, alias="companyName")


class EventAccepted(BaseModel):
    """Acknowledgement of a published partner event."""

    status: str = "accepted"
    topic: str
    event_id: str | None = None


@router.post(
    "/partner-events",
    response_model=EventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    operation_id="admin_publish_partner_event",
)
async def publish_partner_event(
    body: PartnerCompanyEventIn,
    runtime: Annotated[Runtime, Depends(get_runtime)],
    x_correlation_id: Annotated[str | None, Header()] = None,
) -> EventAccepted:
    """Publish a partner-company event onto the bus the consumer reads.

    Enrichment runs asynchronously; the response only confirms the publish.
    """
    event = PartnerCompanyEvent.from_payload(body.model_dump(by_alias=True))
    topic = runtime.consumer.topic
    correlation_id = x_correlation_id or uuid.uuid4().hex
    await runtime.bus.publish(
        topic,
        json.dumps(body.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False),
        key=event.entity_code,
        headers={"correlation_id": correlation_id},
    )
    logger.info(
        "admin.partner_event.published",
        extra={"topic": topic, "event_id": event.event_id, "entity_code": event.entity_code},
    )
    return EventAccepted(topic=topic, event_id=event.event_id)
