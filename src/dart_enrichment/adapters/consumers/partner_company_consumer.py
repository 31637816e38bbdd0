# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Partner-company event consumer.

Purpose:
    Bridge ``partner-company-updated`` bus messages to the enrichment use case.

Behavior:
    * Payloads are JSON objects; undecodable messages are logged and dropped.
    * Processing is serialized per entity code; distinct codes run
      concurrently.
    * Failures are logged and swallowed so the bus keeps delivering.

Layer:
    adapters/consumers
"""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dart_enrichment.application.interfaces.message_bus import BusMessage, MessageBus
from dart_enrichment.application.use_cases.enrichment.enrich_partner_company import (
    EnrichmentReport,
    EnrichPartnerCompanyUseCase,
)
from dart_enrichment.domain.entities.partner_company_event import PartnerCompanyEvent
from dart_enrichment.infrastructure.logging.logger import get_json_logger, set_log_context

logger = get_json_logger(__name__)


class PartnerCompanyConsumer:
    """Subscribe the enrichment use case to the partner topic.

    Args:
        use_case: Enrichment orchestrator.
        topic: Topic carrying partner-company events.
        group: Consumer group name.
    """

    def __init__(
        self,
        *,
        use_case: EnrichPartnerCompanyUseCase,
        topic: str,
        group: str,
    ) -> None:
        self._use_case = use_case
        self._topic = topic
        self._group = group
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @property
    def topic(self) -> str:
        return self._topic

    async def subscribe(self, bus: MessageBus) -> None:
        """Register :meth:`handle` on ``bus``."""
        await bus.subscribe(self._topic, group=self._group, handler=self.handle)

    async def handle(self, message: BusMessage) -> EnrichmentReport | None:
        """Process one message; never raises except on cancellation."""
        correlation_id = message.headers.get("correlation_id") or uuid.uuid4().hex
        event = self._decode(message)
        if event is None:
            return None

        set_log_context(correlation_id=correlation_id, event_id=event.event_id)
        try:
            if not event.entity_code:
                return await self._use_case.execute(event)
            async with self._entity_lock(event.entity_code):
                return await self._use_case.execute(event)
        except Exception:  # noqa: BLE001
            logger.exception(
                "dart.consumer.event_failed",
                extra={"topic": message.topic, "entity_code": event.entity_code},
            )
            return None

    @property
    def active_keys(self) -> int:
        """Number of entity codes currently holding or awaiting a lock."""
        return len(self._locks)

    def _decode(self, message: BusMessage) -> PartnerCompanyEvent | None:
        try:
            payload = json.loads(message.value.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(
                "dart.consumer.undecodable",
                extra={"topic": message.topic, "reason": str(exc)},
            )
            return None
        if not isinstance(payload, dict):
            logger.warning(
                "dart.consumer.unexpected_payload",
                extra={"topic": message.topic, "payload_type": type(payload).__name__},
            )
            return None
        return PartnerCompanyEvent.from_payload(payload)

    @asynccontextmanager
    async def _entity_lock(self, entity_code: str) -> AsyncIterator[None]:
        lock = self._locks.get(entity_code)
        if lock is None:
            lock = self._locks[entity_code] = asyncio.Lock()
            self._waiters[entity_code] = 0
        self._waiters[entity_code] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[entity_code] -= 1
            if self._waiters[entity_code] == 0:
                del self._waiters[entity_code]
                del self._locks[entity_code]
