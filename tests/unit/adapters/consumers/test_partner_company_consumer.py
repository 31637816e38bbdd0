from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from dart_enrichment.adapters.consumers.partner_company_consumer import PartnerCompanyConsumer
from dart_enrichment.application.interfaces.message_bus import BusMessage
from dart_enrichment.application.use_cases.enrichment.enrich_partner_company import (
    EnrichmentReport,
)
from dart_enrichment.domain.entities.partner_company_event import PartnerCompanyEvent
from dart_enrichment.infrastructure.logging.logger import get_correlation_id, get_event_id
from dart_enrichment.infrastructure.messaging.in_memory_bus import InMemoryMessageBus

TOPIC = "partner-company-updated"


class RecordingUseCase:
    """Stand-in use case tracking how many runs overlap per entity code."""

    def __init__(self, *, delay: float = 0.0, fail_on: str | None = None) -> None:
        self.delay = delay
        self.fail_on = fail_on
        self.events: list[PartnerCompanyEvent] = []
        self.context: list[tuple[str | None, str | None]] = []
        self.running: dict[str | None, int] = {}
        self.max_overlap: dict[str | None, int] = {}
        self.max_total = 0

    async def execute(self, event: PartnerCompanyEvent) -> EnrichmentReport:
        code = event.entity_code
        self.events.append(event)
        self.context.append((get_correlation_id(), get_event_id()))
        self.running[code] = self.running.get(code, 0) + 1
        self.max_overlap[code] = max(self.max_overlap.get(code, 0), self.running[code])
        self.max_total = max(self.max_total, sum(self.running.values()))
        try:
            await asyncio.sleep(self.delay)
            if code is not None and code == self.fail_on:
                raise RuntimeError("store unavailable")
            return EnrichmentReport(entity_code=code, event_id=event.event_id, outcome="completed")
        finally:
            self.running[code] -= 1


def _message(payload: Any, **headers: str) -> BusMessage:
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return BusMessage(topic=TOPIC, value=raw, headers=headers)


def _consumer(use_case: RecordingUseCase) -> PartnerCompanyConsumer:
    return PartnerCompanyConsumer(use_case=use_case, topic=TOPIC, group="dart-enrichment")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_handle_decodes_camel_case_payload() -> None:
    use_case = RecordingUseCase()
    consumer = _consumer(use_case)

    report = await consumer.handle(
        _message({"id": 42, "corpCode": " 00126380 ", "companyName": "삼성전자"}, correlation_id="c-1")
    )

    assert report is not None and report.outcome == "completed"
    event = use_case.events[0]
    assert event.event_id == "42"
    assert event.entity_code == "00126380"
    assert event.company_name == "삼성전자"
    assert use_case.context == [("c-1", "42")]
    assert consumer.active_keys == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [b"\xff\xfe not json", b"{broken", json.dumps([1, 2]).encode()])
async def test_undecodable_messages_are_dropped(raw: bytes) -> None:
    use_case = RecordingUseCase()

    assert await _consumer(use_case).handle(_message(raw)) is None
    assert use_case.events == []


@pytest.mark.asyncio
async def test_use_case_failure_is_swallowed() -> None:
    use_case = RecordingUseCase(fail_on="00126380")
    consumer = _consumer(use_case)

    assert await consumer.handle(_message({"id": "1", "corpCode": "00126380"})) is None
    assert consumer.active_keys == 0


@pytest.mark.asyncio
async def test_same_entity_is_serialized_distinct_entities_overlap() -> None:
    use_case = RecordingUseCase(delay=0.02)
    consumer = _consumer(use_case)

    await asyncio.gather(
        consumer.handle(_message({"id": "1", "corpCode": "00126380"})),
        consumer.handle(_message({"id": "2", "corpCode": "00126380"})),
        consumer.handle(_message({"id": "3", "corpCode": "00164779"})),
    )

    assert use_case.max_overlap["00126380"] == 1
    assert use_case.max_total == 2
    assert consumer.active_keys == 0


@pytest.mark.asyncio
async def test_subscribe_routes_bus_messages() -> None:
    use_case = RecordingUseCase()
    consumer = _consumer(use_case)
    bus = InMemoryMessageBus()
    try:
        await consumer.subscribe(bus)
        await bus.publish(TOPIC, json.dumps({"id": "9", "corp_code": "00126380"}))
        await bus.drain()
    finally:
        await bus.close()

    assert [e.event_id for e in use_case.events] == ["9"]
