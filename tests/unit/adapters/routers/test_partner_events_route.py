from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
import pytest
from fastapi.testclient import TestClient

from dart_enrichment.adapters.consumers.partner_company_consumer import PartnerCompanyConsumer
from dart_enrichment.adapters.uow.sqlalchemy_uow import sqlalchemy_uow_factory
from dart_enrichment.application.use_cases.enrichment.enrich_partner_company import (
    EnrichPartnerCompanyUseCase,
)
from dart_enrichment.bootstrap import Runtime, build_runtime
from dart_enrichment.config.settings import SchedulerSettings, Settings
from dart_enrichment.infrastructure.external_apis.dart.settings import DartSettings
from dart_enrichment.infrastructure.messaging.in_memory_bus import InMemoryMessageBus
from dart_enrichment.main import create_app

if TYPE_CHECKING:
    from conftest import FakeDartGateway


def _upstream_down(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, text="maintenance")


@dataclass
class Service:
    client: TestClient
    bus: InMemoryMessageBus

    def drain(self) -> None:
        portal = self.client.portal
        assert portal is not None
        portal.call(self.bus.drain)


@pytest.fixture
def service(
    monkeypatch: pytest.MonkeyPatch,
    fake_gateway: FakeDartGateway,
) -> Iterator[Service]:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("CREATE_SCHEMA_ON_STARTUP", "true")
    bus = InMemoryMessageBus()

    def runtime_factory() -> Runtime:
        runtime = build_runtime(
            settings=Settings(),
            dart_settings=DartSettings(api_key="test-key", max_retries=0),
            scheduler_settings=SchedulerSettings(enabled=False),
            http=httpx.AsyncClient(transport=httpx.MockTransport(_upstream_down)),
            bus=bus,
        )
        use_case = EnrichPartnerCompanyUseCase(
            gateway=fake_gateway,
            uow_factory=sqlalchemy_uow_factory(runtime.session_factory),
        )
        runtime.consumer = PartnerCompanyConsumer(
            use_case=use_case,
            topic=runtime.consumer.topic,
            group="test-group",
        )
        return runtime

    with TestClient(create_app(runtime_factory=runtime_factory)) as test_client:
        yield Service(client=test_client, bus=bus)


def test_partner_event_reaches_enrichment_through_bus(
    service: Service,
    fake_gateway: FakeDartGateway,
) -> None:
    resp = service.client.post(
        "/v1/admin/partner-events",
        json={"id": 42, "corpCode": " 00126380 ", "companyName": "삼성전자"},
        headers={"X-Correlation-ID": "corr-42"},
    )
    service.drain()

    assert resp.status_code == 202
    assert resp.json() == {
        "status": "accepted",
        "topic": "partner-company-updated",
        "event_id": "42",
    }
    assert fake_gateway.calls[0] == ("profile", "00126380")


def test_partner_event_without_code_is_accepted_and_skipped(
    service: Service,
    fake_gateway: FakeDartGateway,
) -> None:
    resp = service.client.post("/v1/admin/partner-events", json={"id": "evt-1"})
    service.drain()

    assert resp.status_code == 202
    assert resp.json()["event_id"] == "evt-1"
    assert fake_gateway.calls == []


def test_partner_event_rejects_non_object_body(service: Service) -> None:
    resp = service.client.post("/v1/admin/partner-events", json=["00126380"])

    assert resp.status_code == 422
