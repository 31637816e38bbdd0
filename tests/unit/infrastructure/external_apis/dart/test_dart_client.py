from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import date

import httpx
import pytest
import pytest_asyncio
import respx

from dart_enrichment.domain.exceptions.dart import (
    EmptyUpstreamPayload,
    UpstreamBadRequest,
    UpstreamThrottled,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from dart_enrichment.infrastructure.external_apis.dart.client import DartClient
from dart_enrichment.infrastructure.external_apis.dart.settings import DartSettings
from dart_enrichment.infrastructure.logging.logger import set_log_context
from dart_enrichment.infrastructure.resilience.circuit_breaker import CircuitBreaker
from dart_enrichment.infrastructure.resilience.rate_limiter import AsyncRateLimiter
from dart_enrichment.infrastructure.resilience.retry import RetryPolicy

BASE = "https://dart.test"
SETTINGS = DartSettings(api_key="secret-key", base_url=BASE, timeout_s=5.0)
FAST_RETRY = RetryPolicy(total=2, base=0.0, cap=0.0, jitter=False)
NO_RETRY = RetryPolicy(total=0, base=0.0, cap=0.0, jitter=False)

COMPANY = {"status": "000", "message": "정상", "corp_code": "00126380", "corp_name": "삼성전자"}


@pytest_asyncio.fixture
async def http() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.mark.asyncio
@respx.mock
async def test_fetch_company_sends_key_code_and_correlation_header(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/company.json").mock(
        return_value=httpx.Response(200, json=COMPANY)
    )
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY)

    set_log_context(correlation_id="corr-1")
    try:
        payload = await client.fetch_company("00126380")
    finally:
        set_log_context()

    assert payload["corp_name"] == "삼성전자"
    request = route.calls.last.request
    assert request.url.params["crtfc_key"] == "secret-key"
    assert request.url.params["corp_code"] == "00126380"
    assert request.headers["X-Correlation-ID"] == "corr-1"


@pytest.mark.asyncio
@respx.mock
async def test_search_disclosures_formats_window(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/list.json").mock(
        return_value=httpx.Response(200, json={"status": "013", "message": "no data"})
    )
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY)

    payload = await client.search_disclosures(
        "00126380", begin=date(2023, 1, 2), end=date(2024, 1, 2)
    )

    assert payload["status"] == "013"
    params = route.calls.last.request.url.params
    assert params["bgn_de"] == "20230102"
    assert params["end_de"] == "20240102"
    assert params["page_count"] == "100"


@pytest.mark.asyncio
@respx.mock
async def test_fetch_financial_statements_params(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/fnlttSinglAcntAll.json").mock(
        return_value=httpx.Response(200, json={"status": "000", "list": []})
    )
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY)

    await client.fetch_financial_statements("00126380", bsns_year="2023", reprt_code="11011")

    params = route.calls.last.request.url.params
    assert params["bsns_year"] == "2023"
    assert params["reprt_code"] == "11011"
    assert params["fs_div"] == "OFS"


@pytest.mark.asyncio
@respx.mock
async def test_server_error_is_retried_then_succeeds(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/company.json").mock(
        side_effect=[httpx.Response(503), httpx.Response(200, json=COMPANY)]
    )
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY)

    payload = await client.fetch_company("00126380")

    assert payload["status"] == "000"
    assert route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_persistent_server_error_maps_to_unavailable(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/company.json").mock(return_value=httpx.Response(500))
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY)

    with pytest.raises(UpstreamUnavailable) as info:
        await client.fetch_company("00126380")

    assert route.call_count == 3
    assert info.value.details["status"] == 500
    assert "secret-key" not in repr(info.value.details)


@pytest.mark.asyncio
@respx.mock
async def test_client_error_maps_to_bad_request_without_retry(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/company.json").mock(
        return_value=httpx.Response(400, text="invalid corp_code")
    )
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY)

    with pytest.raises(UpstreamBadRequest) as info:
        await client.fetch_company("bad")

    assert route.call_count == 1
    assert info.value.body == "invalid corp_code"


@pytest.mark.asyncio
@respx.mock
async def test_timeout_maps_to_upstream_timeout(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/company.json").mock(side_effect=httpx.ReadTimeout)
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY)

    with pytest.raises(UpstreamTimeout):
        await client.fetch_company("00126380")
    assert route.call_count == 3


@pytest.mark.asyncio
@respx.mock
async def test_transport_error_maps_to_unavailable(http: httpx.AsyncClient) -> None:
    respx.get(f"{BASE}/api/company.json").mock(side_effect=httpx.ConnectError)
    client = DartClient(SETTINGS, http=http, retry_policy=NO_RETRY)

    with pytest.raises(UpstreamUnavailable):
        await client.fetch_company("00126380")


@pytest.mark.asyncio
@respx.mock
async def test_invalid_json_maps_to_unavailable(http: httpx.AsyncClient) -> None:
    respx.get(f"{BASE}/api/company.json").mock(
        return_value=httpx.Response(200, content=b"<html>maintenance</html>")
    )
    client = DartClient(SETTINGS, http=http, retry_policy=NO_RETRY)

    with pytest.raises(UpstreamUnavailable):
        await client.fetch_company("00126380")


@pytest.mark.asyncio
@respx.mock
async def test_saturated_limiter_throttles_without_calling_upstream(
    http: httpx.AsyncClient,
) -> None:
    route = respx.get(f"{BASE}/api/company.json").mock(
        return_value=httpx.Response(200, json=COMPANY)
    )
    limiter = AsyncRateLimiter(limit=1, period_s=60.0, timeout_s=0.0)
    client = DartClient(SETTINGS, http=http, limiter=limiter, retry_policy=FAST_RETRY)

    await client.fetch_company("00126380")
    with pytest.raises(UpstreamThrottled):
        await client.fetch_company("00126380")

    assert route.call_count == 1
    assert client.limiter is limiter


@pytest.mark.asyncio
@respx.mock
async def test_open_breaker_fails_fast(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/company.json").mock(return_value=httpx.Response(502))
    breaker = CircuitBreaker(failure_threshold=1, recovery_timeout_s=60.0, half_open_max_calls=1)
    client = DartClient(SETTINGS, http=http, retry_policy=FAST_RETRY, breaker=breaker)

    with pytest.raises(UpstreamUnavailable):
        await client.fetch_company("00126380")
    assert route.call_count == 1

    with pytest.raises(UpstreamUnavailable) as info:
        await client.fetch_company("00126380")
    assert info.value.details["breaker"] == "OPEN"
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_bad_request_does_not_trip_breaker(http: httpx.AsyncClient) -> None:
    respx.get(f"{BASE}/api/company.json").mock(return_value=httpx.Response(404))
    breaker = CircuitBreaker(failure_threshold=1, recovery_timeout_s=60.0, half_open_max_calls=1)
    client = DartClient(SETTINGS, http=http, retry_policy=NO_RETRY, breaker=breaker)

    for _ in range(2):
        with pytest.raises(UpstreamBadRequest):
            await client.fetch_company("00126380")
    assert breaker.state == "CLOSED"


@pytest.mark.asyncio
@respx.mock
async def test_injected_breaker_counts_only_upstream_failures(http: httpx.AsyncClient) -> None:
    respx.get(f"{BASE}/api/company.json").mock(
        side_effect=[httpx.Response(400), httpx.Response(400), httpx.Response(503)]
    )
    breaker = CircuitBreaker(failure_threshold=2, recovery_timeout_s=60.0, half_open_max_calls=1)
    client = DartClient(SETTINGS, http=http, retry_policy=NO_RETRY, breaker=breaker)

    for _ in range(2):
        with pytest.raises(UpstreamBadRequest):
            await client.fetch_company("00126380")
    assert breaker.state == "CLOSED"

    with pytest.raises(UpstreamUnavailable):
        await client.fetch_company("00126380")
    assert breaker._failures == 1


@pytest.mark.asyncio
@respx.mock
async def test_download_registry_returns_bytes_and_rejects_empty(http: httpx.AsyncClient) -> None:
    route = respx.get(f"{BASE}/api/corpCode.xml").mock(
        side_effect=[httpx.Response(200, content=b"PK\x03\x04zip"), httpx.Response(200, content=b"")]
    )
    client = DartClient(SETTINGS, http=http, retry_policy=NO_RETRY)

    assert await client.download_registry() == b"PK\x03\x04zip"
    with pytest.raises(EmptyUpstreamPayload):
        await client.download_registry()
    assert route.call_count == 2


@pytest.mark.asyncio
async def test_aclose_closes_owned_client_only(http: httpx.AsyncClient) -> None:
    shared = DartClient(SETTINGS, http=http)
    await shared.aclose()
    assert not http.is_closed

    owned = DartClient(SETTINGS)
    await owned.aclose()
    assert owned._client.is_closed
