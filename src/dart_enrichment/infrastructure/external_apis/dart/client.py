# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""DART Transport Client: rate limited, resilient, instrumented, async.

This transport is framework-agnostic and provides:

* Async HTTP (httpx) with a per-request timeout.
* A shared fixed-window rate limiter in front of every attempt.
* Jittered exponential retries (bounded) for timeouts and 5xx.
* Circuit breaker (CLOSED / OPEN / HALF-OPEN).
* Deterministic mapping to DART error types.
* Prometheus metrics.

Endpoints:
    * fetch_company:               /api/company.json
    * search_disclosures:          /api/list.json
    * fetch_financial_statements:  /api/fnlttSinglAcntAll.json
    * download_registry:           /api/corpCode.xml (zip archive)

Notes:
    * A 2xx payload whose embedded ``status`` is not "000" is returned as-is;
      deciding that it means "no data" is the gateway's job.
    * Caller-facing exceptions are always DART error types; httpx exceptions
      never cross the boundary. The API key never appears in error details.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from contextlib import suppress
from datetime import date
from typing import Any, Final

import httpx

from dart_enrichment.domain.exceptions.dart import (
    DartError,
    EmptyUpstreamPayload,
    UpstreamBadRequest,
    UpstreamThrottled,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from dart_enrichment.infrastructure.external_apis.dart.settings import DartSettings
from dart_enrichment.infrastructure.logging.logger import get_correlation_id
from dart_enrichment.infrastructure.observability.metrics_dart import (
    get_dart_client_breaker_events_total,
    get_dart_client_errors_total,
    get_dart_client_http_status_total,
    get_dart_client_latency_seconds,
    get_dart_client_retries_total,
    get_dart_client_throttled_total,
)
from dart_enrichment.infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
)
from dart_enrichment.infrastructure.resilience.rate_limiter import AsyncRateLimiter
from dart_enrichment.infrastructure.resilience.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)

_DEFAULT_BASE_BACKOFF: Final[float] = 0.25
_DEFAULT_MAX_BACKOFF: Final[float] = 2.5
_DEFAULT_PAGE_COUNT: Final[int] = 100
_BODY_SNIPPET_LIMIT: Final[int] = 2048
_DATE_FORMAT: Final[str] = "%Y%m%d"

_DEFAULT_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/json, application/zip, application/xml;q=0.9, */*;q=0.5",
    "User-Agent": "dart-enrichment/0.1",
}


def _is_breaker_failure(exc: BaseException) -> bool:
    return isinstance(exc, (UpstreamUnavailable, UpstreamTimeout))


class DartClient:
    """Rate-limited transport client for the DART OpenAPI."""

    def __init__(
        self,
        settings: DartSettings,
        *,
        http: httpx.AsyncClient | None = None,
        limiter: AsyncRateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize the transport client.

        Args:
            settings: Provider settings loaded from environment or DI.
            http: Optional shared ``httpx.AsyncClient``. If omitted, a client
                is created and owned by this instance.
            limiter: Rate limiter shared by every call; created from settings
                if omitted.
            retry_policy: Optional retry configuration for retryable failures.
            breaker: Circuit breaker instance to use; created if omitted.
        """
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._api_key = settings.api_key.get_secret_value()
        self._timeout = float(settings.timeout_s)

        self._owns_client = http is None
        self._client = http or httpx.AsyncClient(
            timeout=self._timeout,
            headers=_DEFAULT_HEADERS.copy(),
        )
        if http is not None:
            for key, value in _DEFAULT_HEADERS.items():
                self._client.headers.setdefault(key, value)

        self._limiter = limiter or AsyncRateLimiter(
            limit=settings.rate_limit_calls,
            period_s=settings.rate_limit_period_s,
            timeout_s=settings.rate_limit_timeout_s,
        )
        self._retry = retry_policy or RetryPolicy(
            total=settings.max_retries,
            base=_DEFAULT_BASE_BACKOFF,
            cap=_DEFAULT_MAX_BACKOFF,
            jitter=True,
        )
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout_s=30.0,
            half_open_max_calls=1,
            counts_as_failure=_is_breaker_failure,
        )

        # Metrics handles.
        self._latency = get_dart_client_latency_seconds()
        self._errors = get_dart_client_errors_total()
        self._status_total = get_dart_client_http_status_total()
        self._retries_total = get_dart_client_retries_total()
        self._breaker_events_total = get_dart_client_breaker_events_total()
        self._throttled_total = get_dart_client_throttled_total()

    @property
    def limiter(self) -> AsyncRateLimiter:
        """The shared rate limiter."""
        return self._limiter

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def fetch_company(self, corp_code: str) -> Mapping[str, Any]:
        """Fetch the company overview for ``corp_code``."""
        return await self._get_json(
            "/api/company.json",
            params={"corp_code": corp_code},
            endpoint="company",
        )

    async def search_disclosures(
        self,
        corp_code: str,
        *,
        begin: date,
        end: date,
        page_count: int = _DEFAULT_PAGE_COUNT,
    ) -> Mapping[str, Any]:
        """Search disclosure receipts filed by ``corp_code`` within ``[begin, end]``."""
        return await self._get_json(
            "/api/list.json",
            params={
                "corp_code": corp_code,
                "bgn_de": begin.strftime(_DATE_FORMAT),
                "end_de": end.strftime(_DATE_FORMAT),
                "page_count": str(page_count),
            },
            endpoint="disclosure_search",
        )

    async def fetch_financial_statements(
        self,
        corp_code: str,
        *,
        bsns_year: str,
        reprt_code: str,
        fs_div: str = "OFS",
    ) -> Mapping[str, Any]:
        """Fetch the single-company full financial statement for one triple."""
        return await self._get_json(
            "/api/fnlttSinglAcntAll.json",
            params={
                "corp_code": corp_code,
                "bsns_year": bsns_year,
                "reprt_code": reprt_code,
                "fs_div": fs_div,
            },
            endpoint="financial_statements",
        )

    async def download_registry(self) -> bytes:
        """Download the compressed registry archive.

        Raises:
            EmptyUpstreamPayload: If the upstream returned an empty body.
        """
        endpoint = "registry"
        response = await self._call("/api/corpCode.xml", params={}, endpoint=endpoint)
        content = response.content
        if not content or not content.strip():
            self._count_error(endpoint, "EmptyUpstreamPayload")
            raise EmptyUpstreamPayload(
                "DART registry download returned an empty body.",
                details={"endpoint": endpoint},
            )
        return content

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _get_json(
        self,
        path: str,
        *,
        params: Mapping[str, str],
        endpoint: str,
    ) -> Mapping[str, Any]:
        """Perform a GET request and return a parsed JSON mapping."""
        response = await self._call(path, params=params, endpoint=endpoint)
        try:
            payload: Any = response.json()
        except ValueError as exc:
            self._count_error(endpoint, "invalid_json")
            raise UpstreamUnavailable(
                "DART response was not valid JSON.",
                details={"endpoint": endpoint, "path": path, "reason": "invalid_json"},
            ) from exc

        if not isinstance(payload, Mapping):
            self._count_error(endpoint, "invalid_json")
            raise UpstreamUnavailable(
                "DART JSON response must be an object.",
                details={"endpoint": endpoint, "path": path, "type": type(payload).__name__},
            )
        return payload

    async def _call(
        self,
        path: str,
        *,
        params: Mapping[str, str],
        endpoint: str,
    ) -> httpx.Response:
        """Execute one logical GET with limiter, breaker, timeout and retries."""
        url = f"{self._base_url}{path}"
        query = {"crtfc_key": self._api_key, **params}

        headers: dict[str, str] = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        async def _attempt() -> httpx.Response:
            if not await self._limiter.acquire():
                with suppress(Exception):
                    self._throttled_total.labels(endpoint).inc()
                raise UpstreamThrottled(
                    "DART rate limit saturated; no permit within the wait budget.",
                    details={"endpoint": endpoint, "timeout_s": self._limiter.timeout_s},
                )
            try:
                async with self._breaker.guard(_is_breaker_failure):
                    response = await self._send(url, query, headers, endpoint=endpoint, path=path)
                    self._classify(response, endpoint=endpoint, path=path)
                    return response
            except CircuitOpenError as exc:
                with suppress(Exception):
                    self._breaker_events_total.labels(endpoint, exc.state.lower()).inc()
                raise UpstreamUnavailable(
                    "DART circuit breaker is open.",
                    details={"endpoint": endpoint, "path": path, "breaker": exc.state},
                ) from exc

        def _retry_predicate(exc: Exception) -> bool:
            retryable = isinstance(exc, (UpstreamTimeout, UpstreamUnavailable)) and not isinstance(
                exc.__cause__, CircuitOpenError
            )
            if retryable:
                with suppress(Exception):
                    self._retries_total.labels(endpoint, type(exc).__name__).inc()
            return retryable

        start = time.perf_counter()
        error_reason: str | None = None
        try:
            return await retry_async(_attempt, policy=self._retry, retry_on=_retry_predicate)
        except DartError as exc:
            error_reason = type(exc).__name__
            logger.warning(
                "dart.client.call_failed",
                extra={"endpoint": endpoint, "reason": error_reason, "details": exc.details},
            )
            raise
        finally:
            elapsed = time.perf_counter() - start
            with suppress(Exception):
                self._latency.labels(
                    endpoint=endpoint,
                    outcome="error" if error_reason else "success",
                ).observe(elapsed)
            if error_reason:
                self._count_error(endpoint, error_reason)

    async def _send(
        self,
        url: str,
        query: Mapping[str, str],
        headers: Mapping[str, str],
        *,
        endpoint: str,
        path: str,
    ) -> httpx.Response:
        """Send a single GET bounded by the configured timeout."""
        try:
            async with asyncio.timeout(self._timeout):
                return await self._client.get(
                    url,
                    params=query,
                    headers=headers,
                    timeout=self._timeout,
                )
        except (httpx.TimeoutException, TimeoutError) as exc:
            raise UpstreamTimeout(
                "DART call timed out.",
                details={"endpoint": endpoint, "path": path, "timeout_s": self._timeout},
            ) from exc
        except httpx.RequestError as exc:
            raise UpstreamUnavailable(
                "DART transport failure.",
                details={"endpoint": endpoint, "path": path, "error": type(exc).__name__},
            ) from exc

    def _classify(self, response: httpx.Response, *, endpoint: str, path: str) -> None:
        """Raise the DART error matching a non-2xx response."""
        status = response.status_code
        with suppress(Exception):
            self._status_total.labels(endpoint, str(status)).inc()

        if 200 <= status < 300:
            return

        if 400 <= status < 500:
            body = response.text[:_BODY_SNIPPET_LIMIT]
            raise UpstreamBadRequest(
                "DART rejected the request.",
                body=body,
                details={"endpoint": endpoint, "path": path, "status": status},
            )

        raise UpstreamUnavailable(
            "DART upstream unavailable.",
            details={"endpoint": endpoint, "path": path, "status": status},
        )

    def _count_error(self, endpoint: str, reason: str) -> None:
        with suppress(Exception):
            self._errors.labels(endpoint=endpoint, reason=reason).inc()
