# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""DART pipeline metrics.

Purpose:
    Provide Prometheus metrics for the DART synchronization pipeline:
      * Transport latency, errors, HTTP status, retries, breaker events and
        throttled calls.
      * Cache hits, misses, loads and evictions per dataset.
      * Registry sync runs and snapshot size.
      * Enrichment stage outcomes.

Design:
    Functions return lazily created singleton metric instances registered on
    the default registry, so repeated imports never double-register.
"""

from __future__ import annotations

import threading

from prometheus_client import Counter, Gauge, Histogram

_lock = threading.RLock()

_client_latency_seconds: Histogram | None = None
_client_errors_total: Counter | None = None
_client_http_status_total: Counter | None = None
_client_retries_total: Counter | None = None
_client_breaker_events_total: Counter | None = None
_client_throttled_total: Counter | None = None
_cache_events_total: Counter | None = None
_registry_sync_runs_total: Counter | None = None
_registry_records: Gauge | None = None
_enrichment_stage_total: Counter | None = None


def get_dart_client_latency_seconds() -> Histogram:
    """Return (and lazily create) the DART transport latency histogram."""
    global _client_latency_seconds
    with _lock:
        if _client_latency_seconds is None:
            _client_latency_seconds = Histogram(
                "dart_client_latency_seconds",
                "Latency of DART upstream calls in seconds.",
                ["endpoint", "outcome"],
            )
        return _client_latency_seconds


def get_dart_client_errors_total() -> Counter:
    """Return (and lazily create) the DART transport error counter."""
    global _client_errors_total
    with _lock:
        if _client_errors_total is None:
            _client_errors_total = Counter(
                "dart_client_errors_total",
                "DART upstream call failures by classified reason.",
                ["endpoint", "reason"],
            )
        return _client_errors_total


def get_dart_client_http_status_total() -> Counter:
    """Return (and lazily create) the DART HTTP status counter."""
    global _client_http_status_total
    with _lock:
        if _client_http_status_total is None:
            _client_http_status_total = Counter(
                "dart_client_http_status_total",
                "DART HTTP responses by status code.",
                ["endpoint", "status"],
            )
        return _client_http_status_total


def get_dart_client_retries_total() -> Counter:
    """Return (and lazily create) the DART retry counter."""
    global _client_retries_total
    with _lock:
        if _client_retries_total is None:
            _client_retries_total = Counter(
                "dart_client_retries_total",
                "DART upstream retries by reason.",
                ["endpoint", "reason"],
            )
        return _client_retries_total


def get_dart_client_breaker_events_total() -> Counter:
    """Return (and lazily create) the DART circuit-breaker rejection counter."""
    global _client_breaker_events_total
    with _lock:
        if _client_breaker_events_total is None:
            _client_breaker_events_total = Counter(
                "dart_client_breaker_events_total",
                "Calls rejected by the DART circuit breaker.",
                ["endpoint", "state"],
            )
        return _client_breaker_events_total


def get_dart_client_throttled_total() -> Counter:
    """Return (and lazily create) the DART throttled-call counter."""
    global _client_throttled_total
    with _lock:
        if _client_throttled_total is None:
            _client_throttled_total = Counter(
                "dart_client_throttled_total",
                "Calls rejected by the shared DART rate limiter.",
                ["endpoint"],
            )
        return _client_throttled_total


def get_cache_events_total() -> Counter:
    """Return (and lazily create) the dataset cache event counter."""
    global _cache_events_total
    with _lock:
        if _cache_events_total is None:
            _cache_events_total = Counter(
                "dart_cache_events_total",
                "Dataset cache events (hit, miss, load, evict, expire).",
                ["dataset", "event"],
            )
        return _cache_events_total


def get_registry_sync_runs_total() -> Counter:
    """Return (and lazily create) the registry sync run counter."""
    global _registry_sync_runs_total
    with _lock:
        if _registry_sync_runs_total is None:
            _registry_sync_runs_total = Counter(
                "dart_registry_sync_runs_total",
                "Registry sync runs by trigger and outcome.",
                ["trigger", "outcome"],
            )
        return _registry_sync_runs_total


def get_registry_records() -> Gauge:
    """Return (and lazily create) the registry snapshot size gauge."""
    global _registry_records
    with _lock:
        if _registry_records is None:
            _registry_records = Gauge(
                "dart_registry_records",
                "Number of records written by the last successful registry sync.",
            )
        return _registry_records


def get_enrichment_stage_total() -> Counter:
    """Return (and lazily create) the enrichment stage outcome counter."""
    global _enrichment_stage_total
    with _lock:
        if _enrichment_stage_total is None:
            _enrichment_stage_total = Counter(
                "dart_enrichment_stage_total",
                "Enrichment orchestrator stage outcomes.",
                ["stage", "outcome"],
            )
        return _enrichment_stage_total
