# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
DART domain exceptions.

Purpose:
    Classify every failure of the DART synchronization pipeline into a small,
    closed taxonomy so callers can decide between backing off, retrying later,
    or giving up.

Layer:
    domain

Notes:
    - Infrastructure translates httpx, zip and XML failures into these types;
      third-party exception classes never cross a component boundary.
    - ``details`` is never rendered into ``str(exc)``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from dart_enrichment.domain.exceptions.base import DomainError


class DartError(DomainError):
    """Base class for DART-related errors.

    Args:
        message: Human-readable error message.
        details: Optional machine-readable diagnostic payload.
    """

    code = "DART_ERROR"


class UpstreamThrottled(DartError):
    """Raised when the shared rate limiter cannot grant a permit in time.

    Callers should back off and retry later; the upstream was never contacted.
    """

    code = "UPSTREAM_THROTTLED"


class UpstreamTimeout(DartError):
    """Raised when an upstream call exceeds its configured timeout."""

    code = "UPSTREAM_TIMEOUT"


class UpstreamUnavailable(DartError):
    """Raised on 5xx responses, transport failures or an open circuit."""

    code = "UPSTREAM_UNAVAILABLE"


class UpstreamBadRequest(DartError):
    """Raised on 4xx responses.

    Args:
        message: Human-readable error message.
        body: Raw response body returned by the upstream, for diagnostics.
        details: Optional machine-readable diagnostic payload.
    """

    code = "UPSTREAM_BAD_REQUEST"

    def __init__(
        self,
        message: str,
        *,
        body: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.body = body


class EmptyUpstreamPayload(DartError):
    """Raised when the upstream returned null or blank content."""

    code = "EMPTY_UPSTREAM_PAYLOAD"


class FeedParseError(DartError):
    """Raised when a payload cannot be decoded.

    Args:
        message: Human-readable error message.
        causes: Root cause of every decoding strategy that was attempted.
        details: Optional machine-readable diagnostic payload.
    """

    code = "FEED_PARSE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        causes: Sequence[str] = (),
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.causes: tuple[str, ...] = tuple(causes)


class RecordMappingError(FeedParseError):
    """Raised when a single upstream record cannot be coerced into an entity."""

    code = "RECORD_MAPPING_ERROR"


class DartNotFound(DartError):
    """Raised when a keyed lookup has no data for the given key."""

    code = "NOT_FOUND"


__all__ = [
    "DartError",
    "DartNotFound",
    "EmptyUpstreamPayload",
    "FeedParseError",
    "RecordMappingError",
    "UpstreamBadRequest",
    "UpstreamThrottled",
    "UpstreamTimeout",
    "UpstreamUnavailable",
]
