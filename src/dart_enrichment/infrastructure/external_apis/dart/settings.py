# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""DART transport client settings.

Purpose:
    Provide Pydantic-based configuration for the DART OpenAPI client,
    including the API credential, base URL, timeouts, retry budget and the
    shared rate-limiter quota.

Layer:
    infrastructure

Notes:
    - Values are sourced from environment variables prefixed with ``DART_``.
    - Instances are frozen; build a new one to change a knob.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DartSettings(BaseSettings):
    """Configuration for the DART HTTP client.

    Environment variables (with ``model_config.env_prefix``):

    * ``DART_API_KEY``
    * ``DART_BASE_URL``
    * ``DART_TIMEOUT_S``
    * ``DART_MAX_RETRIES``
    * ``DART_RATE_LIMIT_CALLS``
    * ``DART_RATE_LIMIT_PERIOD_S``
    * ``DART_RATE_LIMIT_TIMEOUT_S``
    """

    api_key: SecretStr = Field(
        SecretStr(""),
        description="OpenDART API credential sent as the ``crtfc_key`` query parameter.",
    )
    base_url: str = Field(
        "https://opendart.fss.or.kr",
        description="Base URL for the DART OpenAPI.",
    )
    timeout_s: float = Field(
        30.0,
        gt=0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        2,
        ge=0,
        description="Retries for timeouts and unavailable upstream (not counting the first call).",
    )
    rate_limit_calls: int = Field(
        10,
        ge=1,
        description="Permits granted per rate-limit window.",
    )
    rate_limit_period_s: float = Field(
        1.0,
        gt=0,
        description="Length of one rate-limit window in seconds.",
    )
    rate_limit_timeout_s: float = Field(
        1.0,
        ge=0,
        description="Longest a caller waits for a permit before being throttled.",
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="DART_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )


@lru_cache(maxsize=1)
def get_dart_settings() -> DartSettings:
    """Return a cached singleton :class:`DartSettings` instance."""
    return DartSettings()
