from __future__ import annotations

import pytest
from pydantic import ValidationError

from dart_enrichment.config.settings import (
    CacheSettings,
    Environment,
    MessagingSettings,
    SchedulerSettings,
    Settings,
)
from dart_enrichment.infrastructure.external_apis.dart.settings import DartSettings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DART_API_KEY", "DART_BASE_URL", "REGISTRY_SYNC_CRON", "REGISTRY_SYNC_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    scheduler = SchedulerSettings()
    messaging = MessagingSettings()
    dart = DartSettings()

    assert scheduler.cron == "0 0 4 * * *"
    assert scheduler.timezone == "Asia/Seoul"
    assert scheduler.enabled is True
    assert messaging.partner_topic == "partner-company-updated"
    assert dart.base_url == "https://opendart.fss.or.kr"
    assert dart.api_key.get_secret_value() == ""


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("REGISTRY_SYNC_ENABLED", "false")
    monkeypatch.setenv("CACHE_REGISTRY_TTL_S", "60")
    monkeypatch.setenv("DART_API_KEY", "secret-key")
    monkeypatch.setenv("DART_MAX_RETRIES", "5")

    assert Settings().environment is Environment.PRODUCTION
    assert Settings().database_url == "sqlite+aiosqlite://"
    assert SchedulerSettings().enabled is False
    assert CacheSettings().registry_ttl_s == 60.0
    dart = DartSettings()
    assert dart.api_key.get_secret_value() == "secret-key"
    assert "secret-key" not in repr(dart)
    assert dart.max_retries == 5


def test_invalid_values_are_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CACHE_REGISTRY_MAX_SIZE", "0")
    with pytest.raises(ValidationError):
        CacheSettings()
    with pytest.raises(ValidationError):
        DartSettings(timeout_s=0)


def test_settings_are_frozen() -> None:
    settings = SchedulerSettings()
    with pytest.raises(ValidationError):
        settings.cron = "* * * * *"  # type: ignore[misc]
