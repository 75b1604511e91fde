"""Tests for configuration module."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pushgate.config import Settings, get_settings


def test_settings_defaults() -> None:
    settings = Settings()
    assert settings.token_fetch_max_attempts == 3
    assert settings.permission_request_code == 101
    assert settings.buffer_early_events is True
    assert settings.debug_mode is False


def test_settings_zero_attempts_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        Settings(token_fetch_max_attempts=0)


def test_settings_negative_backoff_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        Settings(token_fetch_backoff_base=-1)


def test_settings_backoff_max_below_base_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        Settings(token_fetch_backoff_base=2.0, token_fetch_backoff_max=1.0)


def test_settings_non_positive_deadline_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        Settings(token_fetch_deadline=0)


def test_backoff_delay_doubles_and_caps() -> None:
    settings = Settings(token_fetch_backoff_base=0.5, token_fetch_backoff_max=3.0)
    assert [settings.backoff_delay(attempt) for attempt in range(1, 6)] == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_get_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("TOKEN_FETCH_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("TOKEN_FETCH_DEADLINE", "12.5")
    monkeypatch.setenv("BUFFER_EARLY_EVENTS", "off")
    monkeypatch.setenv("DEBUG_MODE", "true")
    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()
    assert settings.token_fetch_max_attempts == 5
    assert settings.token_fetch_deadline == 12.5
    assert settings.buffer_early_events is False
    assert settings.debug_mode is True
