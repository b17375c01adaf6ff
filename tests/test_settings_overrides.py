from __future__ import annotations

from typing import Iterable

import pytest

from datastore.cycle_log import build_default_cycle_log
from services.dispatcher import LoggingDispatcher, TwilioDispatcher
from services.pipeline import build_default_pipeline
from settings import get_settings

_CACHES = (
    get_settings,
    build_default_cycle_log,
    build_default_pipeline,
)

_MANAGED_ENV = (
    "AQ_LOCATION",
    "AQ_API_TOKEN",
    "AQ_API_BASE_URL",
    "AQ_POLL_INTERVAL",
    "AQ_MESSAGE_CHAR_LIMIT",
    "AQ_FETCH_TIMEOUT",
    "AQ_FETCH_ATTEMPTS",
    "AQ_DISPATCH_TIMEOUT",
    "AQ_ALERT_RECIPIENT",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_NUMBER",
    "TWILIO_API_BASE_URL",
    "AQ_CYCLE_LOG_PATH",
    "AQ_CYCLE_LOG_MAX_RECORDS",
    "LOG_LEVEL",
)


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in _MANAGED_ENV:
        monkeypatch.delenv(name, raising=False)
    _clear_caches(_CACHES)
    yield
    _clear_caches(_CACHES)


def test_defaults_apply_without_environment() -> None:
    settings = get_settings()

    assert settings.location == "delhi"
    assert settings.api_token is None
    assert settings.api_base_url == "https://api.waqi.info"
    assert settings.message_char_limit == 160
    assert settings.fetch_attempts == 1
    assert settings.cycle_log_max_records == 5000
    assert settings.log_level == "INFO"
    assert settings.delivery_configured is False


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    log_path = tmp_path / "cycles.json"

    monkeypatch.setenv("AQ_LOCATION", "beijing")
    monkeypatch.setenv("AQ_API_TOKEN", "feed-secret")
    monkeypatch.setenv("AQ_API_BASE_URL", "https://feed.example/")
    monkeypatch.setenv("AQ_MESSAGE_CHAR_LIMIT", "320")
    monkeypatch.setenv("AQ_FETCH_ATTEMPTS", "3")
    monkeypatch.setenv("AQ_POLL_INTERVAL", "900")
    monkeypatch.setenv("AQ_CYCLE_LOG_PATH", str(log_path))
    monkeypatch.setenv("AQ_CYCLE_LOG_MAX_RECORDS", "250")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()
    pipeline = build_default_pipeline()

    try:
        assert settings.location == "beijing"
        assert settings.api_base_url == "https://feed.example"
        assert settings.poll_interval == 900.0
        assert settings.log_level == "DEBUG"
        assert pipeline.location == "beijing"
        assert pipeline.composer.char_limit == 320
        assert pipeline.fetch_attempts == 3
        assert pipeline.cycle_log is not None
        assert pipeline.cycle_log.persistence_path == log_path
        assert pipeline.cycle_log.max_records == 250
        assert isinstance(pipeline.dispatcher, LoggingDispatcher)
    finally:
        pipeline.shutdown()


@pytest.mark.parametrize("raw", ["", "abc", "0", "-5"])
def test_invalid_numbers_fall_back_to_defaults(monkeypatch, raw: str) -> None:
    monkeypatch.setenv("AQ_MESSAGE_CHAR_LIMIT", raw)
    monkeypatch.setenv("AQ_FETCH_TIMEOUT", raw)

    settings = get_settings()

    assert settings.message_char_limit == 160
    assert settings.fetch_timeout == 10.0


def test_secrets_are_not_in_repr(monkeypatch) -> None:
    monkeypatch.setenv("AQ_API_TOKEN", "feed-secret")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "sms-secret")

    text = repr(get_settings())

    assert "feed-secret" not in text
    assert "sms-secret" not in text


def test_twilio_credentials_select_sms_dispatcher(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "sms-secret")
    monkeypatch.setenv("TWILIO_FROM_NUMBER", "+15550000000")
    monkeypatch.setenv("AQ_ALERT_RECIPIENT", "+15551112222")
    monkeypatch.setenv("AQ_CYCLE_LOG_PATH", str(tmp_path / "cycles.json"))

    pipeline = build_default_pipeline()

    try:
        assert isinstance(pipeline.dispatcher, TwilioDispatcher)
        assert pipeline.recipient == "+15551112222"
    finally:
        pipeline.shutdown()


def test_twilio_without_recipient_fails_at_startup(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "sms-secret")
    monkeypatch.setenv("TWILIO_FROM_NUMBER", "+15550000000")
    monkeypatch.setenv("AQ_CYCLE_LOG_PATH", str(tmp_path / "cycles.json"))

    with pytest.raises(ValueError, match="AQ_ALERT_RECIPIENT"):
        build_default_pipeline()
