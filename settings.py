from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


_LOCATION_ENV = "AQ_LOCATION"
_API_TOKEN_ENV = "AQ_API_TOKEN"
_API_BASE_URL_ENV = "AQ_API_BASE_URL"
_POLL_INTERVAL_ENV = "AQ_POLL_INTERVAL"
_CHAR_LIMIT_ENV = "AQ_MESSAGE_CHAR_LIMIT"
_FETCH_TIMEOUT_ENV = "AQ_FETCH_TIMEOUT"
_FETCH_ATTEMPTS_ENV = "AQ_FETCH_ATTEMPTS"
_DISPATCH_TIMEOUT_ENV = "AQ_DISPATCH_TIMEOUT"
_RECIPIENT_ENV = "AQ_ALERT_RECIPIENT"
_TWILIO_SID_ENV = "TWILIO_ACCOUNT_SID"
_TWILIO_TOKEN_ENV = "TWILIO_AUTH_TOKEN"
_TWILIO_FROM_ENV = "TWILIO_FROM_NUMBER"
_TWILIO_BASE_URL_ENV = "TWILIO_API_BASE_URL"
_CYCLE_LOG_PATH_ENV = "AQ_CYCLE_LOG_PATH"
_CYCLE_LOG_MAX_RECORDS_ENV = "AQ_CYCLE_LOG_MAX_RECORDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for one monitored location.

    ``api_token`` and ``twilio_auth_token`` are secrets sourced from the
    environment and are excluded from ``repr``.
    """

    location: str
    api_base_url: str
    poll_interval: float
    message_char_limit: int
    fetch_timeout: float
    fetch_attempts: int
    dispatch_timeout: float
    twilio_base_url: str
    cycle_log_path: Optional[str]
    cycle_log_max_records: int
    log_level: str
    api_token: Optional[str] = field(default=None, repr=False)
    alert_recipient: Optional[str] = None
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = field(default=None, repr=False)
    twilio_from_number: Optional[str] = None

    @property
    def delivery_configured(self) -> bool:
        return all(
            (
                self.twilio_account_sid,
                self.twilio_auth_token,
                self.twilio_from_number,
            )
        )


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        location=_read_str_env(_LOCATION_ENV, "delhi"),
        api_token=_read_optional_env(_API_TOKEN_ENV),
        api_base_url=_read_str_env(_API_BASE_URL_ENV, "https://api.waqi.info").rstrip("/"),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 3600.0),
        message_char_limit=_read_positive_int(_CHAR_LIMIT_ENV, 160),
        fetch_timeout=_read_positive_float(_FETCH_TIMEOUT_ENV, 10.0),
        fetch_attempts=_read_positive_int(_FETCH_ATTEMPTS_ENV, 1),
        dispatch_timeout=_read_positive_float(_DISPATCH_TIMEOUT_ENV, 10.0),
        alert_recipient=_read_optional_env(_RECIPIENT_ENV),
        twilio_account_sid=_read_optional_env(_TWILIO_SID_ENV),
        twilio_auth_token=_read_optional_env(_TWILIO_TOKEN_ENV),
        twilio_from_number=_read_optional_env(_TWILIO_FROM_ENV),
        twilio_base_url=_read_str_env(_TWILIO_BASE_URL_ENV, "https://api.twilio.com").rstrip("/"),
        cycle_log_path=_read_optional_env(_CYCLE_LOG_PATH_ENV, "./tmp/cycle_log.json"),
        cycle_log_max_records=_read_positive_int(_CYCLE_LOG_MAX_RECORDS_ENV, 5000),
        log_level=_read_log_level("INFO"),
    )
