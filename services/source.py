"""Client for the public air-quality feed."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field, ValidationError

from models.records import Reading
from services.errors import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)


class _PollutantValue(BaseModel):
    v: float = Field(..., ge=0)


class _IndividualAqi(BaseModel):
    pm25: _PollutantValue


class _ObservationTime(BaseModel):
    iso: Optional[str] = None


class _FeedData(BaseModel):
    iaqi: _IndividualAqi
    time: Optional[_ObservationTime] = None


class FeedResponse(BaseModel):
    """The subset of the feed payload needed to build a Reading."""

    status: str
    data: _FeedData


def _parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


class AirQualitySource:
    """Fetches the current PM2.5 AQI for a location with a single GET request.

    Transport failures raise :class:`FetchError`. A successful response that does
    not carry a usable PM2.5 value yields a Reading with ``value=None``. Retrying
    is left to the caller.

    ``timeout`` bounds each network phase (connect, write, every read, pool wait)
    separately, not the request as a whole. A feed that keeps trickling bytes can
    hold a fetch longer than ``timeout``; each stalled phase still fails as
    ``FetchErrorKind.timeout``.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._token = token
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def close(self) -> None:
        self._client.close()

    def fetch(self, location: str) -> Reading:
        params = {"token": self._token} if self._token else {}
        try:
            response = self._client.get(f"/feed/{quote(location, safe='')}/", params=params)
        except httpx.TimeoutException as exc:
            raise FetchError(FetchErrorKind.timeout, type(exc).__name__) from exc
        except httpx.RequestError as exc:
            raise FetchError(FetchErrorKind.network, type(exc).__name__) from exc

        if not response.is_success:
            raise FetchError(
                FetchErrorKind.network, f"feed returned status {response.status_code}"
            )

        return self._parse_reading(location, response)

    def _parse_reading(self, location: str, response: httpx.Response) -> Reading:
        try:
            payload = FeedResponse.model_validate_json(response.content)
        except ValidationError as exc:
            logger.warning(
                "PM2.5 value missing from feed response (%d validation errors)",
                exc.error_count(),
                extra={"location": location},
            )
            return Reading(location=location, value=None, observed_at=self._clock())

        if payload.status != "ok":
            logger.warning(
                "Feed reported non-ok status %r", payload.status, extra={"location": location}
            )
            return Reading(location=location, value=None, observed_at=self._clock())

        observed_at = self._clock()
        if payload.data.time is not None and payload.data.time.iso:
            try:
                observed_at = _parse_timestamp(payload.data.time.iso)
            except ValueError:
                logger.debug("Ignoring unparseable observation time %r", payload.data.time.iso)

        return Reading(location=location, value=payload.data.iaqi.pm25.v, observed_at=observed_at)
