from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

import httpx
import pytest

from services.errors import FetchError, FetchErrorKind
from services.source import AirQualitySource

_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _feed_payload(value: Any = 87, iso: str | None = "2024-03-01T17:00:00+05:30") -> Dict[str, Any]:
    data: Dict[str, Any] = {"aqi": value, "iaqi": {"pm25": {"v": value}}}
    if iso is not None:
        data["time"] = {"s": "2024-03-01 17:00:00", "tz": "+05:30", "iso": iso}
    return {"status": "ok", "data": data}


def _source(handler: Callable[[httpx.Request], httpx.Response], token: str | None = "secret-token") -> AirQualitySource:
    return AirQualitySource(
        base_url="https://feed.test",
        token=token,
        timeout=1.0,
        transport=httpx.MockTransport(handler),
        clock=lambda: _NOW,
    )


def test_fetch_returns_reading_with_feed_time() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=_feed_payload(87))

    reading = _source(handler).fetch("delhi")

    assert reading.location == "delhi"
    assert reading.value == 87
    assert reading.observed_at == datetime(2024, 3, 1, 11, 30, tzinfo=timezone.utc)
    assert requests[0].url.path == "/feed/delhi/"
    assert requests[0].url.params["token"] == "secret-token"


def test_location_is_path_escaped() -> None:
    paths: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path.decode())
        return httpx.Response(200, json=_feed_payload(10))

    _source(handler).fetch("geo:28.6;77.2")

    assert paths[0].startswith("/feed/geo%3A28.6%3B77.2/")


def test_token_is_omitted_when_not_configured() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_feed_payload(10))

    _source(handler, token=None).fetch("delhi")

    assert "token" not in seen[0].url.params


def test_missing_time_falls_back_to_clock() -> None:
    reading = _source(lambda _r: httpx.Response(200, json=_feed_payload(10, iso=None))).fetch("delhi")

    assert reading.observed_at == _NOW


def test_unparseable_time_falls_back_to_clock() -> None:
    reading = _source(
        lambda _r: httpx.Response(200, json=_feed_payload(10, iso="yesterday"))
    ).fetch("delhi")

    assert reading.value == 10
    assert reading.observed_at == _NOW


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "ok", "data": {"aqi": 80, "iaqi": {"pm10": {"v": 80}}}},
        {"status": "ok", "data": {"iaqi": {"pm25": {"v": "-"}}}},
        {"status": "ok", "data": {"iaqi": {"pm25": {"v": -4}}}},
        {"status": "error", "data": "Unknown station"},
        {"status": "error", "data": {"iaqi": {"pm25": {"v": 12}}}},
    ],
)
def test_missing_pollutant_yields_absent_reading(payload: Dict[str, Any]) -> None:
    reading = _source(lambda _r: httpx.Response(200, json=payload)).fetch("delhi")

    assert reading.value is None
    assert reading.is_absent
    assert reading.observed_at == _NOW


def test_non_json_body_yields_absent_reading() -> None:
    reading = _source(lambda _r: httpx.Response(200, text="<html>maintenance</html>")).fetch("delhi")

    assert reading.is_absent


def test_zero_is_a_real_value() -> None:
    reading = _source(lambda _r: httpx.Response(200, json=_feed_payload(0))).fetch("delhi")

    assert reading.value == 0
    assert not reading.is_absent


@pytest.mark.parametrize("status_code", [404, 500, 503])
def test_non_success_status_is_network_error(status_code: int) -> None:
    source = _source(lambda _r: httpx.Response(status_code, json={"status": "error"}))

    with pytest.raises(FetchError) as excinfo:
        source.fetch("delhi")

    assert excinfo.value.kind is FetchErrorKind.network
    assert excinfo.value.transient


def test_timeout_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(FetchError) as excinfo:
        _source(handler).fetch("delhi")

    assert excinfo.value.kind is FetchErrorKind.timeout


def test_connection_failure_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FetchError) as excinfo:
        _source(handler).fetch("delhi")

    assert excinfo.value.kind is FetchErrorKind.network


def test_token_never_appears_in_logs(caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "error", "data": "Invalid key"})

    with caplog.at_level(logging.DEBUG, logger="services.source"):
        _source(handler).fetch("delhi")

    assert caplog.records
    assert all("secret-token" not in record.getMessage() for record in caplog.records)


def test_undecodable_body_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")

    with pytest.raises(FetchError) as excinfo:
        _source(handler).fetch("delhi")

    assert excinfo.value.kind is FetchErrorKind.network
    assert excinfo.value.transient


def test_timeout_applies_to_every_network_phase() -> None:
    source = _source(lambda _r: httpx.Response(200, json=_feed_payload(10)))

    assert source._client.timeout == httpx.Timeout(1.0)
