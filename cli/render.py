from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_cycle(payload: Dict[str, Any]) -> None:
    echo_heading("Alert Cycle")
    echo_key_values(
        [
            ("cycle_id", payload.get("cycle_id")),
            ("location", payload.get("location")),
            ("started_at", payload.get("started_at")),
            ("fetch_outcome", payload.get("fetch_outcome")),
            ("observed_at", payload.get("observed_at")),
            ("value", payload.get("value")),
            ("category", payload.get("category")),
            ("alerted", payload.get("alerted")),
            ("dispatch_outcome", payload.get("dispatch_outcome")),
        ]
    )

    message = payload.get("message")
    if message:
        typer.echo()
        echo_heading("Message")
        typer.echo(message)


def render_state(payload: Dict[str, Any]) -> None:
    echo_heading("Alert State")
    echo_key_values(
        [
            ("location", payload.get("location")),
            ("last_alerted_category", payload.get("last_alerted_category") or "none"),
            ("last_alerted_at", payload.get("last_alerted_at") or "never"),
        ]
    )


def render_series(points: List[Dict[str, Any]]) -> None:
    echo_heading("Daily AQI")
    if not points:
        typer.echo("No readings recorded.")
        return
    for point in points:
        typer.echo(f"  - {point.get('date')}: {point.get('value')}")
