from __future__ import annotations

import time
from dataclasses import dataclass
from itertools import count as counter
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_cycle, render_series, render_state


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for driving the air-quality alerting service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Alerting API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between cycles for the watch command.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        request_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("cycle")
def cycle_command(ctx: typer.Context) -> None:
    """Run a single alert cycle on the service."""
    state = _get_state(ctx)
    payload = state.client.trigger_cycle()
    render_cycle(payload)


@app.command("state")
def state_command(ctx: typer.Context) -> None:
    """Show what was last alerted for the monitored location."""
    state = _get_state(ctx)
    render_state(state.client.get_state())


@app.command("series")
def series_command(
    ctx: typer.Context,
    days: Optional[int] = typer.Option(None, "--days", min=1, help="Only show the last N days."),
) -> None:
    """Print the daily AQI series used for charting."""
    state = _get_state(ctx)
    render_series(state.client.get_series(days))


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Override seconds between cycles.",
    ),
    count: Optional[int] = typer.Option(
        None,
        "--count",
        "-n",
        min=1,
        help="Stop after N cycles (runs until interrupted by default).",
    ),
) -> None:
    """Trigger cycles one after another at a fixed interval."""
    state = _get_state(ctx)
    wait = interval if interval is not None else state.config.poll_interval
    typer.echo(f"Triggering cycles on {state.config.base_url} every {wait}s ...")

    for run in counter(1):
        payload = state.client.trigger_cycle()
        render_cycle(payload)
        if count is not None and run >= count:
            break
        typer.echo()
        time.sleep(wait)
