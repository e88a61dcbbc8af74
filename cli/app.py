from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_boat, render_fleet, render_validation


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for inspecting the dual ray swarm telemetry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Telemetry API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("fleet")
def fleet_command(ctx: typer.Context) -> None:
    """Show status and accuracy for every boat."""
    state = _get_state(ctx)
    render_fleet(state.client.get_fleet())


@app.command("boat")
def boat_command(
    ctx: typer.Context,
    boat_id: Optional[str] = typer.Argument(
        None, help="Boat identifier, e.g. B1 (defaults to CLI_DEFAULT_BOAT or B1)."
    ),
) -> None:
    """Show the latest reading and accuracy summary for one boat."""
    state = _get_state(ctx)
    render_boat(state.client.get_boat(boat_id or state.config.default_boat))


@app.command("validate")
def validate_command(
    ctx: typer.Context,
    boat_id: Optional[str] = typer.Argument(
        None, help="Boat identifier, e.g. B1 (defaults to CLI_DEFAULT_BOAT or B1)."
    ),
) -> None:
    """Run rolling-window accuracy validation for one boat."""
    state = _get_state(ctx)
    target = boat_id or state.config.default_boat
    render_validation(target, state.client.get_validation(target))


@app.command("export")
def export_command(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        help="Destination file (defaults to the dated server name, inside CLI_EXPORT_DIR if set).",
    ),
) -> None:
    """Download the reading history as CSV."""
    state = _get_state(ctx)
    filename, content = state.client.download_export()
    if output is not None:
        destination = output
    else:
        destination = (state.config.export_dir or Path(".")) / filename
        destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(content)
    typer.secho(f"Wrote {len(content)} bytes to {destination}", fg=typer.colors.GREEN)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    count: int = typer.Option(0, "--count", "-n", min=0, help="Refreshes before exiting (0 = forever)."),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between refreshes (defaults to CLI_WATCH_INTERVAL or 3).",
    ),
) -> None:
    """Poll the fleet status repeatedly."""
    state = _get_state(ctx)
    delay = interval if interval is not None else state.config.watch_interval
    iteration = 0
    while True:
        render_fleet(state.client.get_fleet())
        iteration += 1
        if count and iteration >= count:
            return
        typer.echo()
        time.sleep(delay)
