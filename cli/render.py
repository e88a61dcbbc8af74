from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer

_STATUS_COLORS = {
    "active": typer.colors.GREEN,
    "warning": typer.colors.YELLOW,
    "offline": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _pct(value: Any) -> str:
    return f"{value:.1f}%" if isinstance(value, (int, float)) else "n/a"


def render_fleet(payload: Dict[str, Any]) -> None:
    echo_heading("Fleet Status")
    echo_key_values(
        [
            ("total_readings", payload.get("total_readings")),
            ("last_update", payload.get("last_update") or "never"),
            ("connected", payload.get("is_connected")),
        ]
    )
    typer.echo()
    boats = payload.get("boats") or []
    if not boats:
        typer.echo("No boats known.")
        return
    for boat in boats:
        status = boat.get("status", "offline")
        accuracy = boat.get("accuracy") or {}
        typer.secho(f"  {boat.get('boat_id')}: {status}", fg=_STATUS_COLORS.get(status), nl=False)
        typer.echo(
            f"  readings={boat.get('reading_count')}"
            f" laser={_pct(accuracy.get('laser'))}"
            f" infrared={_pct(accuracy.get('infrared'))}"
            f" fused={_pct(accuracy.get('fused'))}"
        )


def render_boat(payload: Dict[str, Any]) -> None:
    echo_heading(f"Boat {payload.get('boat_id')}")
    status = payload.get("status")
    typer.secho(f"status: {status}", fg=_STATUS_COLORS.get(status))
    accuracy = payload.get("accuracy") or {}
    echo_key_values(
        [
            ("laser", _pct(accuracy.get("laser"))),
            ("infrared", _pct(accuracy.get("infrared"))),
            ("fused", _pct(accuracy.get("fused"))),
        ]
    )
    latest = payload.get("latest")
    typer.echo()
    echo_heading("Latest Reading")
    if not latest:
        typer.echo("No readings yet.")
        return
    echo_key_values(
        [
            ("timestamp", latest.get("timestamp")),
            ("position", f"{latest.get('gps_lat')}, {latest.get('gps_long')}"),
            ("concentration_ppm", latest.get("concentration_ppm")),
            ("particle_size_microns", latest.get("particle_size_microns")),
            ("battery_status", latest.get("battery_status")),
            ("power_source", latest.get("power_source")),
        ]
    )


def render_validation(boat_id: str, payload: Optional[Dict[str, Any]]) -> None:
    echo_heading(f"Accuracy Validation: {boat_id}")
    if not payload:
        typer.echo("Not enough data yet (at least 5 recent readings required).")
        return
    for channel in ("laser", "infrared"):
        data = payload.get(channel) or {}
        typer.echo(
            f"  {channel}: mean={_pct(data.get('average_accuracy'))}"
            f" std={data.get('standard_deviation', 0):.2f}"
            f" {data.get('stability')} / {data.get('status')}"
        )
    fusion = payload.get("fusion") or {}
    typer.echo(
        f"  fusion: mean={_pct(fusion.get('average_accuracy'))}"
        f" improvement={fusion.get('improvement_over_individual', 0):.2f}"
        f" reliability={fusion.get('reliability_score', 0):.3f}"
    )
    typer.echo(f"recommendation: {fusion.get('recommendation')}")
