from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_WATCH_INTERVAL = 3.0
DEFAULT_TIMEOUT = 30.0
DEFAULT_BOAT = "B1"

_BASE_URL_ENV = "API_BASE_URL"
_WATCH_INTERVAL_ENV = "CLI_WATCH_INTERVAL"
_TIMEOUT_ENV = "CLI_TIMEOUT"
_DEFAULT_BOAT_ENV = "CLI_DEFAULT_BOAT"
_EXPORT_DIR_ENV = "CLI_EXPORT_DIR"


@dataclass(frozen=True)
class CLIConfig:
    """Connection and convenience defaults for the telemetry CLI."""

    base_url: str = DEFAULT_BASE_URL
    watch_interval: float = DEFAULT_WATCH_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    default_boat: str = DEFAULT_BOAT
    export_dir: Optional[Path] = None


def _read_float(value: Optional[str], default: float) -> float:
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


def _normalize_base_url(value: str) -> str:
    url = value.strip().rstrip("/")
    if "://" not in url:
        url = f"http://{url}"
    return url


def load_config(
    base_url: Optional[str] = None,
    watch_interval: Optional[float] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if watch_interval is None:
        watch_interval = _read_float(os.getenv(_WATCH_INTERVAL_ENV), DEFAULT_WATCH_INTERVAL)
    if timeout is None:
        timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    boat = (os.getenv(_DEFAULT_BOAT_ENV) or "").strip() or DEFAULT_BOAT
    export_dir = (os.getenv(_EXPORT_DIR_ENV) or "").strip()
    return CLIConfig(
        base_url=_normalize_base_url(url),
        watch_interval=watch_interval,
        timeout=timeout,
        default_boat=boat,
        export_dir=Path(export_dir) if export_dir else None,
    )
