from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple


_CSV_PATH_ENV = "TELEMETRY_CSV_PATH"
_TICK_SECONDS_ENV = "TELEMETRY_TICK_SECONDS"
_CAPACITY_ENV = "TELEMETRY_CAPACITY"
_SEED_ENV = "TELEMETRY_SEED"
_VARIANT_ENV = "SCORING_VARIANT"
_FLEET_ENV = "FLEET_BOAT_IDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_DEFAULT_CSV_PATH = Path(__file__).resolve().parent / "datastore" / "dual_ray_swarm.csv"
_DEFAULT_FLEET = ("B1", "B2", "B3", "B4", "B5")


@dataclass(frozen=True)
class Settings:
    csv_path: str
    tick_seconds: float
    capacity: int
    seed: Optional[int]
    scoring_variant: str
    fleet_boat_ids: Tuple[str, ...]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_seed() -> Optional[int]:
    value = os.getenv(_SEED_ENV)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _read_fleet(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_FLEET_ENV)
    if value is None:
        return default
    boat_ids = tuple(part.strip() for part in value.split(",") if part.strip())
    return boat_ids or default


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
        csv_path=_read_str_env(_CSV_PATH_ENV, str(_DEFAULT_CSV_PATH)),
        tick_seconds=_read_positive_float(_TICK_SECONDS_ENV, 3.0),
        capacity=_read_positive_int(_CAPACITY_ENV, 1000),
        seed=_read_seed(),
        scoring_variant=_read_str_env(_VARIANT_ENV, "classic_dual_channel").lower(),
        fleet_boat_ids=_read_fleet(_DEFAULT_FLEET),
        log_level=_read_log_level("INFO"),
    )
