"""Positional CSV parsing and export for reading snapshots."""

from __future__ import annotations

import csv
import io
import logging
import math
from datetime import datetime, timezone
from typing import Iterable, List

from models.records import BaseFields, PowerSource, Reading

logger = logging.getLogger(__name__)

FIELDNAMES = (
    "timestamp",
    "boat_id",
    "gps_lat",
    "gps_long",
    "particle_size_microns",
    "concentration_ppm",
    "depth_cm",
    "collection_volume_ml",
    "battery_status",
    "power_source",
)


def parse_timestamp(value: str) -> datetime:
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


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_float(raw: str, row_number: int, field: str) -> float:
    try:
        return float(raw)
    except ValueError:
        logger.warning(
            "Unparseable %s, using NaN",
            field,
            extra={"row_number": row_number, "invalid_value": raw},
        )
        return math.nan


def _parse_int(raw: str, row_number: int, field: str) -> int:
    try:
        parsed = float(raw)
    except ValueError:
        parsed = math.nan
    if not math.isfinite(parsed):
        logger.warning(
            "Unparseable %s, using 0",
            field,
            extra={"row_number": row_number, "invalid_value": raw},
        )
        return 0
    return int(parsed)


def parse_rows(text: str) -> List[BaseFields]:
    """Parse every non-empty line after the header into base fields."""
    rows: List[BaseFields] = []
    lines = text.splitlines()
    for row_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(",")]
        if len(parts) != len(FIELDNAMES):
            logger.warning(
                "Skipping row",
                extra={"row_number": row_number, "reason": f"expected {len(FIELDNAMES)} fields"},
            )
            continue

        (
            timestamp_raw,
            boat_id,
            lat_raw,
            long_raw,
            size_raw,
            concentration_raw,
            depth_raw,
            volume_raw,
            battery_raw,
            power_raw,
        ) = parts

        try:
            timestamp = parse_timestamp(timestamp_raw)
        except ValueError:
            logger.warning(
                "Skipping row",
                extra={
                    "row_number": row_number,
                    "reason": "invalid timestamp",
                    "invalid_value": timestamp_raw,
                },
            )
            continue

        rows.append(
            BaseFields(
                timestamp=timestamp,
                boat_id=boat_id,
                gps_lat=_parse_float(lat_raw, row_number, "gps_lat"),
                gps_long=_parse_float(long_raw, row_number, "gps_long"),
                particle_size_microns=_parse_float(size_raw, row_number, "particle_size_microns"),
                concentration_ppm=_parse_float(concentration_raw, row_number, "concentration_ppm"),
                depth_cm=_parse_int(depth_raw, row_number, "depth_cm"),
                collection_volume_ml=_parse_int(volume_raw, row_number, "collection_volume_ml"),
                battery_status=_parse_int(battery_raw, row_number, "battery_status"),
                power_source=PowerSource.parse(power_raw),
            )
        )
    return rows


def render_csv(readings: Iterable[Reading]) -> str:
    """Serialize readings with the same header and field order as the input."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(FIELDNAMES)
    for reading in readings:
        writer.writerow(
            (
                format_timestamp(reading.timestamp),
                reading.boat_id,
                repr(reading.gps_lat),
                repr(reading.gps_long),
                repr(reading.particle_size_microns),
                repr(reading.concentration_ppm),
                reading.depth_cm,
                reading.collection_volume_ml,
                reading.battery_status,
                reading.power_source.value,
            )
        )
    return buffer.getvalue()
