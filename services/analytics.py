"""Aggregation logic behind the dashboard, map and analytics views."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from statistics import fmean, pstdev
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models.records import BoatStatus, Reading
from services.queries import DualRayStatus

TIME_RANGES: Dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "6h": timedelta(hours=6),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
}

LOW_IMPACT_PPM = 1.0
HIGH_IMPACT_PPM = 3.0
TREND_BAND_PPM = 0.1
EXPECTED_READINGS_PER_WINDOW = 25
ALERT_HISTORY = 10


@dataclass
class ConcentrationStatistics:
    """Descriptive statistics of concentration over a set of readings."""

    count: int
    mean: float
    median: float
    std: float
    min: float
    max: float


@dataclass
class HourlyPoint:
    hour: int
    avg_concentration: float
    avg_particle_size: float
    total_volume: int


@dataclass
class ImpactZones:
    low: int = 0
    moderate: int = 0
    high: int = 0


@dataclass
class BoatComparison:
    boat_id: str
    reading_count: int
    avg_concentration: float


@dataclass
class FleetMetrics:
    total_volume: int = 0
    avg_battery: float = 0.0
    max_concentration: float = 0.0
    active_sensors: int = 0


@dataclass
class SensorOverview:
    laser_signal: float = 0.0
    infrared_signal: float = 0.0
    unified_accuracy: float = 0.0
    avg_concentration: float = 0.0
    avg_particle_size: float = 0.0
    data_points: int = 0


@dataclass
class Alert:
    id: str
    level: str
    message: str
    timestamp: datetime
    boat_id: Optional[str] = None


@dataclass
class HealthItem:
    label: str
    value: str
    grade: str


@dataclass
class SystemHealth:
    data_integrity: float
    network_latency_ms: float
    system_uptime: float
    security_status: float
    items: List[HealthItem] = field(default_factory=list)


@dataclass(frozen=True)
class MapBounds:
    north: float = 19.2
    south: float = 18.9
    east: float = 73.0
    west: float = 72.7


@dataclass
class MapMarker:
    boat_id: str
    status: BoatStatus
    left_pct: float
    top_pct: float
    concentration_color: str
    intensity: float
    reading: Reading


def _finite(values: Iterable[float]) -> List[float]:
    return [value for value in values if math.isfinite(value)]


def concentration_statistics(readings: Iterable[Reading]) -> Optional[ConcentrationStatistics]:
    values = _finite(reading.concentration_ppm for reading in readings)
    if not values:
        return None
    ordered = sorted(values)
    mean = fmean(values)
    return ConcentrationStatistics(
        count=len(values),
        mean=mean,
        median=ordered[len(ordered) // 2],
        std=pstdev(values, mu=mean),
        min=ordered[0],
        max=ordered[-1],
    )


def hourly_series(
    readings: Iterable[Reading], time_range: str, now: datetime
) -> List[HourlyPoint]:
    """Bucket readings inside ``time_range`` by hour of day."""
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unsupported time range {time_range!r}.")
    cutoff = now - TIME_RANGES[time_range]

    buckets: Dict[int, Tuple[List[float], List[float], List[int]]] = {}
    for reading in readings:
        if reading.timestamp <= cutoff:
            continue
        concentration, particle_size, volume = buckets.setdefault(
            reading.timestamp.hour, ([], [], [])
        )
        concentration.append(reading.concentration_ppm)
        particle_size.append(reading.particle_size_microns)
        volume.append(reading.collection_volume_ml)

    points: List[HourlyPoint] = []
    for hour in sorted(buckets):
        concentration, particle_size, volume = buckets[hour]
        finite_concentration = _finite(concentration)
        finite_size = _finite(particle_size)
        points.append(
            HourlyPoint(
                hour=hour,
                avg_concentration=fmean(finite_concentration) if finite_concentration else 0.0,
                avg_particle_size=fmean(finite_size) if finite_size else 0.0,
                total_volume=sum(volume),
            )
        )
    return points


def impact_zones(readings: Iterable[Reading]) -> ImpactZones:
    zones = ImpactZones()
    for value in _finite(reading.concentration_ppm for reading in readings):
        if value < LOW_IMPACT_PPM:
            zones.low += 1
        elif value < HIGH_IMPACT_PPM:
            zones.moderate += 1
        else:
            zones.high += 1
    return zones


def boat_comparison(readings: Sequence[Reading], boat_ids: Sequence[str]) -> List[BoatComparison]:
    comparison = []
    for boat_id in boat_ids:
        boat_values = [r.concentration_ppm for r in readings if r.boat_id == boat_id]
        finite = _finite(boat_values)
        comparison.append(
            BoatComparison(
                boat_id=boat_id,
                reading_count=len(boat_values),
                avg_concentration=fmean(finite) if finite else 0.0,
            )
        )
    return comparison


def concentration_trend(history: Sequence[Reading]) -> str:
    """Compare the last three readings against the three before them."""
    values = _finite(reading.concentration_ppm for reading in history[-6:])
    if len(values) < 2:
        return "stable"
    recent = values[-3:]
    earlier = values[:-3] or values[:1]
    delta = fmean(recent) - fmean(earlier)
    if delta > TREND_BAND_PPM:
        return "up"
    if delta < -TREND_BAND_PPM:
        return "down"
    return "stable"


def fleet_metrics(latest: Sequence[Reading]) -> FleetMetrics:
    if not latest:
        return FleetMetrics()
    concentrations = _finite(r.concentration_ppm for r in latest)
    return FleetMetrics(
        total_volume=sum(r.collection_volume_ml for r in latest),
        avg_battery=fmean(r.battery_status for r in latest),
        max_concentration=max(concentrations) if concentrations else 0.0,
        # Two channels per boat.
        active_sensors=sum(1 for r in latest if r.battery_status > 20) * 2,
    )


def _finite_mean(values: Iterable[float]) -> float:
    finite = _finite(values)
    return fmean(finite) if finite else 0.0


def sensor_overview(
    statuses: Sequence[DualRayStatus], latest: Sequence[Reading], data_points: int
) -> SensorOverview:
    """Fleet-wide averages for the dashboard header.

    Non-finite values are left out of each mean, so one boat with an
    unparseable concentration does not blank the figure for the whole fleet.
    """
    return SensorOverview(
        laser_signal=_finite_mean(s.laser.signal for s in statuses),
        infrared_signal=_finite_mean(s.infrared.signal for s in statuses),
        unified_accuracy=_finite_mean(s.unified.accuracy for s in statuses),
        avg_concentration=_finite_mean(r.concentration_ppm for r in latest),
        avg_particle_size=_finite_mean(r.particle_size_microns for r in latest),
        data_points=data_points,
    )


def build_alerts(
    latest: Sequence[Reading],
    high_concentration: float,
    low_battery: int,
    large_particle: float,
    now: datetime,
) -> List[Alert]:
    stamp = int(now.timestamp() * 1000)
    alerts: List[Alert] = []
    for reading in latest:
        boat_id = reading.boat_id
        if reading.concentration_ppm > high_concentration:
            alerts.append(
                Alert(
                    id=f"{boat_id}-concentration-{stamp}",
                    level="warning",
                    message=(
                        "High microplastic concentration detected: "
                        f"{reading.concentration_ppm:.2f} ppm"
                    ),
                    timestamp=now,
                    boat_id=boat_id,
                )
            )
        if reading.battery_status < low_battery:
            alerts.append(
                Alert(
                    id=f"{boat_id}-battery-{stamp}",
                    level="error" if reading.battery_status < 15 else "warning",
                    message=f"Low battery warning: {reading.battery_status}%",
                    timestamp=now,
                    boat_id=boat_id,
                )
            )
        if reading.particle_size_microns > large_particle:
            alerts.append(
                Alert(
                    id=f"{boat_id}-particle-{stamp}",
                    level="info",
                    message=f"Large particle detected: {reading.particle_size_microns:.1f} μm",
                    timestamp=now,
                    boat_id=boat_id,
                )
            )
    return alerts[-ALERT_HISTORY:]


def _grade(value: float, good: float, warning: float, higher_is_better: bool = True) -> str:
    if higher_is_better:
        if value > good:
            return "good"
        return "warning" if value > warning else "error"
    if value < good:
        return "good"
    return "warning" if value < warning else "error"


def system_health(readings: Iterable[Reading], now: datetime, rng: random.Random) -> SystemHealth:
    window_start = now - timedelta(minutes=5)
    recent = sum(1 for reading in readings if reading.timestamp > window_start)
    integrity = min(100.0, recent / EXPECTED_READINGS_PER_WINDOW * 100)
    latency = rng.random() * 50 + 10
    uptime = 99.7
    security = 100.0
    return SystemHealth(
        data_integrity=integrity,
        network_latency_ms=latency,
        system_uptime=uptime,
        security_status=security,
        items=[
            HealthItem("Data Integrity", f"{integrity:.1f}%", _grade(integrity, 90, 70)),
            HealthItem(
                "Network Latency", f"{latency:.0f}ms", _grade(latency, 30, 60, higher_is_better=False)
            ),
            HealthItem("System Uptime", f"{uptime}%", _grade(uptime, 99, 95)),
            HealthItem("Security Status", f"{security:.0f}%", "good"),
        ],
    )


def concentration_color(concentration: float) -> str:
    if concentration > 4:
        return "#ef4444"
    if concentration > 2:
        return "#f59e0b"
    if concentration > 1:
        return "#3b82f6"
    return "#22c55e"


def map_markers(
    positions: Iterable[Tuple[Reading, BoatStatus]], bounds: MapBounds = MapBounds()
) -> List[MapMarker]:
    """Project latest boat positions onto percentage coordinates of the bay."""
    width = bounds.east - bounds.west
    height = bounds.north - bounds.south
    markers = []
    for reading, status in positions:
        if not (math.isfinite(reading.gps_lat) and math.isfinite(reading.gps_long)):
            continue
        concentration = reading.concentration_ppm if math.isfinite(reading.concentration_ppm) else 0.0
        markers.append(
            MapMarker(
                boat_id=reading.boat_id,
                status=status,
                left_pct=(reading.gps_long - bounds.west) / width * 100,
                top_pct=100 - (reading.gps_lat - bounds.south) / height * 100,
                concentration_color=concentration_color(concentration),
                intensity=min(1.0, concentration / 5),
                reading=reading,
            )
        )
    return markers
