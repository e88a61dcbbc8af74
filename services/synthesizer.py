"""Derived-metric synthesis for dual ray readings."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from models.records import (
    BaseFields,
    CalibrationStatus,
    ChannelStatus,
    Reading,
    ScoringVariant,
)


@dataclass(frozen=True)
class ScoringProfile:
    """Numbers that distinguish one scoring variant from another."""

    laser_base: float
    laser_span: float
    laser_cap: float
    infrared_base: float
    infrared_span: float
    infrared_cap: float
    fusion_bonus: float
    fusion_ceiling: float
    confidence_ceiling: float


VARIANT_PROFILES: Mapping[ScoringVariant, ScoringProfile] = MappingProxyType(
    {
        ScoringVariant.classic_dual_channel: ScoringProfile(
            laser_base=85.0,
            laser_span=10.0,
            laser_cap=95.0,
            infrared_base=80.0,
            infrared_span=12.0,
            infrared_cap=92.0,
            fusion_bonus=3.0,
            fusion_ceiling=98.0,
            confidence_ceiling=99.0,
        ),
        ScoringVariant.unified_ai_fusion: ScoringProfile(
            laser_base=88.0,
            laser_span=7.0,
            laser_cap=95.0,
            infrared_base=84.0,
            infrared_span=8.0,
            infrared_cap=92.0,
            fusion_bonus=6.0,
            fusion_ceiling=97.0,
            confidence_ceiling=100.0,
        ),
    }
)


@dataclass(frozen=True)
class ChannelThresholds:
    """Score cutoffs shared by channel status and boat status."""

    active: float = 80.0
    degraded: float = 65.0

    def classify(self, score: float) -> ChannelStatus:
        if score >= self.active:
            return ChannelStatus.active
        if score >= self.degraded:
            return ChannelStatus.degraded
        return ChannelStatus.offline


TEMPERATURE_RANGE = (20.0, 35.0)
TURBIDITY_RANGE = (0.0, 0.5)


def clamp_percentage(value: float) -> float:
    """Clamp to [0, 100]; NaN collapses to 0."""
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


class MetricSynthesizer:
    """Fabricates per-reading quality metrics from base fields or a prior reading."""

    def __init__(
        self,
        variant: ScoringVariant = ScoringVariant.classic_dual_channel,
        rng: Optional[random.Random] = None,
        thresholds: Optional[ChannelThresholds] = None,
    ) -> None:
        self.variant = variant
        self.profile = VARIANT_PROFILES[variant]
        self.rng = rng or random.Random()
        self.thresholds = thresholds or ChannelThresholds()

    def fuse(self, laser: float, infrared: float) -> float:
        profile = self.profile
        blended = (laser + infrared) / 2 + profile.fusion_bonus
        fused = min(profile.fusion_ceiling, max(blended, laser, infrared))
        return clamp_percentage(fused)

    def from_base(self, base: BaseFields) -> Reading:
        """Synthesize metrics for a freshly parsed CSV row."""
        profile = self.profile
        battery = _finite_or_zero(float(base.battery_status))
        concentration = _finite_or_zero(base.concentration_ppm)
        laser = min(profile.laser_cap, profile.laser_base + (battery / 100) * profile.laser_span)
        infrared = min(
            profile.infrared_cap,
            profile.infrared_base + (concentration / 5) * profile.infrared_span,
        )
        return self._build(base, clamp_percentage(laser), clamp_percentage(infrared))

    def perturb(self, previous: Reading, timestamp: datetime) -> Reading:
        """Produce the next reading for a boat from its most recent one."""
        rng = self.rng
        profile = self.profile
        battery = previous.battery_status + (rng.random() - 0.7) * 2
        base = BaseFields(
            timestamp=timestamp,
            boat_id=previous.boat_id,
            gps_lat=previous.gps_lat,
            gps_long=previous.gps_long,
            particle_size_microns=max(
                1.0, _finite_or_zero(previous.particle_size_microns) + (rng.random() - 0.5) * 5
            ),
            concentration_ppm=max(
                0.0, _finite_or_zero(previous.concentration_ppm) + (rng.random() - 0.5) * 0.5
            ),
            depth_cm=previous.depth_cm,
            collection_volume_ml=previous.collection_volume_ml,
            battery_status=int(round(max(0.0, min(100.0, battery)))),
            power_source=previous.power_source,
        )
        laser = min(profile.laser_cap, profile.laser_base + rng.random() * profile.laser_span)
        infrared = min(
            profile.infrared_cap, profile.infrared_base + rng.random() * profile.infrared_span
        )
        return self._build(base, clamp_percentage(laser), clamp_percentage(infrared))

    def _build(self, base: BaseFields, laser: float, infrared: float) -> Reading:
        rng = self.rng
        fused = self.fuse(laser, infrared)
        laser_status = self.thresholds.classify(laser)
        infrared_status = self.thresholds.classify(infrared)
        calibrated = (
            laser_status is ChannelStatus.active and infrared_status is ChannelStatus.active
        )
        confidence = min(self.profile.confidence_ceiling, fused + rng.random() * 2)
        return Reading(
            timestamp=base.timestamp,
            boat_id=base.boat_id,
            gps_lat=base.gps_lat,
            gps_long=base.gps_long,
            particle_size_microns=base.particle_size_microns,
            concentration_ppm=base.concentration_ppm,
            depth_cm=base.depth_cm,
            collection_volume_ml=base.collection_volume_ml,
            battery_status=base.battery_status,
            power_source=base.power_source,
            laser_accuracy=laser,
            infrared_accuracy=infrared,
            fused_accuracy=fused,
            laser_signal_strength=clamp_percentage(laser - rng.random() * 5),
            infrared_signal_strength=clamp_percentage(infrared - rng.random() * 5),
            laser_status=laser_status,
            infrared_status=infrared_status,
            calibration_status=(
                CalibrationStatus.calibrated if calibrated else CalibrationStatus.needs_calibration
            ),
            sensor_temperature=rng.uniform(*TEMPERATURE_RANGE),
            water_turbidity=rng.uniform(*TURBIDITY_RANGE),
            detection_confidence=clamp_percentage(confidence),
        )
