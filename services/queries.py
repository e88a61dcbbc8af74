"""Read-only fleet and boat queries over the reading store."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from statistics import fmean, pstdev
from typing import Any, Dict, List, Optional, Sequence

from models.records import (
    BoatStatus,
    ChannelStatus,
    Reading,
    ScoringVariant,
    TECHNICAL_SPECS,
)
from models.reference import FUSION_REFERENCE, INFRARED_REFERENCE, LASER_REFERENCE
from services.synthesizer import ChannelThresholds, clamp_percentage
from services.telemetry import Clock, utc_now
from storage.reading_store import ReadingStore

STALE_AFTER = timedelta(minutes=5)
LOW_BATTERY = 20
MIN_FUSED_ACCURACY = 85.0
VALIDATION_WINDOW = 10
MIN_VALIDATION_SAMPLES = 5
STABILITY_STD_CUTOFF = 3.0


@dataclass
class AccuracySummary:
    laser: float = 0.0
    infrared: float = 0.0
    fused: float = 0.0


@dataclass
class ChannelValidation:
    average_accuracy: float
    standard_deviation: float
    stability: str
    status: str


@dataclass
class FusionValidation:
    average_accuracy: float
    improvement_over_individual: float
    reliability_score: float
    recommendation: str


@dataclass
class ValidationReport:
    sample_count: int
    laser: ChannelValidation
    infrared: ChannelValidation
    fusion: FusionValidation


@dataclass
class ChannelState:
    signal: float = 0.0
    status: ChannelStatus = ChannelStatus.offline
    stability: float = 0.0


@dataclass
class UnifiedState:
    accuracy: float = 0.0
    confidence: float = 0.0
    alignment: float = 0.0


@dataclass
class DualRayStatus:
    laser: ChannelState
    infrared: ChannelState
    unified: UnifiedState


def _status_tier(mean: float, optimal: float, acceptable: float) -> str:
    if mean > optimal:
        return "optimal"
    if mean > acceptable:
        return "acceptable"
    return "poor"


def _recommendation(fused_mean: float) -> str:
    if fused_mean > 90:
        return "System performing optimally"
    if fused_mean > 80:
        return "Consider recalibration"
    return "Immediate maintenance required"


def _usable(reading: Reading) -> bool:
    return all(
        math.isfinite(value)
        for value in (reading.laser_accuracy, reading.infrared_accuracy, reading.fused_accuracy)
    )


def _channel_validation(
    scores: Sequence[float], optimal: float, acceptable: float
) -> ChannelValidation:
    mean = fmean(scores)
    std = pstdev(scores, mu=mean)
    return ChannelValidation(
        average_accuracy=mean,
        standard_deviation=std,
        stability="stable" if std < STABILITY_STD_CUTOFF else "unstable",
        status=_status_tier(mean, optimal, acceptable),
    )


class FleetQueries:
    """Stateless views over the latest store contents, recomputed per call."""

    def __init__(
        self,
        store: ReadingStore,
        thresholds: Optional[ChannelThresholds] = None,
        variant: ScoringVariant = ScoringVariant.classic_dual_channel,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.thresholds = thresholds or ChannelThresholds()
        self.variant = variant
        self.clock = clock

    def latest_reading(self, boat_id: str) -> Optional[Reading]:
        return self.store.latest(boat_id)

    def sensor_accuracy(self, boat_id: str) -> AccuracySummary:
        reading = self.store.latest(boat_id)
        if reading is None:
            return AccuracySummary()
        return AccuracySummary(
            laser=clamp_percentage(reading.laser_accuracy),
            infrared=clamp_percentage(reading.infrared_accuracy),
            fused=clamp_percentage(reading.fused_accuracy),
        )

    def boat_status(self, boat_id: str, now: Optional[datetime] = None) -> BoatStatus:
        reading = self.store.latest(boat_id)
        if reading is None:
            return BoatStatus.offline
        current = now or self.clock()
        if current - reading.timestamp > STALE_AFTER:
            return BoatStatus.offline
        if reading.battery_status < LOW_BATTERY:
            return BoatStatus.warning
        channel_states = (
            self.thresholds.classify(reading.laser_accuracy),
            self.thresholds.classify(reading.infrared_accuracy),
        )
        if any(state is not ChannelStatus.active for state in channel_states):
            return BoatStatus.warning
        if not reading.fused_accuracy >= MIN_FUSED_ACCURACY:
            return BoatStatus.warning
        return BoatStatus.active

    def validate_sensor_accuracy(
        self, boat_id: str, window: int = VALIDATION_WINDOW
    ) -> Optional[ValidationReport]:
        """Rolling-window statistics, or None while there is too little data."""
        recent = [r for r in self.store.history(boat_id, limit=window) if _usable(r)]
        if len(recent) < MIN_VALIDATION_SAMPLES:
            return None

        laser = _channel_validation([r.laser_accuracy for r in recent], 85.0, 75.0)
        infrared = _channel_validation([r.infrared_accuracy for r in recent], 80.0, 70.0)
        fused_mean = fmean(r.fused_accuracy for r in recent)
        worst_std = max(laser.standard_deviation, infrared.standard_deviation)
        return ValidationReport(
            sample_count=len(recent),
            laser=laser,
            infrared=infrared,
            fusion=FusionValidation(
                average_accuracy=fused_mean,
                improvement_over_individual=max(
                    0.0, fused_mean - max(laser.average_accuracy, infrared.average_accuracy)
                ),
                reliability_score=(fused_mean / 100) * (1 - worst_std / 10),
                recommendation=_recommendation(fused_mean),
            ),
        )

    def technical_detail(self, boat_id: str) -> Optional[Dict[str, Any]]:
        reading = self.store.latest(boat_id)
        if reading is None:
            return None
        specs = TECHNICAL_SPECS
        fusion_text = FUSION_REFERENCE[self.variant]
        return {
            "laser": {
                "wavelength": specs.laser_wavelength_nm,
                "power": specs.laser_power_mw,
                "signal_strength": reading.laser_signal_strength,
                "accuracy": reading.laser_accuracy,
                "status": reading.laser_status.value,
                "principle": LASER_REFERENCE["principle"],
                "detection_method": LASER_REFERENCE["detection_method"],
                "advantages": list(LASER_REFERENCE["advantages"]),
                "limitations": list(LASER_REFERENCE["limitations"]),
            },
            "infrared": {
                "wavelength": specs.infrared_wavelength_nm,
                "signal_strength": reading.infrared_signal_strength,
                "accuracy": reading.infrared_accuracy,
                "status": reading.infrared_status.value,
                "principle": INFRARED_REFERENCE["principle"],
                "detection_method": INFRARED_REFERENCE["detection_method"],
                "advantages": list(INFRARED_REFERENCE["advantages"]),
                "limitations": list(INFRARED_REFERENCE["limitations"]),
            },
            "fusion": {
                "algorithm": specs.fusion_algorithm,
                "accuracy": reading.fused_accuracy,
                "confidence": reading.detection_confidence,
                "method": fusion_text["method"],
                "benefits": list(fusion_text["benefits"]),
            },
            "environmental": {
                "temperature": reading.sensor_temperature,
                "turbidity": reading.water_turbidity,
                "depth": reading.depth_cm,
                "calibration_status": reading.calibration_status.value,
            },
        }

    def dual_ray_status(self, boat_id: str, window: int = VALIDATION_WINDOW) -> DualRayStatus:
        history = self.store.history(boat_id, limit=window)
        if not history:
            return DualRayStatus(laser=ChannelState(), infrared=ChannelState(), unified=UnifiedState())
        latest = history[-1]
        return DualRayStatus(
            laser=ChannelState(
                signal=latest.laser_signal_strength,
                status=latest.laser_status,
                stability=_signal_stability([r.laser_signal_strength for r in history]),
            ),
            infrared=ChannelState(
                signal=latest.infrared_signal_strength,
                status=latest.infrared_status,
                stability=_signal_stability([r.infrared_signal_strength for r in history]),
            ),
            unified=UnifiedState(
                accuracy=latest.fused_accuracy,
                confidence=latest.detection_confidence,
                alignment=clamp_percentage(
                    100 - abs(latest.laser_signal_strength - latest.infrared_signal_strength) / 2
                ),
            ),
        )

    def latest_readings(self, boat_ids: Sequence[str]) -> List[Reading]:
        readings = (self.store.latest(boat_id) for boat_id in boat_ids)
        return [reading for reading in readings if reading is not None]


def _signal_stability(signals: Sequence[float]) -> float:
    finite = [value for value in signals if math.isfinite(value)]
    if len(finite) < 2:
        return 100.0 if finite else 0.0
    return clamp_percentage(100 - pstdev(finite) * 10)
