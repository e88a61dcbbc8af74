"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class PowerSource(str, Enum):
    solar = "solar"
    hydro = "hydro"
    other = "other"

    @classmethod
    def parse(cls, value: str) -> "PowerSource":
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.other


class ChannelStatus(str, Enum):
    """Operating state of a single sensing channel."""

    active = "active"
    degraded = "degraded"
    offline = "offline"


class BoatStatus(str, Enum):
    """Liveness classification of a boat, derived from its latest reading."""

    active = "active"
    warning = "warning"
    offline = "offline"


class ScoringVariant(str, Enum):
    """Metric naming and scoring scheme used by the synthesizer."""

    classic_dual_channel = "classic_dual_channel"
    unified_ai_fusion = "unified_ai_fusion"


class CalibrationStatus(str, Enum):
    calibrated = "calibrated"
    needs_calibration = "needs_calibration"


@dataclass(frozen=True, slots=True)
class BaseFields:
    """The ten positional CSV fields of a reading, before metric synthesis."""

    timestamp: datetime
    boat_id: str
    gps_lat: float
    gps_long: float
    particle_size_microns: float
    concentration_ppm: float
    depth_cm: int
    collection_volume_ml: int
    battery_status: int
    power_source: PowerSource


@dataclass(frozen=True, slots=True)
class Reading:
    """A single telemetry sample for one boat with its derived quality metrics."""

    timestamp: datetime
    boat_id: str
    gps_lat: float
    gps_long: float
    particle_size_microns: float
    concentration_ppm: float
    depth_cm: int
    collection_volume_ml: int
    battery_status: int
    power_source: PowerSource
    laser_accuracy: float
    infrared_accuracy: float
    fused_accuracy: float
    laser_signal_strength: float
    infrared_signal_strength: float
    laser_status: ChannelStatus
    infrared_status: ChannelStatus
    calibration_status: CalibrationStatus
    sensor_temperature: float
    water_turbidity: float
    detection_confidence: float

    def base_fields(self) -> BaseFields:
        return BaseFields(
            timestamp=self.timestamp,
            boat_id=self.boat_id,
            gps_lat=self.gps_lat,
            gps_long=self.gps_long,
            particle_size_microns=self.particle_size_microns,
            concentration_ppm=self.concentration_ppm,
            depth_cm=self.depth_cm,
            collection_volume_ml=self.collection_volume_ml,
            battery_status=self.battery_status,
            power_source=self.power_source,
        )


@dataclass(frozen=True, slots=True)
class AccuracyValidation:
    cross_validation_score: float
    statistical_confidence: float
    error_margin: float


@dataclass(frozen=True, slots=True)
class TechnicalSpecification:
    """Static hardware description of the dual ray sensor head."""

    laser_wavelength_nm: int
    laser_power_mw: float
    infrared_wavelength_nm: int
    sampling_rate_hz: float
    detection_threshold_ppm: float
    calibration_date: date
    fusion_algorithm: str
    accuracy_validation: AccuracyValidation


TECHNICAL_SPECS = TechnicalSpecification(
    laser_wavelength_nm=650,
    laser_power_mw=5.0,
    infrared_wavelength_nm=1550,
    sampling_rate_hz=10.0,
    detection_threshold_ppm=0.1,
    calibration_date=date(2024, 9, 1),
    fusion_algorithm="Weighted Bayesian Fusion with Kalman Filtering",
    accuracy_validation=AccuracyValidation(
        cross_validation_score=0.94,
        statistical_confidence=0.96,
        error_margin=0.05,
    ),
)
