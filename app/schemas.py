"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import (
    BoatStatus,
    CalibrationStatus,
    ChannelStatus,
    PowerSource,
)


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ReadingOut(_FromAttributes):
    """One telemetry sample with its derived metrics."""

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


class AccuracySummaryOut(_FromAttributes):
    laser: float = Field(..., ge=0, le=100)
    infrared: float = Field(..., ge=0, le=100)
    fused: float = Field(..., ge=0, le=100)


class BoatStatusOut(BaseModel):
    boat_id: str
    status: BoatStatus


class FleetEntry(BaseModel):
    """Summary row for one boat in the fleet listing."""

    boat_id: str
    status: BoatStatus
    reading_count: int = Field(..., ge=0)
    accuracy: AccuracySummaryOut
    latest: Optional[ReadingOut] = None


class FleetOverview(BaseModel):
    boats: List[FleetEntry]
    total_readings: int = Field(..., ge=0)
    last_update: Optional[datetime] = None
    is_connected: bool


class ChannelValidationOut(_FromAttributes):
    average_accuracy: float
    standard_deviation: float
    stability: str
    status: str


class FusionValidationOut(_FromAttributes):
    average_accuracy: float
    improvement_over_individual: float = Field(..., ge=0)
    reliability_score: float
    recommendation: str


class ValidationReportOut(_FromAttributes):
    sample_count: int
    laser: ChannelValidationOut
    infrared: ChannelValidationOut
    fusion: FusionValidationOut


class ChannelStateOut(_FromAttributes):
    signal: float
    status: ChannelStatus
    stability: float


class UnifiedStateOut(_FromAttributes):
    accuracy: float
    confidence: float
    alignment: float


class DualRayStatusOut(_FromAttributes):
    laser: ChannelStateOut
    infrared: ChannelStateOut
    unified: UnifiedStateOut


class ConcentrationStatisticsOut(_FromAttributes):
    count: int
    mean: float
    median: float
    std: float
    min: float
    max: float


class HourlyPointOut(_FromAttributes):
    hour: int = Field(..., ge=0, le=23)
    avg_concentration: float
    avg_particle_size: float
    total_volume: int


class ImpactZonesOut(_FromAttributes):
    low: int
    moderate: int
    high: int


class BoatComparisonOut(_FromAttributes):
    boat_id: str
    reading_count: int
    avg_concentration: float


class AnalyticsSummary(BaseModel):
    time_range: str
    statistics: Optional[ConcentrationStatisticsOut] = None
    hourly: List[HourlyPointOut] = Field(default_factory=list)
    zones: ImpactZonesOut
    boats: List[BoatComparisonOut] = Field(default_factory=list)
    trends: Dict[str, str] = Field(default_factory=dict)


class AlertOut(_FromAttributes):
    id: str
    level: str
    message: str
    timestamp: datetime
    boat_id: Optional[str] = None


class AccuracyValidationOut(_FromAttributes):
    cross_validation_score: float
    statistical_confidence: float
    error_margin: float


class TechnicalSpecificationOut(_FromAttributes):
    laser_wavelength_nm: int
    laser_power_mw: float
    infrared_wavelength_nm: int
    sampling_rate_hz: float
    detection_threshold_ppm: float
    calibration_date: date
    fusion_algorithm: str
    accuracy_validation: AccuracyValidationOut


class DashboardPreferences(BaseModel):
    """Settings-view configuration record; presentation only."""

    model_config = ConfigDict(populate_by_name=True)

    high_concentration_threshold: float = Field(
        4.0, ge=0, alias="highConcentrationThreshold"
    )
    low_battery_threshold: int = Field(25, ge=0, le=100, alias="lowBatteryThreshold")
    large_particle_threshold: float = Field(60.0, ge=0, alias="largeParticleThreshold")
    sampling_interval_sec: int = Field(3, ge=1, alias="samplingIntervalSec")
    retention_days: int = Field(30, ge=1, alias="retentionDays")
    auto_export: bool = Field(True, alias="autoExport")
    laser_sensitivity: float = Field(92.0, ge=80, le=100, alias="laserSensitivity")
    infrared_baseline: float = Field(0.5, ge=0, le=2, alias="infraredBaseline")
    fusion_weight: float = Field(0.6, ge=0.1, le=1.0, alias="fusionWeight")
    notifications: bool = True
    dark_mode: bool = Field(False, alias="darkMode")
    auto_refresh: bool = Field(True, alias="autoRefresh")
