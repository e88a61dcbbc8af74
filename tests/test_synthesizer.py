import math
import random
from datetime import datetime, timedelta, timezone

import pytest

from models.records import (
    BaseFields,
    CalibrationStatus,
    ChannelStatus,
    PowerSource,
    ScoringVariant,
)
from services.synthesizer import (
    VARIANT_PROFILES,
    ChannelThresholds,
    MetricSynthesizer,
    clamp_percentage,
)


def _base(**overrides) -> BaseFields:
    values = dict(
        timestamp=datetime(2024, 9, 15, 0, 2, tzinfo=timezone.utc),
        boat_id="B1",
        gps_lat=19.0107,
        gps_long=72.8166,
        particle_size_microns=53.3,
        concentration_ppm=2.11,
        depth_cm=57,
        collection_volume_ml=105,
        battery_status=88,
        power_source=PowerSource.solar,
    )
    values.update(overrides)
    return BaseFields(**values)


def test_clamp_percentage_bounds_and_nan() -> None:
    assert clamp_percentage(150.0) == 100.0
    assert clamp_percentage(-3.0) == 0.0
    assert clamp_percentage(42.5) == 42.5
    assert clamp_percentage(math.nan) == 0.0


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (95.0, ChannelStatus.active),
        (80.0, ChannelStatus.active),
        (79.9, ChannelStatus.degraded),
        (65.0, ChannelStatus.degraded),
        (64.9, ChannelStatus.offline),
    ],
)
def test_channel_thresholds_classify(score: float, expected: ChannelStatus) -> None:
    assert ChannelThresholds().classify(score) is expected


def test_from_base_derives_scores_from_battery_and_concentration() -> None:
    synthesizer = MetricSynthesizer(rng=random.Random(1))

    reading = synthesizer.from_base(_base())

    assert reading.laser_accuracy == pytest.approx(93.8)
    assert reading.infrared_accuracy == pytest.approx(80 + 2.11 / 5 * 12)
    assert reading.fused_accuracy == pytest.approx(93.8)
    assert reading.laser_status is ChannelStatus.active
    assert reading.infrared_status is ChannelStatus.active
    assert reading.calibration_status is CalibrationStatus.calibrated
    assert reading.boat_id == "B1"
    assert reading.battery_status == 88


def test_from_base_caps_channel_scores() -> None:
    synthesizer = MetricSynthesizer(rng=random.Random(1))

    reading = synthesizer.from_base(_base(battery_status=100, concentration_ppm=50.0))

    assert reading.laser_accuracy == pytest.approx(95.0)
    assert reading.infrared_accuracy == pytest.approx(92.0)
    assert reading.fused_accuracy <= VARIANT_PROFILES[ScoringVariant.classic_dual_channel].fusion_ceiling


def test_from_base_tolerates_nan_inputs() -> None:
    synthesizer = MetricSynthesizer(rng=random.Random(3))

    reading = synthesizer.from_base(_base(concentration_ppm=math.nan))

    assert reading.infrared_accuracy == pytest.approx(80.0)
    assert math.isfinite(reading.fused_accuracy)
    assert math.isnan(reading.concentration_ppm)


def test_fuse_never_worse_than_best_channel() -> None:
    synthesizer = MetricSynthesizer()

    assert synthesizer.fuse(95.0, 60.0) == pytest.approx(95.0)
    assert synthesizer.fuse(90.0, 88.0) == pytest.approx(92.0)
    # Ceiling wins over the blend.
    assert synthesizer.fuse(97.0, 97.0) == pytest.approx(98.0)


def test_unified_variant_uses_its_own_profile() -> None:
    synthesizer = MetricSynthesizer(variant=ScoringVariant.unified_ai_fusion)

    assert synthesizer.fuse(90.0, 88.0) == pytest.approx(95.0)
    assert synthesizer.fuse(95.0, 95.0) == pytest.approx(97.0)


@pytest.mark.parametrize("variant", list(ScoringVariant))
def test_perturbed_readings_stay_in_bounds(variant: ScoringVariant) -> None:
    synthesizer = MetricSynthesizer(variant=variant, rng=random.Random(11))
    profile = VARIANT_PROFILES[variant]
    reading = synthesizer.from_base(_base(battery_status=3, concentration_ppm=0.1))
    start = reading.timestamp

    for step in range(200):
        reading = synthesizer.perturb(reading, start + timedelta(seconds=3 * (step + 1)))
        for score in (
            reading.laser_accuracy,
            reading.infrared_accuracy,
            reading.fused_accuracy,
            reading.laser_signal_strength,
            reading.infrared_signal_strength,
            reading.detection_confidence,
        ):
            assert 0.0 <= score <= 100.0
        assert reading.fused_accuracy >= min(
            profile.fusion_ceiling, max(reading.laser_accuracy, reading.infrared_accuracy)
        ) - 1e-9
        assert 0 <= reading.battery_status <= 100
        assert reading.particle_size_microns >= 1.0
        assert reading.concentration_ppm >= 0.0
        assert 20.0 <= reading.sensor_temperature <= 35.0
        assert 0.0 <= reading.water_turbidity <= 0.5


def test_perturb_keeps_position_and_identity() -> None:
    synthesizer = MetricSynthesizer(rng=random.Random(5))
    previous = synthesizer.from_base(_base())
    later = previous.timestamp + timedelta(seconds=3)

    reading = synthesizer.perturb(previous, later)

    assert reading.timestamp == later
    assert reading.boat_id == previous.boat_id
    assert (reading.gps_lat, reading.gps_long) == (previous.gps_lat, previous.gps_long)
    assert reading.depth_cm == previous.depth_cm
    assert reading.power_source is previous.power_source
    assert abs(reading.battery_status - previous.battery_status) <= 2


def test_seeded_synthesizers_are_deterministic() -> None:
    first = MetricSynthesizer(rng=random.Random(7))
    second = MetricSynthesizer(rng=random.Random(7))
    later = datetime(2024, 9, 15, 1, tzinfo=timezone.utc)

    a = first.perturb(first.from_base(_base()), later)
    b = second.perturb(second.from_base(_base()), later)

    assert a == b
