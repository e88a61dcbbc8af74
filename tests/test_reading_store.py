import random
from datetime import datetime, timedelta, timezone

import pytest

from models.records import BaseFields, PowerSource, Reading
from services.synthesizer import MetricSynthesizer
from storage.reading_store import ReadingStore

_START = datetime(2024, 9, 15, tzinfo=timezone.utc)
_SYNTHESIZER = MetricSynthesizer(rng=random.Random(0))


def _reading(boat_id: str, minute: int) -> Reading:
    return _SYNTHESIZER.from_base(
        BaseFields(
            timestamp=_START + timedelta(minutes=minute),
            boat_id=boat_id,
            gps_lat=19.0,
            gps_long=72.85,
            particle_size_microns=20.0,
            concentration_ppm=1.5,
            depth_cm=100,
            collection_volume_ml=200,
            battery_status=80,
            power_source=PowerSource.hydro,
        )
    )


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        ReadingStore(capacity=0)


def test_latest_and_history_per_boat() -> None:
    store = ReadingStore()
    store.extend([_reading("B1", 0), _reading("B2", 1), _reading("B1", 2)])

    latest = store.latest("B1")
    assert latest is not None
    assert latest.timestamp == _START + timedelta(minutes=2)
    assert [r.timestamp.minute for r in store.history("B1")] == [0, 2]
    assert store.latest("B9") is None
    assert store.history("B9") == []
    assert store.boat_ids() == ["B1", "B2"]
    assert len(store) == 3


def test_history_limit_returns_most_recent() -> None:
    store = ReadingStore()
    store.extend(_reading("B1", minute) for minute in range(6))

    assert [r.timestamp.minute for r in store.history("B1", limit=3)] == [3, 4, 5]
    assert store.history("B1", limit=0) == []


def test_evicts_oldest_readings_across_boats() -> None:
    store = ReadingStore(capacity=3)
    assert store.extend([_reading("B1", 0), _reading("B2", 1), _reading("B1", 2)]) == 0

    evicted = store.append(_reading("B2", 3))

    assert evicted == 1
    assert len(store) == 3
    assert [(r.boat_id, r.timestamp.minute) for r in store.snapshot()] == [
        ("B2", 1),
        ("B1", 2),
        ("B2", 3),
    ]
    assert [r.timestamp.minute for r in store.history("B1")] == [2]


def test_eviction_can_empty_a_boat_history() -> None:
    store = ReadingStore(capacity=2)
    store.extend([_reading("B1", 0), _reading("B2", 1), _reading("B2", 2)])

    assert store.latest("B1") is None
    assert store.boat_ids() == ["B2"]


def test_snapshot_is_a_copy() -> None:
    store = ReadingStore()
    store.append(_reading("B1", 0))

    snapshot = store.snapshot()
    snapshot.clear()

    assert len(store) == 1


def test_clear_empties_everything() -> None:
    store = ReadingStore()
    store.extend([_reading("B1", 0), _reading("B2", 1)])

    store.clear()

    assert len(store) == 0
    assert store.boat_ids() == []
