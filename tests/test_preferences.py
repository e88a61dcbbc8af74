import pytest
from pydantic import ValidationError

from app.schemas import DashboardPreferences
from datastore.preferences import PreferencesStore


def test_defaults() -> None:
    prefs = PreferencesStore().get()

    assert prefs == DashboardPreferences()
    assert prefs.high_concentration_threshold == 4.0
    assert prefs.low_battery_threshold == 25
    assert prefs.large_particle_threshold == 60.0
    assert prefs.fusion_weight == 0.6
    assert prefs.dark_mode is False


def test_update_accepts_snake_and_camel_case() -> None:
    store = PreferencesStore()

    updated = store.update({"low_battery_threshold": 30, "darkMode": True})

    assert updated.low_battery_threshold == 30
    assert updated.dark_mode is True
    assert store.get().high_concentration_threshold == 4.0


def test_update_rejects_out_of_range_and_keeps_previous() -> None:
    store = PreferencesStore()
    store.update({"laser_sensitivity": 95})

    with pytest.raises(ValidationError):
        store.update({"laser_sensitivity": 120})
    with pytest.raises(ValidationError):
        store.update({"fusionWeight": 0.0})

    prefs = store.get()
    assert prefs.laser_sensitivity == 95
    assert prefs.fusion_weight == 0.6


def test_get_returns_copies() -> None:
    store = PreferencesStore()

    first = store.get()
    first.retention_days = 999

    assert store.get().retention_days == 30


def test_reset_restores_defaults() -> None:
    store = PreferencesStore()
    store.update({"retentionDays": 7, "notifications": False})

    assert store.reset() == DashboardPreferences()


def test_serializes_with_camel_case_aliases() -> None:
    payload = DashboardPreferences().model_dump(by_alias=True)

    assert payload["highConcentrationThreshold"] == 4.0
    assert payload["notifications"] is True
    assert "high_concentration_threshold" not in payload
