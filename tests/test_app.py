import csv
import io
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, Optional

import pytest
from fastapi.testclient import TestClient

from app import main as app_main
from app.main import STATIC_DIR, create_app
from datastore.preferences import PreferencesStore
from services.csv_codec import FIELDNAMES
from services.synthesizer import MetricSynthesizer
from services.telemetry import TelemetryService, build_default_service
from storage.reading_store import ReadingStore

_NOW = datetime(2024, 9, 15, 12, 0, tzinfo=timezone.utc)

_CSV = f"""{",".join(FIELDNAMES)}
2024-09-15T11:55:00Z,B1,19.0107,72.8166,53.3,2.11,57,105,88,solar
2024-09-15T11:56:00Z,B2,19.0827,72.8873,26.1,0.12,85,115,12,hydro
2024-09-15T11:57:00Z,B1,19.0110,72.8170,40.0,4.90,60,110,87,solar
"""


@pytest.fixture
def service_factory(tmp_path, monkeypatch):
    services: Dict[Optional[int], TelemetryService] = {}
    csv_path = tmp_path / "snapshot.csv"
    csv_path.write_text(_CSV, encoding="utf-8")

    def build_test_service(seed: Optional[int] = None) -> TelemetryService:
        service = services.get(seed)
        if service is None:
            service = TelemetryService(
                store=ReadingStore(capacity=1000),
                synthesizer=MetricSynthesizer(rng=random.Random(seed or 0)),
                csv_path=csv_path,
                fleet=("B1", "B2", "B3"),
                tick_interval=60.0,
                clock=lambda: _NOW,
            )
            service.load_initial()
            services[seed] = service
        return service

    def cache_clear() -> None:
        while services:
            _, service = services.popitem()
            service.stop()

    build_test_service.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)
    monkeypatch.setattr("services.telemetry.build_default_service", build_test_service)

    preferences = PreferencesStore()
    monkeypatch.setattr("app.api.build_default_preferences", lambda: preferences)

    yield build_test_service

    cache_clear()


@pytest.fixture
def api_client(service_factory) -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_stops_service_and_clears_cache() -> None:
    app = create_app()

    with TestClient(app):
        service_during = build_default_service()
        assert service_during.is_running

    assert not service_during.is_running
    service_after = build_default_service()
    try:
        assert service_after is not service_during
    finally:
        service_after.stop()
        build_default_service.cache_clear()


def test_health(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "ticker": "running"}


def test_fleet_overview(api_client: TestClient) -> None:
    response = api_client.get("/fleet")

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_readings"] == 3
    assert payload["is_connected"] is True
    boats = {boat["boat_id"]: boat for boat in payload["boats"]}
    assert list(boats) == ["B1", "B2", "B3"]
    assert boats["B1"]["status"] == "active"
    assert boats["B1"]["reading_count"] == 2
    assert boats["B2"]["status"] == "warning"
    assert boats["B3"]["status"] == "offline"
    assert boats["B3"]["latest"] is None
    assert boats["B3"]["accuracy"] == {"laser": 0.0, "infrared": 0.0, "fused": 0.0}


def test_readings_filter_and_limit(api_client: TestClient) -> None:
    response = api_client.get("/readings", params={"boat_id": "B1", "limit": 1})

    assert response.status_code == 200
    readings = response.json()
    assert len(readings) == 1
    assert readings[0]["boat_id"] == "B1"
    assert readings[0]["concentration_ppm"] == pytest.approx(4.9)


def test_boat_endpoints(api_client: TestClient) -> None:
    latest = api_client.get("/boats/B1/latest").json()
    assert latest["timestamp"].startswith("2024-09-15T11:57:00")

    accuracy = api_client.get("/boats/B1/accuracy").json()
    assert accuracy["fused"] >= max(accuracy["laser"], accuracy["infrared"])

    assert api_client.get("/boats/B2/status").json() == {"boat_id": "B2", "status": "warning"}
    assert api_client.get("/boats/B9/latest").json() is None

    technical = api_client.get("/boats/B1/technical").json()
    assert technical["laser"]["wavelength"] == 650

    dual_ray = api_client.get("/boats/B3/dual-ray").json()
    assert dual_ray["laser"]["status"] == "offline"
    assert dual_ray["unified"]["accuracy"] == 0.0


def test_validation_is_null_until_enough_readings(api_client, service_factory) -> None:
    assert api_client.get("/boats/B1/validation").json() is None

    service = service_factory()
    for _ in range(4):
        service.tick()

    report = api_client.get("/boats/B1/validation").json()
    assert report["sample_count"] == 6
    assert report["fusion"]["recommendation"]


def test_analytics_summary(api_client: TestClient) -> None:
    response = api_client.get("/analytics/summary", params={"range": "1h"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["time_range"] == "1h"
    assert payload["statistics"]["count"] == 3
    assert [point["hour"] for point in payload["hourly"]] == [11]
    assert payload["zones"] == {"low": 1, "moderate": 1, "high": 1}
    assert [row["boat_id"] for row in payload["boats"]] == ["B1", "B2", "B3"]
    assert set(payload["trends"]) == {"B1", "B2", "B3"}


def test_analytics_rejects_unknown_range(api_client: TestClient) -> None:
    response = api_client.get("/analytics/summary", params={"range": "3w"})

    assert response.status_code == 400
    assert "Unsupported range" in response.json()["detail"]


def test_alerts_follow_preferences(api_client: TestClient) -> None:
    alerts = api_client.get("/alerts").json()
    assert {(alert["boat_id"], alert["level"]) for alert in alerts} == {
        ("B1", "warning"),
        ("B2", "error"),
    }

    api_client.put("/preferences", json={"highConcentrationThreshold": 10})
    alerts = api_client.get("/alerts").json()
    assert [alert["boat_id"] for alert in alerts] == ["B2"]


def test_specs(api_client: TestClient) -> None:
    payload = api_client.get("/specs").json()

    assert payload["laser_wavelength_nm"] == 650
    assert payload["infrared_wavelength_nm"] == 1550
    assert payload["accuracy_validation"]["error_margin"] == 0.05


def test_export_downloads_dated_csv(api_client: TestClient) -> None:
    response = api_client.get("/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert (
        response.headers["content-disposition"]
        == 'attachment; filename="sensor-data-2024-09-15.csv"'
    )
    rows = list(csv.reader(io.StringIO(response.text)))
    assert tuple(rows[0]) == FIELDNAMES
    assert [row[1] for row in rows[1:]] == ["B1", "B2", "B1"]


def test_preferences_round_trip(api_client: TestClient) -> None:
    defaults = api_client.get("/preferences").json()
    assert defaults["lowBatteryThreshold"] == 25

    updated = api_client.put("/preferences", json={"low_battery_threshold": 40, "darkMode": True})
    assert updated.status_code == 200
    assert updated.json()["lowBatteryThreshold"] == 40
    assert updated.json()["darkMode"] is True

    rejected = api_client.put("/preferences", json={"fusionWeight": 5})
    assert rejected.status_code == 422
    assert api_client.get("/preferences").json()["fusionWeight"] == 0.6

    reset = api_client.post("/preferences/reset")
    assert reset.json() == defaults


@pytest.mark.parametrize(
    "path",
    [
        "/ui",
        "/ui/map",
        "/ui/map?selected=B1&heatmap=false",
        "/ui/analytics?range=7d&metric=volume",
        "/ui/analytics?range=bogus&metric=bogus",
        "/ui/fusion?boat=B1&details=true&calibration=true",
        "/ui/fusion?boat=B3",
        "/ui/technical?boat=B1",
        "/ui/technical?boat=B3",
        "/ui/settings",
        "/ui/docs",
    ],
)
def test_ui_pages_render(api_client: TestClient, path: str) -> None:
    response = api_client.get(path)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Dual Ray Swarm" in response.text


def test_ui_dashboard_shows_fleet(api_client: TestClient) -> None:
    body = api_client.get("/ui").text

    assert "B1" in body
    assert "Low battery warning: 12%" in body


def test_ui_dashboard_averages_skip_unparseable_concentration(
    api_client: TestClient, service_factory, tmp_path
) -> None:
    extra = tmp_path / "bad_concentration.csv"
    extra.write_text(
        f"{','.join(FIELDNAMES)}\n"
        "2024-09-15T11:58:00Z,B2,19.0830,72.8870,26.1,oops,85,115,12,hydro\n",
        encoding="utf-8",
    )
    assert service_factory().load_initial(extra) == 1

    body = api_client.get("/ui").text

    assert "nan ppm" not in body
    assert "<dt>Average Concentration</dt><dd>4.90 ppm</dd>" in body


def test_ui_settings_save_and_reset(api_client: TestClient) -> None:
    form = {
        "high_concentration_threshold": "3.5",
        "low_battery_threshold": "30",
        "large_particle_threshold": "50",
        "sampling_interval_sec": "5",
        "retention_days": "14",
        "laser_sensitivity": "90",
        "infrared_baseline": "0.4",
        "fusion_weight": "0.7",
        "dark_mode": "on",
    }

    response = api_client.post("/ui/settings", data=form, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"].endswith("/ui/settings?saved=true")
    prefs = api_client.get("/preferences").json()
    assert prefs["highConcentrationThreshold"] == 3.5
    assert prefs["darkMode"] is True
    assert prefs["autoRefresh"] is False
    assert prefs["notifications"] is False

    reset = api_client.post("/ui/settings/reset", follow_redirects=False)
    assert reset.status_code == 303
    assert api_client.get("/preferences").json()["autoRefresh"] is True


def test_ui_settings_rejects_invalid_values(api_client: TestClient) -> None:
    response = api_client.post("/ui/settings", data={"fusion_weight": "9"})

    assert response.status_code == 400
    assert "fusionWeight" in response.text
    assert api_client.get("/preferences").json()["fusionWeight"] == 0.6


def test_ui_docs_download(api_client: TestClient) -> None:
    response = api_client.get("/ui/docs/download")

    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    assert "650" in response.text


def test_stylesheet_is_served_from_app_package(api_client: TestClient) -> None:
    assert STATIC_DIR.parent == Path(app_main.__file__).resolve().parent
    assert (STATIC_DIR / "style.css").is_file()

    response = api_client.get("/static/style.css")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/css")
