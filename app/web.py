from __future__ import annotations

import random
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from app.api import get_preferences, get_queries, get_service
from app.schemas import DashboardPreferences
from datastore.preferences import PreferencesStore
from models.records import TECHNICAL_SPECS
from models.reference import (
    CHANNEL_LABELS,
    FUSION_STEPS,
    PROCESSING_PIPELINE,
    technical_document,
)
from services import analytics
from services.queries import FleetQueries
from services.telemetry import TelemetryService


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

_health_rng = random.Random()

_BOOLEAN_PREFERENCES = ("auto_export", "notifications", "dark_mode", "auto_refresh")

METRIC_UNITS = {"concentration": "ppm", "particle_size": "μm", "volume": "ml"}

router = APIRouter(include_in_schema=False)


def _selected_boat(service: TelemetryService, boat: Optional[str]) -> str:
    boat_ids = service.boat_ids
    if boat and boat in boat_ids:
        return boat
    return boat_ids[0] if boat_ids else "B1"


def _base_context(service: TelemetryService, preferences: PreferencesStore) -> Dict[str, Any]:
    return {
        "boat_ids": service.boat_ids,
        "last_update": service.last_update,
        "is_connected": service.is_connected,
        "preferences": preferences.get(),
        "labels": CHANNEL_LABELS[service.synthesizer.variant],
    }


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    service: TelemetryService = Depends(get_service),
    queries: FleetQueries = Depends(get_queries),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse:
    context = _base_context(service, preferences)
    boat_ids = context["boat_ids"]
    prefs: DashboardPreferences = context["preferences"]
    readings = service.store.snapshot()
    latest = queries.latest_readings(boat_ids)
    now = service.clock()

    overview = [queries.dual_ray_status(boat_id) for boat_id in boat_ids]
    context.update(
        {
            "sensor_overview": analytics.sensor_overview(overview, latest, len(readings)),
            "boats": [
                {
                    "boat_id": boat_id,
                    "status": queries.boat_status(boat_id, now=now),
                    "reading": queries.latest_reading(boat_id),
                }
                for boat_id in boat_ids
            ],
            "metrics": analytics.fleet_metrics(latest),
            "trends": {
                boat_id: analytics.concentration_trend(service.store.history(boat_id, limit=10))
                for boat_id in boat_ids
            },
            "alerts": analytics.build_alerts(
                latest,
                high_concentration=prefs.high_concentration_threshold,
                low_battery=prefs.low_battery_threshold,
                large_particle=prefs.large_particle_threshold,
                now=now,
            ),
            "health": analytics.system_health(readings, now, _health_rng),
        }
    )
    return templates.TemplateResponse(request, "ui/index.html", context)


@router.get("/ui/map", name="ui_map", response_class=HTMLResponse)
async def ui_map(
    request: Request,
    selected: Optional[str] = None,
    heatmap: bool = True,
    service: TelemetryService = Depends(get_service),
    queries: FleetQueries = Depends(get_queries),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse:
    context = _base_context(service, preferences)
    now = service.clock()
    positions = [
        (reading, queries.boat_status(reading.boat_id, now=now))
        for reading in queries.latest_readings(context["boat_ids"])
    ]
    markers = analytics.map_markers(positions)
    context.update(
        {
            "markers": markers,
            "selected": next((m for m in markers if m.boat_id == selected), None),
            "heatmap": heatmap,
        }
    )
    return templates.TemplateResponse(request, "ui/map.html", context)


@router.get("/ui/analytics", name="ui_analytics", response_class=HTMLResponse)
async def ui_analytics(
    request: Request,
    time_range: str = Query("24h", alias="range"),
    metric: str = "concentration",
    service: TelemetryService = Depends(get_service),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse:
    if time_range not in analytics.TIME_RANGES:
        time_range = "24h"
    if metric not in METRIC_UNITS:
        metric = "concentration"
    context = _base_context(service, preferences)
    readings = service.store.snapshot()
    hourly = analytics.hourly_series(readings, time_range, service.clock())
    values = [
        {
            "concentration": point.avg_concentration,
            "particle_size": point.avg_particle_size,
            "volume": float(point.total_volume),
        }[metric]
        for point in hourly
    ]
    peak = max(values) if values else 0.0
    context.update(
        {
            "time_range": time_range,
            "time_ranges": list(analytics.TIME_RANGES),
            "metric": metric,
            "unit": METRIC_UNITS[metric],
            "bars": [
                {"hour": point.hour, "value": value, "height": (value / peak * 100) if peak else 0}
                for point, value in zip(hourly, values)
            ],
            "stats": analytics.concentration_statistics(readings),
            "comparison": analytics.boat_comparison(readings, context["boat_ids"]),
            "zones": analytics.impact_zones(readings),
        }
    )
    return templates.TemplateResponse(request, "ui/analytics.html", context)


@router.get("/ui/fusion", name="ui_fusion", response_class=HTMLResponse)
async def ui_fusion(
    request: Request,
    boat: Optional[str] = None,
    details: bool = False,
    calibration: bool = False,
    service: TelemetryService = Depends(get_service),
    queries: FleetQueries = Depends(get_queries),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse:
    selected = _selected_boat(service, boat)
    context = _base_context(service, preferences)
    context.update(
        {
            "selected": selected,
            "details": details,
            "calibration": calibration,
            "dual_ray": queries.dual_ray_status(selected),
            "latest": queries.latest_reading(selected),
            "technical": queries.technical_detail(selected),
            "validation": queries.validate_sensor_accuracy(selected),
            "pipeline": PROCESSING_PIPELINE,
            "fusion_steps": FUSION_STEPS,
            "specs": TECHNICAL_SPECS,
        }
    )
    return templates.TemplateResponse(request, "ui/fusion.html", context)


@router.get("/ui/technical", name="ui_technical", response_class=HTMLResponse)
async def ui_technical(
    request: Request,
    boat: Optional[str] = None,
    service: TelemetryService = Depends(get_service),
    queries: FleetQueries = Depends(get_queries),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse:
    selected = _selected_boat(service, boat)
    context = _base_context(service, preferences)
    context.update(
        {
            "selected": selected,
            "latest": queries.latest_reading(selected),
            "technical": queries.technical_detail(selected),
            "validation": queries.validate_sensor_accuracy(selected),
            "specs": TECHNICAL_SPECS,
        }
    )
    return templates.TemplateResponse(request, "ui/technical.html", context)


@router.get("/ui/settings", name="ui_settings", response_class=HTMLResponse)
async def ui_settings(
    request: Request,
    saved: bool = False,
    service: TelemetryService = Depends(get_service),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse:
    context = _base_context(service, preferences)
    context.update({"saved": saved, "errors": []})
    return templates.TemplateResponse(request, "ui/settings.html", context)


@router.post("/ui/settings", name="ui_settings_save", response_model=None)
async def ui_settings_save(
    request: Request,
    service: TelemetryService = Depends(get_service),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse | RedirectResponse:
    form = await request.form()
    patch: Dict[str, Any] = {
        name: value
        for name, value in form.items()
        if name in DashboardPreferences.model_fields and name not in _BOOLEAN_PREFERENCES
    }
    # Unchecked checkboxes are absent from the form body.
    for name in _BOOLEAN_PREFERENCES:
        patch[name] = name in form
    try:
        preferences.update(patch)
    except ValidationError as exc:
        context = _base_context(service, preferences)
        context.update(
            {
                "saved": False,
                "errors": [
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                ],
            }
        )
        return templates.TemplateResponse(
            request, "ui/settings.html", context, status_code=status.HTTP_400_BAD_REQUEST
        )
    return RedirectResponse(
        url=str(request.url_for("ui_settings")) + "?saved=true",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.post("/ui/settings/reset", name="ui_settings_reset")
async def ui_settings_reset(
    request: Request,
    preferences: PreferencesStore = Depends(get_preferences),
) -> RedirectResponse:
    preferences.reset()
    return RedirectResponse(
        url=str(request.url_for("ui_settings")), status_code=status.HTTP_303_SEE_OTHER
    )


@router.get("/ui/docs", name="ui_docs", response_class=HTMLResponse)
async def ui_docs(
    request: Request,
    service: TelemetryService = Depends(get_service),
    preferences: PreferencesStore = Depends(get_preferences),
) -> HTMLResponse:
    context = _base_context(service, preferences)
    context.update({"document": technical_document(), "specs": TECHNICAL_SPECS})
    return templates.TemplateResponse(request, "ui/docs.html", context)


@router.get("/ui/docs/download", name="ui_docs_download")
async def ui_docs_download() -> PlainTextResponse:
    return PlainTextResponse(
        technical_document(),
        media_type="text/markdown",
        headers={
            "Content-Disposition": 'attachment; filename="dual-ray-sensor-technical-documentation.md"'
        },
    )
