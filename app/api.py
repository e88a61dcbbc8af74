"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError

from app.schemas import (
    AccuracySummaryOut,
    AlertOut,
    AnalyticsSummary,
    BoatComparisonOut,
    BoatStatusOut,
    ConcentrationStatisticsOut,
    DashboardPreferences,
    DualRayStatusOut,
    FleetEntry,
    FleetOverview,
    HourlyPointOut,
    ImpactZonesOut,
    ReadingOut,
    TechnicalSpecificationOut,
    ValidationReportOut,
)
from datastore.preferences import PreferencesStore, build_default_preferences
from models.records import TECHNICAL_SPECS
from services import analytics
from services.queries import FleetQueries
from services.telemetry import TelemetryService, build_default_service

router = APIRouter()


def get_service() -> TelemetryService:
    return build_default_service()


def get_preferences() -> PreferencesStore:
    return build_default_preferences()


def get_queries(service: TelemetryService = Depends(get_service)) -> FleetQueries:
    return FleetQueries(
        store=service.store,
        thresholds=service.synthesizer.thresholds,
        variant=service.synthesizer.variant,
        clock=service.clock,
    )


def _reading_out(reading) -> Optional[ReadingOut]:
    return ReadingOut.model_validate(reading) if reading is not None else None


@router.get(
    "/fleet",
    response_model=FleetOverview,
    summary="Status, accuracy and latest reading for every known boat.",
)
async def fleet_overview(
    service: TelemetryService = Depends(get_service),
    queries: FleetQueries = Depends(get_queries),
) -> FleetOverview:
    entries = []
    for boat_id in service.boat_ids:
        entries.append(
            FleetEntry(
                boat_id=boat_id,
                status=queries.boat_status(boat_id),
                reading_count=len(service.store.history(boat_id)),
                accuracy=AccuracySummaryOut.model_validate(queries.sensor_accuracy(boat_id)),
                latest=_reading_out(queries.latest_reading(boat_id)),
            )
        )
    return FleetOverview(
        boats=entries,
        total_readings=len(service.store),
        last_update=service.last_update,
        is_connected=service.is_connected,
    )


@router.get(
    "/readings",
    response_model=List[ReadingOut],
    summary="Reading history, optionally limited to one boat.",
)
async def list_readings(
    boat_id: Optional[str] = Query(None, description="Only return readings for this boat."),
    limit: int = Query(100, ge=1, le=1000),
    service: TelemetryService = Depends(get_service),
) -> List[ReadingOut]:
    if boat_id is None:
        readings = service.store.snapshot()[-limit:]
    else:
        readings = service.store.history(boat_id, limit=limit)
    return [ReadingOut.model_validate(reading) for reading in readings]


@router.get("/boats/{boat_id}/latest", response_model=Optional[ReadingOut])
async def latest_reading(
    boat_id: str, queries: FleetQueries = Depends(get_queries)
) -> Optional[ReadingOut]:
    return _reading_out(queries.latest_reading(boat_id))


@router.get("/boats/{boat_id}/accuracy", response_model=AccuracySummaryOut)
async def sensor_accuracy(
    boat_id: str, queries: FleetQueries = Depends(get_queries)
) -> AccuracySummaryOut:
    return AccuracySummaryOut.model_validate(queries.sensor_accuracy(boat_id))


@router.get("/boats/{boat_id}/status", response_model=BoatStatusOut)
async def boat_status(
    boat_id: str, queries: FleetQueries = Depends(get_queries)
) -> BoatStatusOut:
    return BoatStatusOut(boat_id=boat_id, status=queries.boat_status(boat_id))


@router.get(
    "/boats/{boat_id}/validation",
    response_model=Optional[ValidationReportOut],
    summary="Rolling-window accuracy validation; null until enough readings exist.",
)
async def validate_sensor_accuracy(
    boat_id: str,
    window: int = Query(10, ge=5, le=100),
    queries: FleetQueries = Depends(get_queries),
) -> Optional[ValidationReportOut]:
    report = queries.validate_sensor_accuracy(boat_id, window=window)
    return ValidationReportOut.model_validate(report) if report is not None else None


@router.get("/boats/{boat_id}/technical", response_model=Optional[Dict[str, Any]])
async def technical_detail(
    boat_id: str, queries: FleetQueries = Depends(get_queries)
) -> Optional[Dict[str, Any]]:
    return queries.technical_detail(boat_id)


@router.get("/boats/{boat_id}/dual-ray", response_model=DualRayStatusOut)
async def dual_ray_status(
    boat_id: str, queries: FleetQueries = Depends(get_queries)
) -> DualRayStatusOut:
    return DualRayStatusOut.model_validate(queries.dual_ray_status(boat_id))


@router.get("/analytics/summary", response_model=AnalyticsSummary)
async def analytics_summary(
    time_range: str = Query("24h", alias="range"),
    service: TelemetryService = Depends(get_service),
) -> AnalyticsSummary:
    if time_range not in analytics.TIME_RANGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported range {time_range!r}; use one of {', '.join(analytics.TIME_RANGES)}.",
        )
    readings = service.store.snapshot()
    boat_ids = service.boat_ids
    stats = analytics.concentration_statistics(readings)
    return AnalyticsSummary(
        time_range=time_range,
        statistics=ConcentrationStatisticsOut.model_validate(stats) if stats else None,
        hourly=[
            HourlyPointOut.model_validate(point)
            for point in analytics.hourly_series(readings, time_range, service.clock())
        ],
        zones=ImpactZonesOut.model_validate(analytics.impact_zones(readings)),
        boats=[
            BoatComparisonOut.model_validate(row)
            for row in analytics.boat_comparison(readings, boat_ids)
        ],
        trends={
            boat_id: analytics.concentration_trend(service.store.history(boat_id, limit=10))
            for boat_id in boat_ids
        },
    )


@router.get("/alerts", response_model=List[AlertOut])
async def list_alerts(
    service: TelemetryService = Depends(get_service),
    queries: FleetQueries = Depends(get_queries),
    preferences: PreferencesStore = Depends(get_preferences),
) -> List[AlertOut]:
    prefs = preferences.get()
    alerts = analytics.build_alerts(
        queries.latest_readings(service.boat_ids),
        high_concentration=prefs.high_concentration_threshold,
        low_battery=prefs.low_battery_threshold,
        large_particle=prefs.large_particle_threshold,
        now=service.clock(),
    )
    return [AlertOut.model_validate(alert) for alert in alerts]


@router.get("/specs", response_model=TechnicalSpecificationOut)
async def technical_specs() -> TechnicalSpecificationOut:
    return TechnicalSpecificationOut.model_validate(TECHNICAL_SPECS)


@router.get(
    "/export",
    summary="Download the full in-memory reading history as CSV.",
    response_class=Response,
)
async def export_readings(service: TelemetryService = Depends(get_service)) -> Response:
    return Response(
        content=service.export_csv(),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{service.export_filename()}"'
        },
    )


@router.get("/preferences", response_model=DashboardPreferences)
async def read_preferences(
    preferences: PreferencesStore = Depends(get_preferences),
) -> DashboardPreferences:
    return preferences.get()


@router.put("/preferences", response_model=DashboardPreferences)
async def update_preferences(
    patch: Dict[str, Any] = Body(...),
    preferences: PreferencesStore = Depends(get_preferences),
) -> DashboardPreferences:
    try:
        return preferences.update(patch)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc


@router.post("/preferences/reset", response_model=DashboardPreferences)
async def reset_preferences(
    preferences: PreferencesStore = Depends(get_preferences),
) -> DashboardPreferences:
    return preferences.reset()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(service: TelemetryService = Depends(get_service)) -> dict[str, str]:
    return {
        "status": "ok",
        "ticker": "running" if service.is_running else "stopped",
    }


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status and /ui for the dashboard."}
