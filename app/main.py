from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.web import router as web_router
from logging_config import configure_logging
from services.telemetry import build_default_service

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the synthesis ticker for as long as the app serves requests."""
    service = build_default_service()
    app.state.telemetry = service
    service.start()
    logger.info(
        "Telemetry ticker started",
        extra={"variant": service.synthesizer.variant, "reading_count": len(service.store)},
    )
    try:
        yield
    finally:
        service.stop()
        build_default_service.cache_clear()
        logger.info("Telemetry ticker stopped")


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Dual Ray Swarm",
        description="Telemetry dashboard for a fleet of dual-wavelength microplastic detection boats.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    app.include_router(router)
    app.include_router(web_router)
    return app


app = create_app()
