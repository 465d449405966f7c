"""CCTV Analytics API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly, one router per resource
    - Global error handlers render every failure as the {success: false, ...} envelope
    - CORS configured from settings (not hardcoded)
    - Database initialized and upload directory created on startup via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Uploads served from /static; the mount skips the directory check because
      the directory is created in the lifespan
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from cctv_api.api.error_handlers import register_error_handlers
from cctv_api.api.routes import (
    activity_monitoring, auth, cctv, health, milvus, primary_analytics, roles,
    servers, type_analytic, weapon_detection,
)
from cctv_api.config import get_settings
from cctv_api.infrastructure import database
from cctv_api.infrastructure.database import init_db
from cctv_api.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    os.makedirs(settings.upload_dir, exist_ok=True)
    logger.info(f"CCTV Analytics API started ({settings.environment})")
    yield
    if database.db_manager is not None:
        await database.db_manager.dispose()
    logger.info("CCTV Analytics API shutting down")


app = FastAPI(title="CCTV Analytics API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(roles.router)
app.include_router(servers.router)
app.include_router(type_analytic.router)
app.include_router(primary_analytics.router)
app.include_router(cctv.router)
app.include_router(activity_monitoring.router)
app.include_router(weapon_detection.router)
app.include_router(milvus.router)

app.mount(
    "/static", StaticFiles(directory=settings.upload_dir, check_dir=False), name="static",
)

register_error_handlers(app)
