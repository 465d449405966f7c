"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if the process is up (liveness)
    - GET /health/ready returns 503 if the database is unreachable (readiness)
    - The face service is reported but never decides readiness

Design Decisions:
    - db_manager read through the module at call time: it is created in the
      lifespan, after this module is imported
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from cctv_api.infrastructure import database
from cctv_api.infrastructure.face_client import ResilientFaceClient, get_face_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "cctv-analytics-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(face_client: ResilientFaceClient = Depends(get_face_client)):
    """Readiness probe: database connectivity, plus face service status for information."""
    db_ok = await database.db_manager.health_check() if database.db_manager else False
    face_ok = await face_client.health_check()
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "faceService": "healthy" if face_ok else "unavailable",
    }
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
