"""Liveness and readiness endpoints."""

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core.database import CONNECTED, Database, get_database

router = APIRouter(tags=["health"])


def _uptime(request: Request) -> float:
    return round(time.monotonic() - request.app.state.started_at, 3)


@router.get("/health")
def health_check(request: Request, database: Database = Depends(get_database)) -> dict:
    """Liveness: the server answers, with the database state for information."""
    return {
        "status": "success",
        "message": "Server is running",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime": _uptime(request),
        "database": database.get_connection_status(),
    }


@router.get("/healthcheck")
def readiness_check(request: Request, database: Database = Depends(get_database)) -> JSONResponse:
    """Readiness: 200 only while the database is reachable."""
    db_status = database.get_connection_status()
    healthy = db_status == CONNECTED
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if healthy else "error",
            "timestamp": datetime.now(UTC).isoformat(),
            "uptime": _uptime(request),
            "database": db_status,
        },
    )
