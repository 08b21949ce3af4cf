"""Health check endpoints for Kubernetes probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check():
    """
    Liveness probe. Returns 200 OK if the process is serving requests.
    """
    return {"status": "healthy", "service": "task-manager-api"}


@router.get("/ready")
def readiness_check(request: Request):
    """
    Readiness probe. Returns 200 OK once the database answers a trivial query,
    503 otherwise.
    """
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "service": "task-manager-api"},
        )
    return {"status": "ready", "service": "task-manager-api"}
