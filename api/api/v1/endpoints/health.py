from fastapi import APIRouter, HTTPException
import time

from config.database import test_connection
from config.settings import get_settings
from models.schemas.responses.health import (
    BasicHealthResponse,
    ReadinessResponse,
    LivenessResponse,
    HealthStatus,
)
from utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=BasicHealthResponse)
async def health_check():
    """Basic health check endpoint"""
    settings = get_settings()
    return BasicHealthResponse(
        status=HealthStatus.HEALTHY,
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENV,
        timestamp=time.time(),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check():
    """Readiness probe: database reachable"""
    if not await test_connection():
        logger.error("Readiness check failed: database not reachable")
        raise HTTPException(status_code=503, detail="Service not ready")
    return ReadinessResponse(status=HealthStatus.READY, timestamp=time.time())


@router.get("/live", response_model=LivenessResponse)
async def liveness_check():
    """Liveness probe"""
    return LivenessResponse(status=HealthStatus.ALIVE, timestamp=time.time())
