from pydantic import BaseModel, ConfigDict
from enum import Enum


class HealthStatus(str, Enum):
    """Health states"""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    READY = "ready"
    ALIVE = "alive"


class BasicHealthResponse(BaseModel):
    """Basic health check response"""
    status: HealthStatus
    service: str
    version: str
    environment: str
    timestamp: float

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "service": "Account Service",
                "version": "1.0.0",
                "environment": "development",
                "timestamp": 1699123456.789
            }
        }
    )


class ReadinessResponse(BaseModel):
    """Readiness probe response"""
    status: HealthStatus
    timestamp: float


class LivenessResponse(BaseModel):
    """Liveness probe response"""
    status: HealthStatus
    timestamp: float
