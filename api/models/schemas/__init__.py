"""
Schemas package for API data models
All Pydantic models for request/response validation
"""

from .request.auth import (
    RegisterRequest,
    ActivateRequest,
    LoginRequest,
    ForgetPasswordRequest,
    ResetPasswordRequest,
)

from .responses.auth import (
    MessageResponse,
    PublicUser,
    LoginResponse,
)

from .responses.health import (
    BasicHealthResponse,
    ReadinessResponse,
    LivenessResponse,
    HealthStatus,
)
