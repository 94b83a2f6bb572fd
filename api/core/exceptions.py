from typing import Any, Dict, Optional
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import get_settings
from utils.logging import get_logger

logger = get_logger(__name__)


def _application_error_code() -> int:
    return get_settings().APPLICATION_ERROR_CODE


class BaseAPIException(Exception):
    """Base exception class for API errors, rendered as {"error": message}"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseAPIException):
    """Validation error exception"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class AuthenticationError(BaseAPIException):
    """Missing, invalid or expired session token"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_ERROR"
        )


class AuthorizationError(BaseAPIException):
    """Authenticated account lacks the required role"""

    def __init__(self, message: str = "Insufficient permissions", status_code: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=status_code or _application_error_code(),
            error_code="AUTHORIZATION_ERROR"
        )


class DuplicateEmailError(BaseAPIException):
    """An account with this email already exists"""

    def __init__(self, message: str = "Email is taken", status_code: int = 400):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="DUPLICATE_EMAIL"
        )


class NotFoundError(BaseAPIException):
    """Account (or reset link) not found"""

    def __init__(self, message: str = "Resource not found", status_code: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=status_code or _application_error_code(),
            error_code="NOT_FOUND_ERROR"
        )


class InvalidCredentialError(BaseAPIException):
    """Password does not match the stored hash"""

    def __init__(self, message: str = "Invalid credentials", status_code: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=status_code or _application_error_code(),
            error_code="INVALID_CREDENTIAL"
        )


class ExpiredOrInvalidTokenError(BaseAPIException):
    """Activation/reset token failed signature, payload or expiry checks"""

    def __init__(self, message: str = "Invalid or expired token", status_code: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=status_code or _application_error_code(),
            error_code="EXPIRED_OR_INVALID_TOKEN"
        )


class DeliveryError(BaseAPIException):
    """Email could not be delivered"""

    def __init__(self, message: str = "Email delivery failed", status_code: int = 422):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="DELIVERY_ERROR"
        )


class PersistenceError(BaseAPIException):
    """Account store write failed"""

    def __init__(self, message: str = "Persistence failed", status_code: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=status_code or _application_error_code(),
            error_code="PERSISTENCE_ERROR"
        )


async def base_api_exception_handler(request: Request, exc: BaseAPIException) -> JSONResponse:
    """Handler for BaseAPIException and subclasses"""

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"API Exception: {exc.error_code} - {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handler for HTTPException"""

    logger.warning(
        f"HTTP Exception: {exc.status_code} - {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for RequestValidationError"""

    errors = exc.errors()
    logger.warning(
        f"Validation Error: {len(errors)} error(s)",
        extra={"path": request.url.path}
    )

    message = "Request validation failed"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))

    return JSONResponse(
        status_code=422,
        content={"error": message}
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for all other exceptions"""

    logger.error(
        f"Unhandled Exception: {type(exc).__name__}: {exc}",
        extra={"path": request.url.path},
        exc_info=exc
    )

    return JSONResponse(
        status_code=500,
        content={"error": "An internal error occurred"}
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app"""

    app.add_exception_handler(BaseAPIException, base_api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered successfully")
