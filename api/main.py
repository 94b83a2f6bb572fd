import time
import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from config.settings import get_settings
from api.v1.router import api_router
from core.exceptions import setup_exception_handlers
from services.send_mail.notification_service import build_notification_sender
from utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


async def _init_db() -> None:
    """Initialize database connections."""
    logger.info("Initializing database connections...")
    from config.database import init_db

    await init_db()


async def _seed_admin() -> None:
    """Create the bootstrap admin account when configured."""
    from config.database import get_db_context
    from services.bootstrap.seed_admin import seed_admin

    async with get_db_context() as session:
        await seed_admin(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: process-wide database and email sender"""
    logger.info("Starting Account Service API...")

    await _init_db()
    logger.info("Database initialized")

    await _seed_admin()

    app.state.notification_sender = build_notification_sender(settings)
    logger.info(f"Notification sender ready: {settings.EMAIL_BACKEND}")

    yield

    logger.info("Shutting down Account Service API...")
    from config.database import close_db

    await close_db()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Account registration, login and password reset API",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Metrics
    Instrumentator().instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with performance tracking"""
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        outcome = "Success" if response.status_code < 400 else "Failed"
        logger.info(
            f"{outcome} {request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {process_time:.4f}s"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True,
    )
