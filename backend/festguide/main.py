"""Main FastAPI application for attendee notifications."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import async_session, init_db, close_db
from .errors import ForbiddenError, NotFoundError
from .routers import devices_router, notifications_router, internal_router
from .services.container import NotificationServices, build_services
from .services.push_provider import PushConfig, build_push_provider
from .services.scheduler import SchedulerService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting FestGuide notifications")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    provider = build_push_provider(PushConfig(
        enabled=settings.apns_enabled,
        key_path=settings.apns_key_path,
        key_id=settings.apns_key_id,
        team_id=settings.apns_team_id,
        bundle_id=settings.apns_bundle_id,
        use_sandbox=settings.apns_use_sandbox,
    ))
    services = build_services(
        async_session,
        provider,
        batch_size=settings.delivery_batch_size,
        page_size=settings.audience_page_size,
    )
    app.state.services = services

    scheduler_service = SchedulerService(
        services.history,
        retention_days=settings.log_retention_days,
        interval_hours=settings.log_cleanup_interval_hours,
    )
    scheduler_service.start()

    yield

    # Shutdown
    scheduler_service.stop()
    await provider.close()
    await close_db()
    logger.info("Shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors onto HTTP responses."""

    @app.exception_handler(ForbiddenError)
    async def forbidden_handler(request: Request, exc: ForbiddenError):
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})


def create_app(
    services: Optional[NotificationServices] = None,
    internal_secret: Optional[str] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing prebuilt services skips the startup lifespan (database creation,
    provider setup, scheduler), which is how tests run the API.
    """
    app = FastAPI(
        title="FestGuide Notifications",
        description="Device registration, notification preferences and schedule change delivery",
        version="1.0.0",
        lifespan=lifespan if services is None else None,
    )
    app.state.services = services
    app.state.internal_secret = internal_secret if internal_secret is not None else settings.internal_secret

    # CORS middleware for the attendee web app
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to your domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(devices_router)
    app.include_router(notifications_router)
    app.include_router(internal_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
