"""FastAPI application entry point."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.routes import auth, health, meters, realtime
from app.core.config import Settings, settings as default_settings
from app.core.database import Database
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import RateLimiter, catch_unhandled_errors, log_requests, security_headers

# Import models so Base.metadata knows every table before create_all
from app.models import meter_reading, user  # noqa: F401
from app.services.geocoder import Geocoder, build_geocoder
from app.services.realtime import ConnectionManager
from app.services.storage import PhotoStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    logger.info("Starting %s in %s mode", app.state.settings.PROJECT_NAME, app.state.settings.ENVIRONMENT)
    logger.debug("Configuration: %s", app.state.settings.public_dict())
    await app.state.database.connect()
    yield
    logger.info("Shutting down")
    await app.state.database.disconnect()
    app.state.geocoder.close()
    logger.info("Application shutdown complete")


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    geocoder: Geocoder | None = None,
    storage: PhotoStorage | None = None,
) -> FastAPI:
    """Build the application; collaborators default to ones derived from settings."""
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Meter reading capture and approval API",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database or Database(settings.DATABASE_URL, retry_delay=settings.DB_RETRY_DELAY_SECONDS)
    app.state.storage = storage or PhotoStorage(settings.UPLOAD_DIR)
    app.state.geocoder = geocoder or build_geocoder(settings)
    app.state.realtime = ConnectionManager()
    app.state.rate_limiter = RateLimiter(settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW_SECONDS)
    app.state.started_at = time.monotonic()

    # Last added runs first: CORS wraps everything so even 429s carry its headers
    app.middleware("http")(catch_unhandled_errors)
    app.middleware("http")(app.state.rate_limiter)
    app.middleware("http")(security_headers)
    app.middleware("http")(log_requests)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router, prefix="/api")
    app.include_router(meters.router, prefix="/api")
    app.include_router(realtime.router)

    app.mount("/uploads", StaticFiles(directory=str(app.state.storage.root)), name="uploads")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=not default_settings.is_production,
        timeout_graceful_shutdown=default_settings.SHUTDOWN_TIMEOUT,
    )
