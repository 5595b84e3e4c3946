"""
FastAPI application factory.

* Registers routes for bookings, rides and admin.
* Maps domain errors to the ``{status_code, message, data}`` envelope.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.errors import register_error_handlers
from src.api.middleware import limiter
from src.api.routes import admin, bookings, rides
from src.config import settings
from src.infrastructure.database import engine
from src.infrastructure.redis_client import close_redis

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release pooled DB and Redis connections on shutdown."""
    logger.info("Ride booking API starting")
    yield
    await engine.dispose()
    await close_redis()
    logger.info("Ride booking API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Booking API",
        description=(
            "Riders book seats on scheduled rides; drivers validate, start "
            "and complete bookings. Seat counters stay consistent with "
            "bookings under concurrent requests, and ride search falls back "
            "to intermediate stops when no direct ride matches."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_error_handlers(app)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
