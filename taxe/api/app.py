"""
FastAPI application factory.

* Registers routes for users, bookings, companies and admin.
* Maps domain errors onto ``{"code", "message", "description"}`` bodies.
* Closes the Redis pool used for booking locks on shutdown.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from taxe.api.errors import register_error_handlers
from taxe.api.middleware import limiter
from taxe.api.routes import admin, bookings, companies, users
from taxe.infrastructure.redis_client import close_redis

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Tax-E API starting")
    yield
    await close_redis()
    logger.info("Tax-E API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Tax-E Booking API",
        description=(
            "Taxi booking lifecycle and dispatch.  Customers book rides, "
            "company admins claim them from the unallocated pool and assign "
            "drivers, and drivers move each booking through to completion."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_error_handlers(app)

    # Routers
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(companies.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
