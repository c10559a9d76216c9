"""
FastAPI application factory.

* Registers routes for quotes, journeys, tracking and admin.
* Starts / stops the dispatch services (trackers, locks, notifications)
  via lifespan events, resuming trackers for journeys already under way.
* Maps domain errors onto HTTP responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api import dependencies
from src.api.middleware import limiter
from src.api.routes import admin, journeys, quotes, tracking
from src.config import settings
from src.domain.errors import (
    ExternalServiceError,
    InvalidStateTransition,
    NotFoundError,
    NotReadyError,
    ValidationError,
)
from src.infrastructure.locks import LockNotAcquired

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the dispatch services on startup; stop on shutdown."""
    await dependencies.start_services()
    yield
    await dependencies.stop_services()


# ── Error mapping ─────────────────────────────────────────────────────


async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _not_ready(request: Request, exc: NotReadyError):
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "distance_remaining_m": exc.distance_remaining_m,
            "override_available": exc.override_available,
        },
    )


async def _conflict(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _invalid(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _upstream(request: Request, exc: ExternalServiceError):
    logger.warning("External service failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def _busy(request: Request, exc: LockNotAcquired):
    return JSONResponse(
        status_code=503,
        content={"detail": "Booking is being updated, please retry"},
        headers={"Retry-After": "1"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chauffeur Dispatch API",
        description=(
            "Quotes NTA-regulated fares and runs the driver journey "
            "lifecycle (en route, on board, completed) with live tracking "
            "and a proximity-gated drop-off."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(NotReadyError, _not_ready)
    app.add_exception_handler(InvalidStateTransition, _conflict)
    app.add_exception_handler(ValidationError, _invalid)
    app.add_exception_handler(ExternalServiceError, _upstream)
    app.add_exception_handler(LockNotAcquired, _busy)

    # Routers
    app.include_router(quotes.router, prefix="/api/v1")
    app.include_router(journeys.router, prefix="/api/v1")
    app.include_router(tracking.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
