"""
FastAPI application factory.

* Registers routes for accounts, fleet, trips, drivers, messages and admin.
* Verifies the database on startup (fatal if unreachable) and starts /
  stops the reconciliation worker via lifespan events.
* Applies CORS and rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.errors import register_exception_handlers
from src.api.middleware import limiter
from src.api.routes import accounts, admin, drivers, fleet, messages, trips
from src.api.schemas import ErrorResponse
from src.config import settings
from src.infrastructure import database
from src.infrastructure.redis_client import close_redis
from src.workers import reconciler as _reconciler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect-or-exit on startup; stop the worker and pools on shutdown."""
    if not settings.database_url:
        logger.critical("DATABASE_URL is not set")
        raise RuntimeError("DATABASE_URL is not set")
    try:
        await database.check_connection()
    except Exception:
        logger.critical("Could not connect to the database", exc_info=True)
        raise

    if settings.reconcile_enabled:
        await _reconciler.start_reconcile_loop()
    yield
    if settings.reconcile_enabled:
        await _reconciler.stop_reconcile_loop()
    await close_redis()
    await database.engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Logistics Tracking API",
        description=(
            "Registers drivers, vehicles, stops and trips; assigns drivers "
            "to trips and tracks each trip from pending to completed along "
            "with the driver's last reported location."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Routers
    invalid_request = {
        400: {"model": ErrorResponse, "description": "Missing or invalid field."}
    }
    for module in (accounts, fleet, trips, drivers, messages, admin):
        app.include_router(module.router, prefix="/api", responses=invalid_request)

    return app
