# sportcenter/main.py
"""
FastAPI application for the sports center booking core.

Mounts the v1 routers under /api/v1 and exposes /health and /metrics.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Response

from .core.config import is_running_tests, settings
from .database import init_db
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import availability as availability_v1
from .routes.v1 import promotions as promotions_v1
from .routes.v1 import reservations as reservations_v1
from .routes.v1 import wallet as wallet_v1
from .schemas.base_responses import HealthResponse

API_TITLE = "Sports Center Booking Core"
API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables for local SQLite databases; real deployments run migrations."""
    if settings.is_sqlite and not is_running_tests():
        init_db()
        logger.info("SQLite schema ensured at %s", settings.database_url)
    logger.info("%s %s starting (%s)", API_TITLE, API_VERSION, settings.environment)
    yield
    logger.info("%s shutting down", API_TITLE)


app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)

register_error_handlers(app)

if settings.prometheus_enabled:
    app.add_middleware(PrometheusMiddleware)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(availability_v1.router, prefix="/courts")
api_v1.include_router(reservations_v1.router, prefix="/reservations")
api_v1.include_router(promotions_v1.router, prefix="/promotions")
api_v1.include_router(wallet_v1.router, prefix="/wallet")
app.include_router(api_v1)


@app.get("/health", response_model=HealthResponse, tags=["health"])
def health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        service="sportcenter-core",
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )


@app.get("/metrics", tags=["monitoring"], include_in_schema=False)
def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
