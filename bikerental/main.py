# bikerental/main.py
"""
FastAPI application for the bike rental reservation service.

``create_app`` wires the ledger, the discount engine and the services and
keeps them on ``app.state``. Tests pass their own ledger and engine; the
module-level ``app`` is built from settings for uvicorn.
"""

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI, Response

from . import __version__
from .core.config import Settings, settings as default_settings
from .core.request_context import attach_trace_id_filter
from .middleware.trace_id import TraceIdMiddlewareASGI
from .monitoring.prometheus_metrics import prometheus_metrics
from .repositories.ledger import Ledger
from .routes.v1 import bikes as bikes_v1, reservations as reservations_v1
from .services.bike_service import BikeService
from .services.discount_engine import DiscountEngine
from .services.reservation_service import ReservationService
from .services.signals.factory import create_signal_providers

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(trace_id)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    attach_trace_id_filter()


def build_discount_engine(config: Settings) -> DiscountEngine:
    weather, incidents = create_signal_providers(config)
    return DiscountEngine(
        weather,
        incidents,
        provider_timeout=config.provider_timeout_seconds,
        incident_proximity_km=config.incident_proximity_km,
    )


def create_app(
    config: Optional[Settings] = None,
    *,
    ledger: Optional[Ledger] = None,
    discount_engine: Optional[DiscountEngine] = None,
) -> FastAPI:
    config = config or default_settings
    configure_logging(config.log_level)

    owns_ledger = ledger is None
    ledger = ledger or Ledger.from_settings(config)
    discount_engine = discount_engine or build_discount_engine(config)

    @asynccontextmanager
    async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Handle application startup/shutdown."""
        logger.info(f"Bike rental API starting up (environment: {config.environment})")
        await asyncio.to_thread(ledger.create_schema)
        yield
        logger.info("Bike rental API shutting down...")
        await discount_engine.aclose()
        if owns_ledger:
            ledger.dispose()

    app = FastAPI(
        title="Bike Rental API",
        version=__version__,
        lifespan=app_lifespan,
    )
    app.state.ledger = ledger
    app.state.bike_service = BikeService(ledger)
    app.state.reservation_service = ReservationService(
        ledger,
        discount_engine,
        request_timeout=config.request_timeout_seconds,
        isolation_level=config.reservation_isolation_level,
    )

    app.add_middleware(TraceIdMiddlewareASGI)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(bikes_v1.router, prefix="/bikes")
    api_v1.include_router(reservations_v1.router)
    app.include_router(api_v1)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics/prometheus", include_in_schema=False)
    async def prometheus_endpoint() -> Response:
        return Response(
            content=prometheus_metrics.get_metrics(),
            media_type=prometheus_metrics.CONTENT_TYPE,
            headers={"Cache-Control": "no-store"},
        )

    return app


app = create_app()
