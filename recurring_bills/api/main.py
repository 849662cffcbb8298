"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from recurring_bills.api.dependencies import build_coordinator
from recurring_bills.api.middleware import RequestIDMiddleware, MetricsMiddleware
from recurring_bills.api.v1 import bills
from recurring_bills.config import settings
from recurring_bills.infrastructure.database.models import Base
from recurring_bills.infrastructure.database.session import engine
from recurring_bills.infrastructure.observability.logging import setup_logging
from recurring_bills.services.settlement import SettlementCoordinator

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def _create_journal_tables(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


def create_app(coordinator: SettlementCoordinator | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Recurring Bills",
        description="Recurring bill sections, projections and settlement",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_create_journal_tables if coordinator is None else None,
    )
    app.state.coordinator = coordinator or build_coordinator()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(bills.router, prefix="/v1", tags=["bills"])

    return app


app = create_app()
