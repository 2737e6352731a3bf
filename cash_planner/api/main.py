"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cash_planner.api.dependencies import get_request_id
from cash_planner.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cash_planner.api.v1 import analytics, dashboard, ledger, provisions, receipts, settings, simulations, taxes
from cash_planner.domain.exceptions import NotFoundError, RepositoryError, ValidationError
from cash_planner.infrastructure.database.session import init_db
from cash_planner.infrastructure.observability.logging import setup_logging
from cash_planner.config import config

# Setup structured logging
setup_logging(config.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def _error_response(request: Request, status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to flat {"detail": message} responses"""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(request, 404, exc)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        logging.warning(f"Validation error: {exc}", extra={"request_id": get_request_id(request)})
        return _error_response(request, 422, exc)

    @app.exception_handler(RepositoryError)
    async def repository_handler(request: Request, exc: RepositoryError):
        logging.error(f"Repository error: {exc}", extra={"request_id": get_request_id(request)})
        return _error_response(request, 503, exc)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cash Planner",
        description="Freelancer cash planning: VAT, URSSAF, provisions, forecasts and simulations",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": config.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(dashboard.router, prefix="/v1", tags=["dashboard"])
    app.include_router(ledger.router, prefix="/v1", tags=["ledger"])
    app.include_router(taxes.router, prefix="/v1", tags=["taxes"])
    app.include_router(provisions.router, prefix="/v1", tags=["provisions"])
    app.include_router(settings.router, prefix="/v1", tags=["settings"])
    app.include_router(analytics.router, prefix="/v1", tags=["analytics"])
    app.include_router(simulations.router, prefix="/v1", tags=["simulations"])
    app.include_router(receipts.router, prefix="/v1", tags=["receipts"])

    return app


app = create_app()
