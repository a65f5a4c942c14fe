"""FastAPI application factory"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from budget_copilot.api.middleware import RequestIDMiddleware, MetricsMiddleware
from budget_copilot.api.v1 import decision, history, debts
from budget_copilot.domain.exceptions import InvalidInput
from budget_copilot.infrastructure.observability.logging import setup_logging
from budget_copilot.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Budget Copilot",
        description="Daily financial directive and debt payoff service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Numeric validation failures from the domain layer
    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(history.router, prefix="/v1", tags=["history"])
    app.include_router(decision.router, prefix="/v1", tags=["decisions"])
    app.include_router(debts.router, prefix="/v1", tags=["debts"])

    return app


app = create_app()
