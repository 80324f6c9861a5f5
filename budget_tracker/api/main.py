"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from budget_tracker.api.errors import register_exception_handlers
from budget_tracker.api.middleware import RequestIDMiddleware, MetricsMiddleware
from budget_tracker.api.v1 import dashboard, installments, projects, team, transactions
from budget_tracker.infrastructure.observability.logging import setup_logging
from budget_tracker.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Budget Tracker",
        description="Project budgets, installment plans and payment reconciliation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(projects.router, prefix="/v1", tags=["projects"])
    app.include_router(installments.router, prefix="/v1", tags=["installments"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(dashboard.router, prefix="/v1", tags=["dashboard"])
    app.include_router(team.router, prefix="/v1", tags=["team"])

    return app


app = create_app()
