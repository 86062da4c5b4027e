"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from installment_planner.api.middleware import RequestIDMiddleware, MetricsMiddleware
from installment_planner.api.v1 import installments, payment_plans
from installment_planner.infrastructure.observability.logging import setup_logging
from installment_planner.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Therapy Center Installment Planner",
        description="Installment payment plans for invoice balances: preview, eligibility, collection",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(payment_plans.router, prefix="/v1", tags=["payment-plans"])
    app.include_router(installments.router, prefix="/v1", tags=["installments"])

    return app


app = create_app()
