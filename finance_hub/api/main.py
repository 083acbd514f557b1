"""FastAPI application factory"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finance_hub.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finance_hub.api.v1 import analytics, budgets, sync, transactions
from finance_hub.config import settings
from finance_hub.infrastructure.clients.remote import RemoteClient
from finance_hub.infrastructure.database.session import SessionLocal, init_db
from finance_hub.infrastructure.observability.logging import setup_logging
from finance_hub.services.sync import SyncReconciler

# Setup structured logging
setup_logging(settings.log_level)


def create_app(
    session_factory: Optional[Callable] = None,
    remote_client: Optional[RemoteClient] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> FastAPI:
    """Create and configure FastAPI application"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Injected session factories bring their own schema
        if session_factory is None:
            init_db()
        yield

    app = FastAPI(
        title="Finance Hub",
        description="Local-first personal finance ledger with remote sync",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.clock = clock
    app.state.reconciler = SyncReconciler(
        session_factory or SessionLocal,
        remote_client or RemoteClient(),
        now=clock,
    )

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
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(budgets.router, prefix="/v1", tags=["budgets"])
    app.include_router(analytics.router, prefix="/v1", tags=["analytics"])
    app.include_router(sync.router, prefix="/v1", tags=["sync"])

    return app


app = create_app()
