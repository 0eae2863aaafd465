from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from balancewise.api.deps import build_cleanup_use_case
from balancewise.api.middleware import RequestLoggingMiddleware
from balancewise.api.routers.auth import router as auth_router
from balancewise.api.routers.diet import router as diet_router
from balancewise.api.routers.health import router as health_router
from balancewise.infrastructure.db.engine import create_tables, get_engine
from balancewise.infrastructure.scheduling.cleanup_scheduler import PeriodicCleanup
from balancewise.shared.config import get_settings
from balancewise.shared.logging import configure_logging


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    scheduler: PeriodicCleanup | None = None
    if settings.postgres_dsn:
        if settings.db_create_tables:
            create_tables(get_engine(settings.postgres_dsn))
            logger.info("startup: database tables ensured")
        cleanup = build_cleanup_use_case(settings.postgres_dsn)
        scheduler = PeriodicCleanup(
            job=cleanup.execute,
            interval_seconds=settings.cleanup_interval_seconds,
        )
        scheduler.start()
    else:
        logger.warning("startup: POSTGRES_DSN not set, cleanup scheduler disabled")

    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="BalanceWise API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.http_log:
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(diet_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("balancewise.main:app", host="0.0.0.0", port=8080)
