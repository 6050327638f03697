"""
TeamKick API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.api.v1 import router as api_v1_router
from teamkick.core.config import Settings, get_settings
from teamkick.core.database import get_session, init_db
from teamkick.core.errors import register_exception_handlers
from teamkick.core.logging_config import configure_logging
from teamkick.core.mail import LogMailer
from teamkick.core.middleware import (
    CSRFMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from teamkick.core.ratelimit import RateLimiter
from teamkick.core.redis import close_redis, create_redis, get_redis
from teamkick.core.sessions import SessionManager, SessionStore

log = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    redis_client: Optional[redis.Redis] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.effective_log_format)
    redis_client = redis_client if redis_client is not None else create_redis(settings.redis_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("teamkick.starting", environment=settings.environment)
        if settings.create_tables_on_startup:
            await init_db()
        yield
        log.info("teamkick.shutting_down")
        await close_redis(redis_client)

    app = FastAPI(
        title="TeamKick",
        description="Team management API.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.redis = redis_client
    app.state.mailer = LogMailer()
    app.state.session_manager = SessionManager(
        settings, SessionStore(redis_client, settings.session_ttl_seconds)
    )
    if settings.rate_limit_enabled:
        app.state.rate_limiter = RateLimiter(
            redis_client,
            settings.rate_limit_max_requests,
            settings.rate_limit_window_seconds,
        )

    register_exception_handlers(app, settings)

    # Middleware (last added runs first)
    app.add_middleware(CSRFMiddleware, settings=settings)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", settings.csrf_header_name],
    )

    app.include_router(api_v1_router, prefix="/api")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness check."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(
        session: AsyncSession = Depends(get_session),
        client: redis.Redis = Depends(get_redis),
    ):
        """Readiness check: database and Redis must both answer."""
        checks = {"database": "ok", "redis": "ok"}
        try:
            await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError):
            log.warning("health.database_unavailable", exc_info=True)
            checks["database"] = "unavailable"
        try:
            await client.ping()
        except (RedisError, OSError):
            log.warning("health.redis_unavailable", exc_info=True)
            checks["redis"] = "unavailable"

        ready = all(v == "ok" for v in checks.values())
        return JSONResponse(
            status_code=200 if ready else 503,
            content={"status": "ready" if ready else "unavailable", "checks": checks},
        )

    return app


app = create_app()
