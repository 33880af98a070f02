"""FastAPI application entrypoint for the finance dashboard backend."""
from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from findash.api.routes import api_router
from findash.core.config import Settings, get_settings
from findash.db.session import create_all
from findash.security import TokenService
from findash.services.rate_limit import build_rate_limiters

logger = logging.getLogger(__name__)


def _resolve_settings(app: FastAPI) -> Settings:
    # Respect dependency override for get_settings in tests
    override = app.dependency_overrides.get(get_settings)
    return override() if callable(override) else get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = _resolve_settings(app)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET must be set; refusing to start without a token signing secret")

    app.state.token_service = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.token_ttl_hours),
    )
    if settings.database_create_all:
        await create_all(settings)

    limiters = getattr(app.state, "rate_limiters", None) or build_rate_limiters(settings)
    app.state.rate_limiters = limiters
    for limiter in limiters.values():
        limiter.start()
    logger.info(
        "Admission control ready",
        extra={"limiters": {name: (lim.quota, lim.window_ms) for name, lim in limiters.items()}},
    )
    try:
        yield
    finally:
        for limiter in limiters.values():
            await limiter.stop()
        app.state.rate_limiters = None


class HealthResponse(BaseModel):
    status: str = "ok"


def create_app() -> FastAPI:
    app = FastAPI(title="Finance Dashboard API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check() -> HealthResponse:
        """Return service health information for monitoring and load-balancers."""
        return HealthResponse()

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error while serving request",
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    return app


app = create_app()
