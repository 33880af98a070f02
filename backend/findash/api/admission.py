"""Admission control for API routes.

Routers opt in by using one of the route classes below; every endpoint on the
router is then gated by the limiter registered under that class's name in
``app.state.rate_limiters``.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Coroutine, Any

from fastapi import HTTPException, Request, Response
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from findash.services.rate_limit import RateLimitDecision, RateLimiter

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Coroutine[Any, Any, Response]]


def get_rate_limiter(request: Request, name: str) -> RateLimiter:
    limiters: dict[str, RateLimiter] = request.app.state.rate_limiters
    try:
        return limiters[name]
    except KeyError:
        raise RuntimeError(f"no rate limiter registered for route class {name!r}") from None


def apply_rate_limit_headers(response: Response, limiter: RateLimiter, decision: RateLimitDecision) -> None:
    response.headers["X-RateLimit-Limit"] = str(limiter.quota)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = str(decision.reset_at)


def retry_after_seconds(decision: RateLimitDecision, now_ms: int) -> int:
    return max(0, math.ceil((decision.reset_at - now_ms) / 1000))


def rate_limited_response(limiter: RateLimiter, decision: RateLimitDecision) -> JSONResponse:
    response = JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "message": "Rate limit exceeded. Please try again later.",
            "resetTime": decision.reset_at,
        },
    )
    apply_rate_limit_headers(response, limiter, decision)
    response.headers["Retry-After"] = str(retry_after_seconds(decision, limiter.now()))
    return response


class RateLimitedRoute(APIRoute):
    """APIRoute whose handler is admitted by a named rate limiter."""

    limit_name: str = "api"

    def get_route_handler(self) -> Handler:
        handler = super().get_route_handler()
        return RateLimitedHandler(handler, self.limit_name)


class RateLimitedHandler:
    """Runs the limiter check before delegating to the wrapped route handler."""

    def __init__(self, handler: Handler, limit_name: str) -> None:
        self._handler = handler
        self._limit_name = limit_name

    async def __call__(self, request: Request) -> Response:
        limiter = get_rate_limiter(request, self._limit_name)
        decision = limiter.check(request)
        if not decision.allowed:
            logger.info(
                "Request rejected by rate limiter",
                extra={
                    "limiter": self._limit_name,
                    "path": request.url.path,
                    "reset_at": decision.reset_at,
                },
            )
            return rate_limited_response(limiter, decision)

        # HTTP-level outcomes (auth failures, validation, 404) still count as
        # admitted requests, so they get rendered here and carry the headers.
        # Anything else propagates to the app's generic error handler.
        try:
            response = await self._handler(request)
        except HTTPException as exc:
            response = await http_exception_handler(request, exc)
        except RequestValidationError as exc:
            response = await request_validation_exception_handler(request, exc)
        apply_rate_limit_headers(response, limiter, decision)
        return response


class AuthRateLimitedRoute(RateLimitedRoute):
    limit_name = "auth"


class ApiRateLimitedRoute(RateLimitedRoute):
    limit_name = "api"


class StrictRateLimitedRoute(RateLimitedRoute):
    limit_name = "strict"
