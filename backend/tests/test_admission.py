"""Tests for the rate-limited route classes on a minimal app."""
from __future__ import annotations

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from findash.api.admission import RateLimitedRoute, StrictRateLimitedRoute
from findash.services.rate_limit import RateConfig, RateLimiter


class FakeClock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def _build_app(limiter: RateLimiter, calls: list[str]) -> FastAPI:
    app = FastAPI()
    app.state.rate_limiters = {"api": limiter}
    router = APIRouter(route_class=RateLimitedRoute)

    @router.get("/ping")
    async def ping() -> dict[str, str]:
        calls.append("ping")
        return {"pong": "ok"}

    @router.get("/missing")
    async def missing() -> dict[str, str]:
        calls.append("missing")
        raise HTTPException(status_code=404, detail="Not here")

    @router.get("/typed")
    async def typed(n: int = Query(...)) -> dict[str, int]:
        return {"n": n}

    @router.get("/boom")
    async def boom() -> dict[str, str]:
        raise RuntimeError("boom")

    strict = APIRouter(route_class=StrictRateLimitedRoute)

    @strict.get("/strict")
    async def strict_route() -> dict[str, str]:
        return {}

    @app.exception_handler(Exception)
    async def on_error(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    app.include_router(router)
    app.include_router(strict)
    return app


def test_admits_within_quota_and_rejects_beyond_it() -> None:
    clock = FakeClock(0)
    limiter = RateLimiter(RateConfig(1, 2), name="api", clock=clock)
    calls: list[str] = []
    client = TestClient(_build_app(limiter, calls))

    first = client.get("/ping")
    second = client.get("/ping")
    assert first.status_code == second.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert second.headers["X-RateLimit-Remaining"] == "0"
    assert second.headers["X-RateLimit-Reset"] == "1000"

    third = client.get("/ping")
    assert third.status_code == 429
    assert third.json() == {
        "error": "Too many requests",
        "message": "Rate limit exceeded. Please try again later.",
        "resetTime": 1000,
    }
    assert third.headers["Retry-After"] == "1"
    assert third.headers["X-RateLimit-Remaining"] == "0"
    # rejected requests never reach the handler
    assert calls == ["ping", "ping"]

    clock.now = 1001
    fourth = client.get("/ping")
    assert fourth.status_code == 200
    assert fourth.headers["X-RateLimit-Remaining"] == "1"
    assert fourth.headers["X-RateLimit-Reset"] == "2001"


def test_retry_after_rounds_up_to_whole_seconds() -> None:
    clock = FakeClock(0)
    limiter = RateLimiter(RateConfig(60, 1), name="api", clock=clock)
    client = TestClient(_build_app(limiter, []))
    client.get("/ping")

    clock.now = 58_500
    response = client.get("/ping")
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "2"


def test_route_class_shares_one_budget_across_routes() -> None:
    limiter = RateLimiter(RateConfig(60, 2), name="api", clock=FakeClock(0))
    client = TestClient(_build_app(limiter, []))

    assert client.get("/ping").status_code == 200
    assert client.get("/typed", params={"n": 3}).status_code == 200
    assert client.get("/ping").status_code == 429


def test_clients_are_limited_independently() -> None:
    limiter = RateLimiter(RateConfig(60, 1), name="api", clock=FakeClock(0))
    client = TestClient(_build_app(limiter, []))

    assert client.get("/ping", headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 200
    assert client.get("/ping", headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 429
    assert client.get("/ping", headers={"X-Forwarded-For": "198.51.100.2"}).status_code == 200


def test_http_errors_from_handlers_carry_rate_limit_headers() -> None:
    limiter = RateLimiter(RateConfig(60, 5), name="api", clock=FakeClock(0))
    calls: list[str] = []
    client = TestClient(_build_app(limiter, calls))

    missing = client.get("/missing")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Not here"}
    assert missing.headers["X-RateLimit-Remaining"] == "4"

    invalid = client.get("/typed", params={"n": "abc"})
    assert invalid.status_code == 422
    assert invalid.headers["X-RateLimit-Remaining"] == "3"
    assert calls == ["missing"]


def test_unexpected_errors_fall_through_to_app_handler() -> None:
    limiter = RateLimiter(RateConfig(60, 5), name="api", clock=FakeClock(0))
    client = TestClient(_build_app(limiter, []), raise_server_exceptions=False)

    response = client.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}
    # the attempt still consumed quota
    assert limiter.peek("testclient").count == 1


def test_unregistered_route_class_is_a_configuration_error() -> None:
    limiter = RateLimiter(RateConfig(60, 5), name="api", clock=FakeClock(0))
    client = TestClient(_build_app(limiter, []), raise_server_exceptions=False)

    response = client.get("/strict")
    assert response.status_code == 500
