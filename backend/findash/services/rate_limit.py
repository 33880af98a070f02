"""In-memory fixed-window rate limiter keyed by client address.

Each limiter owns its window store; nothing is shared between instances and
nothing is coordinated across processes, so running several workers splits
the quota between them.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.requests import Request

from findash.core.config import Settings

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_KEY = "unknown"


def client_key(request: Request) -> str:
    """Partition key for a request: forwarded address, peer address, or sentinel.

    Requests with no resolvable address all share the ``unknown`` bucket.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT_KEY


def epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateConfig:
    window_seconds: float
    max_requests: int

    @property
    def window_ms(self) -> int:
        return int(self.window_seconds * 1000)


@dataclass
class RateWindow:
    key: str
    count: int
    reset_at: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: int


class RateLimiter:
    def __init__(
        self,
        config: RateConfig,
        *,
        name: str = "default",
        key_func: Callable[[Request], str] = client_key,
        clock: Callable[[], int] = epoch_ms,
        sweep_interval_seconds: float = 300.0,
    ) -> None:
        if config.max_requests < 1 or config.window_ms < 1:
            raise ValueError("rate limit needs a positive window and quota")
        self.name = name
        self._config = config
        self._key_func = key_func
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._windows: dict[str, RateWindow] = {}
        self._sweeper: Optional[asyncio.Task[None]] = None

    @property
    def quota(self) -> int:
        return self._config.max_requests

    @property
    def window_ms(self) -> int:
        return self._config.window_ms

    def now(self) -> int:
        return self._clock()

    def check(self, request: Request) -> RateLimitDecision:
        return self.hit(self._key_func(request))

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it is admitted.

        Must stay free of awaits: the read-modify-write below is atomic only
        because nothing else runs on the loop while it executes.
        """
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            window = RateWindow(key=key, count=1, reset_at=now + self._config.window_ms)
            self._windows[key] = window
            return RateLimitDecision(
                allowed=True, remaining=self.quota - 1, reset_at=window.reset_at
            )

        window.count += 1
        return RateLimitDecision(
            allowed=window.count <= self.quota,
            remaining=max(0, self.quota - window.count),
            reset_at=window.reset_at,
        )

    def peek(self, key: str) -> Optional[RateWindow]:
        return self._windows.get(key)

    def __len__(self) -> int:
        return len(self._windows)

    def sweep(self) -> int:
        """Drop windows whose deadline has passed; returns how many were removed."""
        now = self._clock()
        expired = [key for key, win in self._windows.items() if win.reset_at < now]
        for key in expired:
            self._windows.pop(key, None)
        if expired:
            logger.debug(
                "Swept expired rate windows",
                extra={"limiter": self.name, "removed": len(expired), "active": len(self._windows)},
            )
        return len(expired)

    # -- background maintenance -------------------------------------------

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_forever(), name=f"rate-limit-sweep:{self.name}"
        )

    async def stop(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()


def build_rate_limiters(settings: Settings) -> dict[str, RateLimiter]:
    """Create the limiter for each route class from settings."""

    interval = float(settings.rate_limit_sweep_interval_seconds)
    configs = {
        "auth": RateConfig(settings.auth_rate_window_seconds, settings.auth_rate_max_requests),
        "api": RateConfig(settings.api_rate_window_seconds, settings.api_rate_max_requests),
        "strict": RateConfig(settings.strict_rate_window_seconds, settings.strict_rate_max_requests),
    }
    return {
        name: RateLimiter(cfg, name=name, sweep_interval_seconds=interval)
        for name, cfg in configs.items()
    }
