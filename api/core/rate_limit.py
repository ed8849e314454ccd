"""
Per-client request limiting.

A `SlidingWindowLimiter` keeps the timestamps of recent hits for each client
address and rejects a hit once `max_requests` already fall inside the window.
State is process-local; running several workers multiplies the effective limit.

Two limiters are wired in `main.py`:
- general: an HTTP middleware in front of every route
- login: a dependency on `POST /login` only
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERAL_LIMIT_MESSAGE = "Too many requests, please try again later."
LOGIN_LIMIT_MESSAGE = "Too many login attempts, please try again later."

# Idle clients are dropped every SWEEP_EVERY calls to hit().
SWEEP_EVERY = 1000


@dataclass(frozen=True)
class LimitDecision:
    allowed: bool
    remaining: int
    retry_after_s: int


class SlidingWindowLimiter:
    def __init__(
        self,
        *,
        max_requests: int,
        window_s: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1.")
        if window_s <= 0:
            raise ValueError("window_s must be > 0.")
        self.max_requests = max_requests
        self.window_s = window_s
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._calls = 0

    def _prune(self, key: str, now: float) -> deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window_s
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def hit(self, key: str) -> LimitDecision:
        """
        Record one request for `key` unless it is over the limit.

        Rejected requests are not recorded, so a blocked client regains access
        as soon as its oldest accepted request leaves the window.
        """
        self._calls += 1
        if self._calls % SWEEP_EVERY == 0:
            self.sweep()

        now = self._clock()
        hits = self._prune(key, now)
        if len(hits) >= self.max_requests:
            retry_after = max(1, math.ceil(hits[0] + self.window_s - now))
            return LimitDecision(allowed=False, remaining=0, retry_after_s=retry_after)

        hits.append(now)
        return LimitDecision(
            allowed=True,
            remaining=self.max_requests - len(hits),
            retry_after_s=0,
        )

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    def sweep(self) -> None:
        """Drop clients with no hits left in the window."""
        now = self._clock()
        for key in list(self._hits):
            if not self._prune(key, now):
                del self._hits[key]


def client_address(request: Request) -> str:
    settings = request.app.state.settings
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",", 1)[0].strip()
        if first_hop:
            return first_hop
    if request.client is None:
        return "unknown"
    return request.client.host


def _rate_limit_headers(limiter: SlidingWindowLimiter, decision: LimitDecision) -> dict[str, str]:
    headers = {
        "RateLimit-Limit": str(limiter.max_requests),
        "RateLimit-Remaining": str(decision.remaining),
    }
    if not decision.allowed:
        headers["Retry-After"] = str(decision.retry_after_s)
    return headers


async def general_rate_limit(request: Request, call_next):
    """
    HTTP middleware: reject over-limit clients before routing.
    """
    limiter: SlidingWindowLimiter | None = getattr(request.app.state, "general_limiter", None)
    if limiter is None:
        return await call_next(request)

    client = client_address(request)
    decision = limiter.hit(client)
    if not decision.allowed:
        logger.info(
            "rate_limited scope=general client=%s path=%s retry_after=%s",
            client,
            request.url.path,
            decision.retry_after_s,
            extra={"client": client, "path": request.url.path, "retry_after": decision.retry_after_s},
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"message": GENERAL_LIMIT_MESSAGE, "status": False},
            headers=_rate_limit_headers(limiter, decision),
        )

    response = await call_next(request)
    for name, value in _rate_limit_headers(limiter, decision).items():
        response.headers[name] = value
    return response


async def login_rate_limit(request: Request) -> None:
    """
    Route dependency for `POST /login`.

    Every attempt counts, successful or not.
    """
    limiter: SlidingWindowLimiter | None = getattr(request.app.state, "login_limiter", None)
    if limiter is None:
        return None

    client = client_address(request)
    decision = limiter.hit(client)
    if not decision.allowed:
        logger.info(
            "rate_limited scope=login client=%s retry_after=%s",
            client,
            decision.retry_after_s,
            extra={"client": client, "retry_after": decision.retry_after_s},
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=LOGIN_LIMIT_MESSAGE,
            headers=_rate_limit_headers(limiter, decision),
        )
    return None
