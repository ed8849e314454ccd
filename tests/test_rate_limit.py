"""Per-client rate limiting — sliding window limiter + its HTTP wiring.

Invariants:
    - Attempt max+1 inside the window is rejected; rejected hits are not counted
    - Hits leave the window after window_s seconds
    - Login limit rejects with the fixed message regardless of credentials
    - Limits are keyed per client address
"""

import logging

import pytest
from httpx import ASGITransport, AsyncClient

from auth import security
from core import rate_limit
from core.config import Settings
from main import create_app


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limiter_rejects_after_max():
    limiter = rate_limit.SlidingWindowLimiter(max_requests=3, window_s=60, clock=FakeClock())
    decisions = [limiter.hit("1.2.3.4") for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert decisions[-1].retry_after_s == 60


def test_limiter_window_slides():
    clock = FakeClock()
    limiter = rate_limit.SlidingWindowLimiter(max_requests=2, window_s=60, clock=clock)
    limiter.hit("a")
    clock.now += 30
    limiter.hit("a")
    assert limiter.hit("a").allowed is False

    clock.now += 30
    decision = limiter.hit("a")
    assert decision.allowed is True
    assert decision.remaining == 0


def test_limiter_keys_are_independent():
    limiter = rate_limit.SlidingWindowLimiter(max_requests=1, window_s=60, clock=FakeClock())
    assert limiter.hit("a").allowed
    assert limiter.hit("b").allowed
    assert not limiter.hit("a").allowed


def test_sweep_and_reset_drop_state():
    clock = FakeClock()
    limiter = rate_limit.SlidingWindowLimiter(max_requests=1, window_s=10, clock=clock)
    limiter.hit("a")
    limiter.hit("b")
    clock.now += 11
    limiter.sweep()
    assert limiter._hits == {}

    limiter.hit("a")
    limiter.reset("a")
    assert limiter.hit("a").allowed


@pytest.mark.parametrize(("max_requests", "window_s"), [(0, 60), (1, 0)])
def test_limiter_rejects_bad_config(max_requests, window_s):
    with pytest.raises(ValueError):
        rate_limit.SlidingWindowLimiter(max_requests=max_requests, window_s=window_s)


async def test_login_limit_rejects_eleventh_attempt_even_with_valid_credentials(client, accounts):
    accounts.add("alice", security.hash_password("s3cret", rounds=4))

    for _ in range(10):
        res = await client.post("/login", json={"username": "alice", "password": "wrong"})
        assert res.status_code == 200

    res = await client.post("/login", json={"username": "alice", "password": "s3cret"})
    assert res.status_code == 429
    assert res.json() == {"message": rate_limit.LOGIN_LIMIT_MESSAGE, "status": False}
    assert int(res.headers["Retry-After"]) > 0


async def test_login_limit_does_not_apply_to_other_routes(client):
    for _ in range(11):
        await client.post("/login", json={"username": "x", "password": "y"})

    res = await client.get("/product/1")
    assert res.status_code == 200


async def test_general_limit(accounts, products):
    app = create_app(Settings(rate_limit_max=3, bcrypt_rounds=4))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        for _ in range(3):
            assert (await client.get("/health")).status_code == 200
        res = await client.get("/health")

    assert res.status_code == 429
    assert res.json() == {"message": rate_limit.GENERAL_LIMIT_MESSAGE, "status": False}
    assert res.headers["RateLimit-Remaining"] == "0"


async def test_forwarded_for_keys_limit_when_trusted(accounts, products):
    app = create_app(Settings(rate_limit_max=1, trust_forwarded_for=True, bcrypt_rounds=4))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        first = await client.get("/health", headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})
        second = await client.get("/health", headers={"X-Forwarded-For": "10.0.0.2"})
        third = await client.get("/health", headers={"X-Forwarded-For": "10.0.0.1"})

    assert [first.status_code, second.status_code, third.status_code] == [200, 200, 429]


async def test_limits_disabled(accounts, products):
    app = create_app(Settings(rate_limit_enabled=False, login_rate_limit_max=1, bcrypt_rounds=4))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        for _ in range(3):
            res = await client.post("/login", json={"username": "x", "password": "y"})
            assert res.status_code == 200


async def test_rejection_log_carries_client_fields(accounts, products, caplog):
    caplog.set_level(logging.INFO, logger="core.rate_limit")
    app = create_app(Settings(rate_limit_max=1, bcrypt_rounds=4))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/health")
        await client.get("/health")

    record = next(r for r in caplog.records if r.getMessage().startswith("rate_limited"))
    assert record.client == "127.0.0.1"
    assert record.path == "/health"
    assert record.retry_after > 0
