"""
Wayfarer Backend — Rate Limiting Tests
========================================

What:  RateLimiter counting and the 429 response under /api.
How:   The limiter runs on FakeClock, so window expiry is a clock.advance()
       call rather than a sleep.

What we test:
    ✅ 100 requests pass, the 101st is rejected with Retry-After
    ✅ Quota is per client address
    ✅ Paths outside /api are never counted
    ✅ A new window starts once the old one elapses
"""

import pytest

from app.middleware.rate_limit import CLEANUP_THRESHOLD, RateLimiter
from conftest import FakeClock, make_client

LIMIT_MESSAGE = "Too many requests from this IP. Please try again in an hour."


class TestRateLimiter:

    def test_counts_down_then_denies(self):
        limiter = RateLimiter(limit=3, window=60, clock=FakeClock())

        decisions = [limiter.hit("10.0.0.1") for _ in range(4)]
        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]

    def test_reset_after_tracks_window_start(self):
        clock = FakeClock()
        limiter = RateLimiter(limit=1, window=60, clock=clock)

        limiter.hit("10.0.0.1")
        clock.advance(45)
        denied = limiter.hit("10.0.0.1")
        assert not denied.allowed
        assert denied.reset_after == 15

    def test_new_window_after_expiry(self):
        clock = FakeClock()
        limiter = RateLimiter(limit=1, window=60, clock=clock)
        limiter.hit("10.0.0.1")
        assert not limiter.hit("10.0.0.1").allowed

        clock.advance(60)
        decision = limiter.hit("10.0.0.1")
        assert decision.allowed
        assert decision.reset_after == 60

    def test_denied_requests_do_not_extend_window(self):
        clock = FakeClock()
        limiter = RateLimiter(limit=1, window=60, clock=clock)
        limiter.hit("10.0.0.1")
        for _ in range(5):
            clock.advance(10)
            limiter.hit("10.0.0.1")

        clock.advance(10)
        assert limiter.hit("10.0.0.1").allowed

    def test_cleanup_drops_expired_clients(self):
        clock = FakeClock()
        limiter = RateLimiter(limit=5, window=60, clock=clock)
        for i in range(CLEANUP_THRESHOLD):
            limiter.hit(f"10.1.{i // 256}.{i % 256}")

        clock.advance(61)
        limiter.hit("10.0.0.1")
        assert list(limiter.store) == ["10.0.0.1"]

    def test_reset_clears_counters(self):
        limiter = RateLimiter(limit=1, window=60, clock=FakeClock())
        limiter.hit("10.0.0.1")
        limiter.reset()
        assert limiter.hit("10.0.0.1").allowed


class TestRateLimitMiddleware:

    @pytest.mark.asyncio
    async def test_101st_request_rejected(self, client):
        for _ in range(100):
            response = await client.get("/api/v1/tours")
            assert response.status_code == 200

        response = await client.get("/api/v1/tours")
        assert response.status_code == 429
        assert response.json()["status"] == "fail"
        assert response.json()["message"] == LIMIT_MESSAGE
        assert response.headers["retry-after"] == "3600"
        assert response.headers["x-ratelimit-remaining"] == "0"

    @pytest.mark.asyncio
    async def test_quota_headers(self, client):
        response = await client.get("/api/v1/tours")
        assert response.headers["x-ratelimit-limit"] == "100"
        assert response.headers["x-ratelimit-remaining"] == "99"
        assert response.headers["x-ratelimit-reset"] == "3600"

    @pytest.mark.asyncio
    async def test_other_client_unaffected(self, app, client, rate_limiter):
        for _ in range(100):
            rate_limiter.hit("203.0.113.7")
        assert (await client.get("/api/v1/tours")).status_code == 429

        async with make_client(app, "198.51.100.9") as other:
            response = await other.get("/api/v1/tours")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_pages_are_not_limited(self, client, rate_limiter):
        for _ in range(100):
            rate_limiter.hit("203.0.113.7")

        assert (await client.get("/login")).status_code == 200
        assert (await client.get("/")).status_code == 200
        assert "x-ratelimit-limit" not in (await client.get("/login")).headers

    @pytest.mark.asyncio
    async def test_window_expiry_restores_access(self, client, clock, rate_limiter):
        for _ in range(100):
            rate_limiter.hit("203.0.113.7")
        assert (await client.get("/api/v1/tours")).status_code == 429

        clock.advance(3600)
        assert (await client.get("/api/v1/tours")).status_code == 200
