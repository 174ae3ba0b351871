"""
Tests for the sliding-window rate limiter.
"""
import pytest

from article_sync.services.rate_limiter import RateLimiter


class FakeClock:
    """Manual clock whose sleep advances time instead of blocking."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


def make_limiter(clock: FakeClock, max_requests: int = 2, period: float = 60) -> RateLimiter:
    return RateLimiter(max_requests, period_seconds=period, clock=clock, sleep=clock.sleep)


class TestRateLimiter:
    """Tests for RateLimiter."""

    async def test_no_wait_under_limit(self):
        clock = FakeClock()
        limiter = make_limiter(clock)

        assert await limiter.acquire() == 0
        assert await limiter.acquire() == 0
        assert clock.sleeps == []

    async def test_waits_for_oldest_request_to_expire(self):
        clock = FakeClock()
        limiter = make_limiter(clock)

        await limiter.acquire()
        await limiter.acquire()
        waited = await limiter.acquire()

        assert waited == 60
        assert clock.sleeps == [60]

    async def test_window_slides(self):
        """Only requests inside the last period count toward the limit."""
        clock = FakeClock()
        limiter = make_limiter(clock)

        await limiter.acquire()
        clock.now += 40
        await limiter.acquire()
        clock.now += 30

        # first request has left the window, second has 30s to go
        assert await limiter.acquire() == 0
        assert await limiter.acquire() == 30

    @pytest.mark.parametrize("max_requests,period", [(0, 60), (-1, 60), (5, 0)])
    def test_rejects_non_positive_limits(self, max_requests, period):
        with pytest.raises(ValueError):
            RateLimiter(max_requests, period_seconds=period)
