# tests/test_rate_limit.py
import pytest
from csv_processor.api.rate_limit import SlidingWindowRateLimiter
from csv_processor.config import RateLimitConfig

class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

class TestSlidingWindowRateLimiter:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def limiter(self, clock):
        return SlidingWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)

    def test_allows_up_to_the_limit(self, limiter):
        """Test the fourth request inside the window is refused"""
        assert [limiter.check("ip") for _ in range(4)] == [True, True, True, False]

    def test_refused_requests_are_not_recorded(self, limiter, clock):
        for _ in range(3):
            limiter.check("ip")
        for _ in range(5):
            limiter.check("ip")

        clock.advance(60)

        assert limiter.remaining("ip") == 3

    def test_window_slides(self, limiter, clock):
        """Test requests older than the window stop counting"""
        limiter.check("ip")
        clock.advance(30)
        limiter.check("ip")
        limiter.check("ip")
        assert limiter.check("ip") is False

        clock.advance(30)

        assert limiter.remaining("ip") == 1
        assert limiter.check("ip") is True
        assert limiter.check("ip") is False

    def test_identities_are_independent(self, limiter):
        for _ in range(3):
            limiter.check("a")

        assert limiter.check("a") is False
        assert limiter.check("b") is True

    def test_is_allowed_does_not_record(self, limiter):
        """Test the query and the record steps are separate"""
        assert limiter.is_allowed("ip") is True
        assert limiter.remaining("ip") == 3

        limiter.log_request("ip")

        assert limiter.remaining("ip") == 2

    def test_cleanup_forgets_idle_callers(self, limiter, clock):
        limiter.check("old")
        clock.advance(45)
        limiter.check("recent")
        clock.advance(20)

        assert limiter.cleanup() == 1
        assert "old" not in limiter._requests
        assert "recent" in limiter._requests

    @pytest.mark.parametrize("max_requests,window", [(0, 60), (5, 0), (-1, -1)])
    def test_rejects_non_positive_settings(self, max_requests, window):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(max_requests=max_requests, window_seconds=window)

    def test_from_config(self, clock):
        limiter = SlidingWindowRateLimiter.from_config(
            RateLimitConfig(ENABLED=True, MAX_REQUESTS=2, WINDOW_SECONDS=10), clock=clock
        )

        assert limiter.max_requests == 2
        assert limiter.window_seconds == 10
        assert [limiter.check("ip") for _ in range(3)] == [True, True, False]

    def test_idle_callers_are_swept(self, limiter, clock):
        """Test one-off identities do not accumulate past a window"""
        for i in range(10):
            limiter.check(f"10.0.0.{i}")
        assert limiter.tracked_callers == 10

        clock.advance(60)
        limiter.check("fresh")

        assert limiter.tracked_callers == 1

    def test_expired_caller_is_forgotten_on_lookup(self, limiter, clock):
        limiter.check("ip")
        clock.advance(60)

        assert limiter.remaining("ip") == 3
        assert "ip" not in limiter._requests
