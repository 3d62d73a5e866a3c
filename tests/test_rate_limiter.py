"""
Rate Limiter Tests
==================

Created: 2025-12-12
Author: jetgause
"""

import threading

from crm_security.rate_limiter import RateLimiter

WINDOW_MS = 15 * 60 * 1000


class TestRateLimiting:
    """Test sliding-window rate limiting."""

    def test_sixth_attempt_denied(self, clock):
        limiter = RateLimiter(clock=clock)
        results = [limiter.is_allowed("user@uniga.com", 5, WINDOW_MS) for _ in range(6)]
        assert results == [True, True, True, True, True, False]

    def test_reset_allows_again(self, clock):
        limiter = RateLimiter(max_attempts=5, window_ms=WINDOW_MS, clock=clock)
        for _ in range(5):
            limiter.is_allowed("k")
        assert not limiter.is_allowed("k")

        limiter.reset("k")
        assert limiter.is_allowed("k")

    def test_denied_attempts_are_not_recorded(self, clock):
        limiter = RateLimiter(max_attempts=2, window_ms=1000, clock=clock)
        limiter.is_allowed("k")
        limiter.is_allowed("k")
        limiter.is_allowed("k")
        assert len(limiter.attempts("k")) == 2

    def test_window_slides(self, clock):
        limiter = RateLimiter(max_attempts=2, window_ms=1000, clock=clock)
        assert limiter.is_allowed("k")
        clock.advance(0.5)
        assert limiter.is_allowed("k")
        assert not limiter.is_allowed("k")

        # First attempt is now exactly window_ms old and has expired
        clock.advance(0.5)
        assert limiter.is_allowed("k")
        assert not limiter.is_allowed("k")

    def test_keys_are_independent(self, clock):
        limiter = RateLimiter(max_attempts=1, window_ms=1000, clock=clock)
        assert limiter.is_allowed("a")
        assert limiter.is_allowed("b")
        assert not limiter.is_allowed("a")

    def test_per_call_limits_override_defaults(self, clock):
        limiter = RateLimiter(max_attempts=100, window_ms=1000, clock=clock)
        assert limiter.is_allowed("k", max_attempts=1)
        assert not limiter.is_allowed("k", max_attempts=1)

    def test_get_remaining_does_not_record(self, clock):
        limiter = RateLimiter(max_attempts=3, window_ms=1000, clock=clock)
        limiter.is_allowed("k")
        assert limiter.get_remaining("k") == 2
        assert limiter.get_remaining("k") == 2
        assert limiter.get_remaining("unknown") == 3

    def test_expired_window_is_dropped(self, clock):
        limiter = RateLimiter(max_attempts=3, window_ms=1000, clock=clock)
        limiter.is_allowed("k")
        clock.advance(2)
        limiter.is_allowed("other")
        limiter.is_allowed("k")
        assert len(limiter.attempts("k")) == 1

    def test_clear(self, clock):
        limiter = RateLimiter(max_attempts=1, window_ms=1000, clock=clock)
        limiter.is_allowed("k")
        limiter.clear()
        assert limiter.attempts("k") == []

    def test_concurrent_attempts_respect_limit(self, clock):
        limiter = RateLimiter(max_attempts=10, window_ms=WINDOW_MS, clock=clock)
        allowed = []

        def attempt():
            allowed.append(limiter.is_allowed("shared"))

        threads = [threading.Thread(target=attempt) for _ in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert allowed.count(True) == 10
