"""Tests for the in-memory rate limiter."""

from __future__ import annotations

import pytest

from resume_studio.utils.rate_limit import RateLimiter, request_identifier


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestRateLimiter:
    def test_allows_up_to_limit(self, clock):
        limiter = RateLimiter(3, clock=clock)
        decisions = [limiter.check("a") for _ in range(3)]
        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

    def test_rejects_over_limit(self, clock):
        limiter = RateLimiter(2, clock=clock)
        limiter.check("a")
        limiter.check("a")
        decision = limiter.check("a")
        assert not decision.allowed
        assert decision.remaining == 0
        assert decision.limit == 2
        assert decision.reset_at > clock.now

    def test_identifiers_are_independent(self, clock):
        limiter = RateLimiter(1, clock=clock)
        assert limiter.check("a").allowed
        assert not limiter.check("a").allowed
        assert limiter.check("b").allowed

    def test_refills_over_time(self, clock):
        limiter = RateLimiter(2, window_seconds=60, clock=clock)
        limiter.check("a")
        limiter.check("a")
        assert not limiter.check("a").allowed
        clock.now += 30  # half the window refills one token
        assert limiter.check("a").allowed
        assert not limiter.check("a").allowed

    def test_stale_buckets_are_swept(self, clock):
        limiter = RateLimiter(1, window_seconds=60, clock=clock)
        limiter.check("old")
        clock.now += 1_000
        limiter.check("new")
        assert "old" not in limiter._buckets
        assert "new" in limiter._buckets

    def test_retry_after_is_at_least_one(self, clock):
        limiter = RateLimiter(1, clock=clock)
        limiter.check("a")
        assert limiter.check("a").retry_after >= 1

    def test_retry_after_follows_limiter_clock(self, clock):
        limiter = RateLimiter(1, window_seconds=60, clock=clock)
        limiter.check("a")
        assert limiter.check("a").retry_after == 60
        clock.now += 30
        decision = limiter.check("a")
        assert decision.checked_at == clock.now
        assert decision.retry_after == 30


class TestRequestIdentifier:
    def test_bearer_token_is_hashed(self):
        identifier = request_identifier("Bearer secret-token", "1.2.3.4")
        assert identifier.startswith("token:")
        assert "secret-token" not in identifier
        assert len(identifier) == len("token:") + 16

    def test_same_token_same_bucket(self):
        assert request_identifier("Bearer t", None) == request_identifier("Bearer t", "5.6.7.8")

    def test_falls_back_to_ip(self):
        assert request_identifier(None, "1.2.3.4") == "ip:1.2.3.4"
        assert request_identifier("Basic abc", "1.2.3.4") == "ip:1.2.3.4"
        assert request_identifier(None, None) == "ip:unknown"
