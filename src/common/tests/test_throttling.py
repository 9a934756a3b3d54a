"""Tests for the fixed-window rate limiter."""

import pytest

from common.exceptions import RateLimitExceededError
from common.throttling import LIMITERS, FixedWindowRateLimiter, enforce_rate_limits


class TestFixedWindowRateLimiter:
    def test_allows_up_to_the_limit(self) -> None:
        limiter = FixedWindowRateLimiter("test", 3, 60)

        results = [limiter.hit("alice", now=120.0) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]

    def test_window_resets_at_the_boundary(self) -> None:
        limiter = FixedWindowRateLimiter("test", 1, 60)

        assert limiter.hit("alice", now=119.0).allowed
        assert not limiter.hit("alice", now=119.9).allowed
        assert limiter.hit("alice", now=120.0).allowed

    def test_subjects_are_counted_separately(self) -> None:
        limiter = FixedWindowRateLimiter("test", 1, 60)

        assert limiter.hit("alice", now=0.0).allowed
        assert limiter.hit("bob", now=0.0).allowed

    def test_reset_epoch_is_the_window_end(self) -> None:
        limiter = FixedWindowRateLimiter("test", 5, 60)

        assert limiter.hit("alice", now=130.0).reset_epoch == 180

    def test_headers(self) -> None:
        limiter = FixedWindowRateLimiter("test", 1, 60)
        limiter.hit("alice", now=130.0)

        refused = limiter.hit("alice", now=130.0)

        assert refused.headers(now=130.0) == {
            "RateLimit-Limit": "1",
            "RateLimit-Remaining": "0",
            "RateLimit-Reset": "180",
            "Retry-After": "50",
        }

    def test_allowed_headers_have_no_retry_after(self) -> None:
        result = FixedWindowRateLimiter("test", 2, 60).hit("alice", now=0.0)

        assert "Retry-After" not in result.headers(now=0.0)


class TestPresets:
    @pytest.mark.parametrize(
        "name,max_requests,window",
        [
            ("resend_ip_minute", 10, 60),
            ("resend_email_minute", 3, 60),
            ("resend_email_day", 10, 86400),
            ("forgot_ip_minute", 10, 60),
            ("forgot_email_minute", 3, 60),
            ("forgot_email_day", 5, 86400),
            ("upload_ip_minute", 20, 60),
            ("rsvp_ip_minute", 30, 60),
            ("rsvp_user_minute", 20, 60),
            ("rsvp_event_minute", 120, 60),
        ],
    )
    def test_limits(self, name: str, max_requests: int, window: int) -> None:
        assert LIMITERS[name].max_requests == max_requests
        assert LIMITERS[name].window_seconds == window


class TestEnforceRateLimits:
    def test_returns_the_most_restrictive_result(self) -> None:
        result = enforce_rate_limits(("resend_ip_minute", "1.2.3.4"), ("resend_email_minute", "a@b.c"), now=0.0)

        assert result is not None
        assert result.limit == 3
        assert result.remaining == 2

    def test_no_checks(self) -> None:
        assert enforce_rate_limits() is None

    def test_raises_with_headers_once_exceeded(self) -> None:
        for _ in range(3):
            enforce_rate_limits(("resend_email_minute", "a@b.c"), now=0.0)

        with pytest.raises(RateLimitExceededError) as exc_info:
            enforce_rate_limits(("resend_email_minute", "a@b.c"), message="Slow down.", now=0.0)

        assert exc_info.value.message == "Slow down."
        assert exc_info.value.headers["Retry-After"] == "60"

    def test_every_limiter_counts_a_refused_attempt(self) -> None:
        for _ in range(3):
            enforce_rate_limits(("resend_email_minute", "a@b.c"), now=0.0)

        with pytest.raises(RateLimitExceededError):
            enforce_rate_limits(("resend_email_minute", "a@b.c"), ("resend_ip_minute", "1.2.3.4"), now=0.0)

        assert LIMITERS["resend_ip_minute"].hit("1.2.3.4", now=0.0).remaining == 8
