"""Request throttling.

Two layers live here. The ninja-extra throttle classes are a coarse, global default attached to the API.
``FixedWindowRateLimiter`` is the abuse limiter used by individual endpoints: a counter in the Django cache
keyed by limiter name, window index and subject, which resets exactly at window boundaries.
"""

import time
from dataclasses import dataclass

import structlog
from django.core.cache import cache
from ninja_extra.throttling import AnonRateThrottle, UserRateThrottle

from .exceptions import RateLimitExceededError

logger = structlog.get_logger(__name__)


class AnonDefaultThrottle(AnonRateThrottle):
    rate = "60/min"


class UserDefaultThrottle(UserRateThrottle):
    rate = "100/min"


class WriteThrottle(UserRateThrottle):
    rate = "100/min"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_epoch: int

    def headers(self, now: float | None = None) -> dict[str, str]:
        """RateLimit-* headers, plus Retry-After when the request was refused."""
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_epoch),
        }
        if not self.allowed:
            current = int(now if now is not None else time.time())
            headers["Retry-After"] = str(max(1, self.reset_epoch - current))
        return headers


class FixedWindowRateLimiter:
    """Counts hits per subject in fixed windows of ``window_seconds``.

    Counters are not atomic across the check and the response, so an occasional request over the
    limit gets through under contention.
    """

    def __init__(self, name: str, max_requests: int, window_seconds: int) -> None:
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def __repr__(self) -> str:
        return f"<FixedWindowRateLimiter {self.name} {self.max_requests}/{self.window_seconds}s>"

    def cache_key(self, subject: str, window_index: int) -> str:
        return f"rl:{self.name}:{window_index}:{subject}"

    def hit(self, subject: str, now: float | None = None) -> RateLimitResult:
        """Record one hit for ``subject`` and report whether it is within the limit."""
        current = now if now is not None else time.time()
        window_index = int(current // self.window_seconds)
        key = self.cache_key(subject, window_index)

        # add() only sets the key (and its expiry) when it does not exist yet.
        cache.add(key, 0, timeout=self.window_seconds)
        try:
            count = cache.incr(key)
        except ValueError:
            # The key expired between add() and incr().
            cache.set(key, 1, timeout=self.window_seconds)
            count = 1

        return RateLimitResult(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_epoch=(window_index + 1) * self.window_seconds,
        )


MINUTE = 60
DAY = 86400

LIMITERS: dict[str, FixedWindowRateLimiter] = {
    # resend verification
    "resend_ip_minute": FixedWindowRateLimiter("resend:ip", 10, MINUTE),
    "resend_email_minute": FixedWindowRateLimiter("resend:email", 3, MINUTE),
    "resend_email_day": FixedWindowRateLimiter("resend:email:day", 10, DAY),
    # password reset
    "forgot_ip_minute": FixedWindowRateLimiter("forgot:ip", 10, MINUTE),
    "forgot_email_minute": FixedWindowRateLimiter("forgot:email", 3, MINUTE),
    "forgot_email_day": FixedWindowRateLimiter("forgot:email:day", 5, DAY),
    # uploads, enforced by the media upload service that shares this cache
    "upload_ip_minute": FixedWindowRateLimiter("upload:ip", 20, MINUTE),
    # RSVP spam control
    "rsvp_ip_minute": FixedWindowRateLimiter("rsvp:ip", 30, MINUTE),
    "rsvp_user_minute": FixedWindowRateLimiter("rsvp:user", 20, MINUTE),
    "rsvp_event_minute": FixedWindowRateLimiter("rsvp:event", 120, MINUTE),
    # checkout
    "checkout_user_minute": FixedWindowRateLimiter("checkout:user", 10, MINUTE),
}


def enforce_rate_limits(
    *checks: tuple[str, str],
    message: str | None = None,
    now: float | None = None,
) -> RateLimitResult | None:
    """Hit every ``(limiter_name, subject)`` pair and raise on the first one over its limit.

    All limiters are hit even when an earlier one already refused, so every window counts the attempt.

    Returns:
        The most restrictive result, or None when no checks were given.

    Raises:
        RateLimitExceededError: if any limiter refused the request.
    """
    results = [(name, LIMITERS[name].hit(subject, now=now)) for name, subject in checks]
    refused = [(name, result) for name, result in results if not result.allowed]
    if refused:
        name, result = refused[0]
        logger.warning("rate_limit_exceeded", limiter=name, limit=result.limit, reset_epoch=result.reset_epoch)
        raise RateLimitExceededError(message, headers=result.headers(now=now))
    if not results:
        return None
    return min((result for _, result in results), key=lambda r: r.remaining)
