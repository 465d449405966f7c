"""Rate Limiter — tests for fixed-window counting per client."""

import pytest

from cctv_api.api.rate_limit import RateLimiter
from cctv_api.core.errors import RateLimitedError


def test_allows_up_to_max_requests():
    limiter = RateLimiter(max_requests=3, window_seconds=60)
    for _ in range(3):
        limiter.hit("1.2.3.4", now=100.0)


def test_blocks_request_over_max_with_retry_after():
    limiter = RateLimiter(max_requests=2, window_seconds=60)
    limiter.hit("1.2.3.4", now=100.0)
    limiter.hit("1.2.3.4", now=110.0)
    with pytest.raises(RateLimitedError) as exc:
        limiter.hit("1.2.3.4", now=120.0)
    assert exc.value.context.retry_after_seconds == 40


def test_window_resets_after_expiry():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.hit("1.2.3.4", now=100.0)
    limiter.hit("1.2.3.4", now=161.0)


def test_clients_counted_separately():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.hit("1.2.3.4", now=100.0)
    limiter.hit("5.6.7.8", now=100.0)


def test_limiters_do_not_share_counts():
    first = RateLimiter(max_requests=1, window_seconds=60)
    second = RateLimiter(max_requests=1, window_seconds=60)
    first.hit("1.2.3.4", now=100.0)
    second.hit("1.2.3.4", now=100.0)
