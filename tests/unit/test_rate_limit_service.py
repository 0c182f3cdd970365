"""
Unit tests for app/services/rate_limit_service.py.
"""

from unittest.mock import MagicMock

from app.services.rate_limit_service import RateLimiter, client_key


def make_request(forwarded=None, host="10.1.2.3"):
    request = MagicMock()
    request.headers = {"x-forwarded-for": forwarded} if forwarded is not None else {}
    request.client.host = host
    return request


class TestRateLimiter:
    """Fixed window counting."""

    def test_allows_up_to_limit(self, frozen_time):
        limiter = RateLimiter(max_requests=100, window_seconds=60)
        assert all(limiter.hit("1.1.1.1") for _ in range(100))
        assert limiter.hit("1.1.1.1") is False

    def test_window_reset(self, frozen_time):
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        limiter.hit("a")
        limiter.hit("a")
        assert not limiter.hit("a")

        frozen_time.advance(59)
        assert not limiter.hit("a")

        frozen_time.advance(2)
        assert limiter.hit("a")

    def test_keys_independent(self, frozen_time):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.hit("a")
        assert not limiter.hit("a")
        assert limiter.hit("b")

    def test_retry_after(self, frozen_time):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.retry_after("a") == 0
        limiter.hit("a")
        frozen_time.advance(20)
        assert limiter.retry_after("a") == 40

    def test_limiters_do_not_share_counts(self, frozen_time):
        first = RateLimiter(max_requests=1, window_seconds=60)
        second = RateLimiter(max_requests=1, window_seconds=60)
        assert first.hit("a")
        assert second.hit("a")

    def test_item_matches_settings(self):
        limiter = RateLimiter(max_requests=100, window_seconds=60)
        assert limiter.item.amount == 100
        assert limiter.item.get_expiry() == 60


class TestClientKey:
    """Client identity."""

    def test_first_forwarded_hop(self):
        assert client_key(make_request("203.0.113.7, 10.0.0.1")) == "203.0.113.7"

    def test_peer_address(self):
        assert client_key(make_request()) == "10.1.2.3"

    def test_blank_forwarded_header(self):
        assert client_key(make_request(" ")) == "10.1.2.3"

    def test_no_client(self):
        request = make_request()
        request.client = None
        assert client_key(request) == "unknown"
