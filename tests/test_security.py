"""
Tests for rate limiting and announcement sanitizing.

Run with: pytest tests/test_security.py -v
"""

from crevion.security import RateLimiter, sanitize_announcement


class TestSanitizeAnnouncement:
    def test_mass_mentions_are_broken(self):
        text = sanitize_announcement("Hey @everyone and @here!")
        assert "@everyone" not in text
        assert "@here" not in text
        assert "everyone" in text

    def test_plain_text_untouched(self):
        assert sanitize_announcement("Meeting at 5") == "Meeting at 5"

    def test_truncated(self):
        assert len(sanitize_announcement("x" * 3000)) == 2000

    def test_empty(self):
        assert sanitize_announcement("") == ""


class TestRateLimiter:
    def test_limit_per_user(self):
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        assert not limiter.is_rate_limited(1)
        assert not limiter.is_rate_limited(1)
        assert limiter.is_rate_limited(1)
        assert not limiter.is_rate_limited(2)

    def test_window_expires(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("crevion.security.time.time", lambda: now[0])
        limiter = RateLimiter(max_requests=1, window_seconds=10)
        assert not limiter.is_rate_limited(1)
        assert limiter.is_rate_limited(1)
        now[0] += 11
        assert not limiter.is_rate_limited(1)

    def test_expired_users_are_forgotten(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("crevion.security.time.time", lambda: now[0])
        limiter = RateLimiter(max_requests=2, window_seconds=10)
        for user_id in range(50):
            limiter.is_rate_limited(user_id)
        assert len(limiter.request_counts) == 50

        now[0] += 11
        limiter.is_rate_limited(999)
        assert list(limiter.request_counts) == [999]

    def test_refused_requests_are_not_counted(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("crevion.security.time.time", lambda: now[0])
        limiter = RateLimiter(max_requests=1, window_seconds=10)
        assert not limiter.is_rate_limited(1)
        now[0] += 5
        assert limiter.is_rate_limited(1)
        now[0] += 6
        assert not limiter.is_rate_limited(1)
