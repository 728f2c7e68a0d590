"""Security utilities - rate limiting and text sanitization"""
import re
import time
from typing import Dict, List, Optional

MENTION_PATTERN = re.compile(r"@(everyone|here)")


def sanitize_announcement(text: str, max_length: int = 2000) -> str:
    """Neutralise mass mentions in text the bot repeats on someone's behalf.

    Args:
        text: Text to sanitize
        max_length: Maximum length to truncate to

    Returns:
        Sanitized text string

    """
    if not text:
        return ""

    # Zero-width space breaks the mention without changing how it reads
    text = MENTION_PATTERN.sub("@\u200b\\1", text)

    if len(text) > max_length:
        text = text[:max_length]

    return text


class RateLimiter:
    """Sliding-window request limit per user.

    Only users with a request inside the window are kept in memory.
    """

    def __init__(self, max_requests: int = 5, window_seconds: int = 30):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.request_counts: Dict[int, List[float]] = {}

    def is_rate_limited(self, user_id: int) -> bool:
        """Record a request from ``user_id`` unless it is over the limit.

        Returns:
            True if the request should be refused

        """
        now = time.time()
        self.prune(now)

        recent = self.request_counts.get(user_id, [])
        if len(recent) >= self.max_requests:
            return True
        self.request_counts[user_id] = recent + [now]
        return False

    def prune(self, now: Optional[float] = None):
        """Drop expired timestamps and forget users with none left."""
        if now is None:
            now = time.time()
        for user_id in list(self.request_counts):
            recent = [t for t in self.request_counts[user_id] if now - t < self.window_seconds]
            if recent:
                self.request_counts[user_id] = recent
            else:
                del self.request_counts[user_id]
