"""Upload rate limiting backed by Redis."""

from datetime import datetime

import redis

from backend.app.db.context import RequestContext
from backend.app.db.repositories import RetryAfter

UPLOAD_BUCKET = "upload"


def make_rate_limit_key(ctx: RequestContext, bucket: str) -> str:
    """Per-user key: uploads are limited per user, not per org."""
    return f"{ctx.org_id}:{ctx.user_id}:{bucket}"


class RedisRateLimiter:
    """Fixed-window limiter using INCR + EXPIRE on a window-aligned key."""

    def __init__(
        self, redis_client: redis.Redis, max_requests: int, window_seconds: int = 900
    ) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        window_start = int(now.timestamp() // self._window_seconds) * self._window_seconds
        redis_key = f"ratelimit:{key}:{window_start}"

        count = self._redis.incr(redis_key)
        if count == 1:
            self._redis.expire(redis_key, self._window_seconds)

        if count > self._max_requests:
            remaining = window_start + self._window_seconds - int(now.timestamp())
            return RetryAfter(seconds=max(1, remaining))
        return None
