"""Tests for upload rate limiting."""

import uuid
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from backend.app.db.context import RequestContext
from backend.app.db.inmemory import InMemoryRateLimiter
from backend.app.middleware.ratelimit import RateLimitPolicy, create_default_bucket_map
from backend.app.ratelimit import UPLOAD_BUCKET, RedisRateLimiter, make_rate_limit_key


def test_rate_limiter_allows_under_quota() -> None:
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60)
    now = datetime.now()

    for i in range(5):
        assert limiter.check_quota("test:key:bucket", now + timedelta(seconds=i)) is None


def test_rate_limiter_blocks_over_quota() -> None:
    limiter = InMemoryRateLimiter(max_requests=3, window_seconds=60)
    now = datetime.now()

    for _ in range(3):
        assert limiter.check_quota("test:key:bucket", now) is None

    retry_after = limiter.check_quota("test:key:bucket", now)
    assert retry_after is not None
    assert retry_after.seconds == 60


def test_rate_limiter_resets_after_window() -> None:
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)
    now = datetime.now()

    limiter.check_quota("test:key:bucket", now)
    limiter.check_quota("test:key:bucket", now)
    assert limiter.check_quota("test:key:bucket", now) is not None

    assert limiter.check_quota("test:key:bucket", now + timedelta(seconds=61)) is None


def test_rate_limit_keys_are_per_user() -> None:
    org_id = uuid.uuid4()
    alice = RequestContext(org_id=org_id, user_id=uuid.uuid4())
    bob = RequestContext(org_id=org_id, user_id=uuid.uuid4())

    assert make_rate_limit_key(alice, UPLOAD_BUCKET) != make_rate_limit_key(bob, UPLOAD_BUCKET)
    assert make_rate_limit_key(alice, UPLOAD_BUCKET).endswith(":upload")


def test_policy_only_limits_mapped_routes() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=900)
    policy = RateLimitPolicy(limiter, create_default_bucket_map())
    ctx = RequestContext(org_id=uuid.uuid4(), user_id=uuid.uuid4())
    now = datetime.now()

    assert policy.check_rate_limit("POST", "/knowledge/upload", ctx, now) == (True, 0)
    # Same bucket shared by knowledge and document uploads
    allowed, retry_after = policy.check_rate_limit("POST", "/documents/", ctx, now)
    assert not allowed
    assert retry_after == 900
    # Unmapped routes are never limited
    assert policy.check_rate_limit("GET", "/documents", ctx, now) == (True, 0)


def test_redis_limiter_sets_expiry_on_first_hit() -> None:
    client = MagicMock()
    client.incr.return_value = 1
    limiter = RedisRateLimiter(client, max_requests=10, window_seconds=900)
    now = datetime.fromtimestamp(1_800_000_000)

    assert limiter.check_quota("org:user:upload", now) is None

    window_start = 1_800_000_000 // 900 * 900
    client.incr.assert_called_once_with(f"ratelimit:org:user:upload:{window_start}")
    client.expire.assert_called_once_with(f"ratelimit:org:user:upload:{window_start}", 900)


def test_redis_limiter_blocks_over_quota() -> None:
    client = MagicMock()
    client.incr.return_value = 11
    limiter = RedisRateLimiter(client, max_requests=10, window_seconds=900)
    now = datetime.fromtimestamp(1_800_000_000)

    retry_after = limiter.check_quota("org:user:upload", now)

    window_start = 1_800_000_000 // 900 * 900
    assert retry_after is not None
    assert retry_after.seconds == window_start + 900 - 1_800_000_000
    client.expire.assert_not_called()
