"""Rate limit enforcement for upload routes."""

from datetime import datetime
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from backend.app.api.auth import get_current_context
from backend.app.api.dependencies import get_upload_rate_limiter
from backend.app.db.context import RequestContext
from backend.app.db.repositories import RateLimiter
from backend.app.ratelimit import UPLOAD_BUCKET, make_rate_limit_key


class RateLimitPolicy:
    """Maps "METHOD /path" rules to buckets and checks them against a limiter."""

    def __init__(self, limiter: RateLimiter, bucket_map: dict[str, str]) -> None:
        self._limiter = limiter
        self._bucket_map = bucket_map

    def check_rate_limit(
        self, method: str, path: str, ctx: RequestContext, now: datetime | None = None
    ) -> tuple[bool, int]:
        """Returns (allowed, retry_after_seconds)."""
        bucket = self._get_bucket(method, path)
        if bucket is None:
            return (True, 0)

        retry_after = self._limiter.check_quota(
            make_rate_limit_key(ctx, bucket), now or datetime.now()
        )
        if retry_after is None:
            return (True, 0)
        return (False, retry_after.seconds)

    def _get_bucket(self, method: str, path: str) -> str | None:
        request_line = f"{method.upper()} {path.rstrip('/')}"
        return self._bucket_map.get(request_line)


def create_default_bucket_map() -> dict[str, str]:
    return {
        "POST /knowledge/upload": UPLOAD_BUCKET,
        "POST /documents": UPLOAD_BUCKET,
    }


async def enforce_upload_rate_limit(
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    limiter: Annotated[RateLimiter, Depends(get_upload_rate_limiter)],
) -> None:
    """Route dependency: 429 with Retry-After once the user's upload quota is spent."""
    policy = RateLimitPolicy(limiter, create_default_bucket_map())
    allowed, retry_after = policy.check_rate_limit(request.method, request.url.path, ctx)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many uploads, please try again later",
            headers={"Retry-After": str(retry_after)},
        )
