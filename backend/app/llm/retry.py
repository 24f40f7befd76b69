"""Bounded retries with exponential backoff for external service calls.

- Per-attempt timeout
- Exponential backoff min(base * 2**attempt, max)
- Only transient failures are retried
- Cancellation checked before each attempt and between retries
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from openai import APIConnectionError, InternalServerError, RateLimitError

from backend.app.errors import (
    OperationCancelledError,
    ServiceUnavailableError,
    TransientServiceError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CancelToken:
    """Token for cancellation signaling."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def throw_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancelled."""
        if self.cancelled:
            raise OperationCancelledError("operation cancelled")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for one logical call."""

    retries: int = 2
    backoff_base_ms: int = 1000
    backoff_max_ms: int = 5000
    timeout_s: float = 120.0

    def backoff_seconds(self, attempt: int) -> float:
        """Delay before retry number attempt+1 (attempt is 0-based)."""
        return min(self.backoff_base_ms * 2**attempt, self.backoff_max_ms) / 1000


def is_transient(exc: BaseException) -> bool:
    """Connection errors, timeouts, 429 and 5xx are worth retrying."""
    # APITimeoutError is a subclass of APIConnectionError
    return isinstance(
        exc,
        TimeoutError | APIConnectionError | RateLimitError | InternalServerError | TransientServiceError,
    )


class RetryingCaller:
    """Runs an async call under a RetryPolicy."""

    def __init__(
        self,
        policy: RetryPolicy,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize caller.

        Args:
            policy: Timeout and retry budget
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self.policy = policy
        self._sleep = sleep_fn or asyncio.sleep

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        cancel_token: CancelToken | None = None,
        *,
        operation: str = "request",
    ) -> T:
        """Call fn until it succeeds or the retry budget is spent.

        Raises:
            OperationCancelledError: Token cancelled before or between attempts
            ServiceUnavailableError: Every attempt failed transiently
            Exception: Any non-transient error from fn, unchanged
        """
        if cancel_token is None:
            cancel_token = CancelToken()

        attempts = self.policy.retries + 1
        last_error: BaseException | None = None

        for attempt in range(attempts):
            cancel_token.throw_if_cancelled()
            try:
                return await asyncio.wait_for(fn(), timeout=self.policy.timeout_s)
            except Exception as e:
                if not is_transient(e):
                    raise
                last_error = e
                logger.warning(
                    f"{operation} attempt {attempt + 1}/{attempts} failed: {type(e).__name__}",
                    extra={
                        "structured": {
                            "operation": operation,
                            "attempt": attempt + 1,
                            "error_reason": type(e).__name__,
                        }
                    },
                )

            if attempt < attempts - 1:
                cancel_token.throw_if_cancelled()
                await self._sleep(self.policy.backoff_seconds(attempt))

        raise ServiceUnavailableError(
            f"{operation} failed after {attempts} attempts"
        ) from last_error
