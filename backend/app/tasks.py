"""Fire-and-forget background work with bounded runtime."""

import asyncio
import logging
from collections.abc import Awaitable

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Schedules best-effort coroutines off the request path.

    Holds a strong reference to every pending task (the event loop only keeps
    weak ones). Failures and timeouts are logged and never reach the caller.
    """

    def __init__(self, default_timeout_s: float = 30.0) -> None:
        self.default_timeout_s = default_timeout_s
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(
        self, coro: Awaitable[object], *, name: str, timeout_s: float | None = None
    ) -> asyncio.Task[None]:
        timeout = timeout_s if timeout_s is not None else self.default_timeout_s
        task = asyncio.create_task(self._run(coro, name, timeout), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Awaitable[object], name: str, timeout_s: float) -> None:
        try:
            await asyncio.wait_for(coro, timeout=timeout_s)
        except TimeoutError:
            logger.warning(f"Background task {name} timed out after {timeout_s}s")
        except asyncio.CancelledError:
            logger.info(f"Background task {name} cancelled")
            raise
        except Exception:
            logger.exception(f"Background task {name} failed")

    async def drain(self) -> None:
        """Wait for every task scheduled so far (including ones they spawn)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding tasks and wait for them to finish."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
