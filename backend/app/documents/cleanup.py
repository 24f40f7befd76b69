"""Periodic purge of expired chat documents."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from backend.app.documents.service import DocumentService

logger = logging.getLogger(__name__)


class DocumentCleanupTask:
    """Runs DocumentService.purge_expired once at start, then on an interval."""

    def __init__(
        self,
        documents: DocumentService,
        interval_minutes: float = 60,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.documents = documents
        self.interval_s = interval_minutes * 60
        self._sleep = sleep_fn or asyncio.sleep
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="document-cleanup")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run_once(self) -> int:
        """One sweep; errors are logged so the loop keeps going."""
        try:
            return await self.documents.purge_expired()
        except Exception:
            logger.exception("Document cleanup sweep failed")
            return 0

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await self._sleep(self.interval_s)
