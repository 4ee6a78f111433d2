"""Background task that periodically removes expired sessions."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from devops_maturity.core.errors import PersistenceError
from devops_maturity.observability import get_logger

logger = get_logger(__name__)


class SessionSweeper:
    """Runs a cleanup callable every ``interval_seconds`` until stopped.

    The sweep is idempotent, so overlapping sweeps from several processes are
    harmless. A failed sweep is logged and retried on the next tick.

    Args:
        cleanup: Coroutine function deleting expired sessions and returning
            the number of rows removed.
        interval_seconds: Delay between sweeps.
    """

    def __init__(self, cleanup: Callable[[], Awaitable[int]], interval_seconds: float) -> None:
        self._cleanup = cleanup
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        """Run one sweep. Storage failures are logged and reported as 0."""
        try:
            removed = await self._cleanup()
        except PersistenceError:
            logger.exception("Expired session sweep failed")
            return 0
        if removed:
            logger.info("Expired sessions removed", count=removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.sweep_once()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-sweeper")
        logger.info("Session sweeper started", interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Session sweeper stopped")
