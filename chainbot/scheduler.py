"""Execution units for triggered chains.

Every triggering message becomes one asyncio task (an execution unit)
that parses, dispatches and delivers on its own, so message reception
never waits on a slow command. Units are tracked only so shutdown can
wait for or cancel them; each unit drops out of the set when it
finishes, however it finishes.
"""

import asyncio
import inspect
from typing import Awaitable, Optional, Set

import structlog

logger = structlog.get_logger("chainbot.scheduler")


class ExecutionScheduler:
    """Spawns and supervises execution units.

    Failures inside a unit are logged with their traceback and
    contained; they never reach the caller of spawn() or other units.
    """

    def __init__(self):
        self._units: Set[asyncio.Task] = set()
        self._counter = 0

    @property
    def in_flight(self) -> int:
        """Number of units that have not finished yet."""
        return len(self._units)

    def spawn(self, work: Awaitable[None], name: Optional[str] = None) -> asyncio.Task:
        """Schedule ``work`` as an independent unit and return its task."""
        self._counter += 1
        name = name or f"ct-{self._counter}"
        task = asyncio.create_task(self._supervise(work, name), name=name)
        self._units.add(task)
        task.add_done_callback(self._units.discard)
        if inspect.iscoroutine(work):
            # A unit cancelled before its first step never starts ``work``
            task.add_done_callback(lambda _: work.close())
        logger.debug("unit_spawned", unit=name, in_flight=len(self._units))
        return task

    async def _supervise(self, work: Awaitable[None], name: str) -> None:
        try:
            await work
        except asyncio.CancelledError:
            logger.info("unit_cancelled", unit=name)
            raise
        except Exception as e:
            logger.error(
                "unit_failed",
                unit=name,
                error=str(e),
                exc_type=type(e).__name__,
                exc_info=True,
            )

    async def drain(self, timeout: Optional[float] = None) -> int:
        """Wait for in-flight units, cancelling any still running after ``timeout``.

        Returns:
            Number of units that had to be cancelled.
        """
        if not self._units:
            return 0
        _, pending = await asyncio.wait(set(self._units), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("units_cancelled_on_shutdown", count=len(pending))
        return len(pending)
