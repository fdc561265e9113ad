"""
Controlled process restart.

The power monitor recovers from sustained device failures by exiting and
letting the external process manager (systemd, Docker restart policy, pm2)
start it again. ProcessRestarter schedules that exit after a grace delay so
observers can be told first and in-flight requests can finish.

Only one restart is ever pending. Later requests while one is scheduled are
logged and ignored, unless they carry a higher exit status: a failure
restart replaces a pending manual restart so sustained failure always exits
non-zero.

CHANGELOG:
- 2026-10-20: Failure restart replaces a pending manual restart (STORY-018)
- 2026-10-08: Initial creation (STORY-011)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable

logger = logging.getLogger(__name__)


def _hard_exit(code: int) -> None:
    """Flush log handlers and terminate the process immediately."""
    logging.shutdown()
    os._exit(code)


class ProcessRestarter:
    """Schedules a delayed process exit.

    Args:
        exit_fn: Called with the exit status once the delay elapses.
            Defaults to flushing logs and ``os._exit``; tests inject a
            recorder.
    """

    def __init__(self, exit_fn: Callable[[int], None] = _hard_exit) -> None:
        self._exit_fn = exit_fn
        self._task: asyncio.Task[None] | None = None
        self._exit_code = 0

    @property
    def pending(self) -> bool:
        """True while a scheduled restart has not yet fired or been cancelled."""
        return self._task is not None and not self._task.done()

    def schedule(self, delay_s: float, exit_code: int, reason: str) -> bool:
        """Schedule an exit with ``exit_code`` after ``delay_s`` seconds.

        A pending restart is kept unless the new request carries a higher
        exit status, in which case it replaces the pending one. A failure
        restart (status 1) therefore wins over a pending manual restart
        (status 0).

        Args:
            delay_s: Grace delay in seconds.
            exit_code: Process exit status (non-zero for failure restarts).
            reason: Human-readable reason, logged when scheduling and exiting.

        Returns:
            True if a restart was scheduled, False if an equal or more severe
            one was already pending.
        """
        if self.pending:
            if exit_code <= self._exit_code:
                logger.warning("Restart already pending, ignoring request: %s", reason)
                return False
            logger.warning(
                "Replacing pending restart (exit status %d) with exit status %d: %s",
                self._exit_code,
                exit_code,
                reason,
            )
            self._task.cancel()
        logger.warning(
            "Restart scheduled in %.1fs with exit status %d: %s",
            delay_s,
            exit_code,
            reason,
        )
        self._exit_code = exit_code
        self._task = asyncio.get_running_loop().create_task(
            self._exit_later(delay_s, exit_code, reason)
        )
        return True

    async def _exit_later(self, delay_s: float, exit_code: int, reason: str) -> None:
        await asyncio.sleep(delay_s)
        logger.critical("Restarting now (exit status %d): %s", exit_code, reason)
        self._exit_fn(exit_code)

    async def cancel(self) -> None:
        """Cancel a pending restart, e.g. on orderly shutdown."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Pending restart cancelled")
