"""
Health snapshot for the power monitor.

Combines process uptime and memory (via psutil) with the polling
supervisor's current PollingState. Building a snapshot has no side effects;
the /health endpoint returns it as-is for Docker HEALTHCHECK and operators.

CHANGELOG:
- 2026-10-08: Initial creation (STORY-013)

TODO:
- None
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import psutil

from plug_monitor.polling.supervisor import PollingState
from plug_monitor.services.calendar import utc_now

_MB = 1024 * 1024


def format_uptime(seconds: float) -> str:
    """Format seconds as ``"Xh Ym Zs"``."""
    total = int(seconds)
    return f"{total // 3600}h {(total % 3600) // 60}m {total % 60}s"


class HealthReporter:
    """Builds read-only health snapshots.

    Args:
        state_getter: Returns the current PollingState (usually
            ``lambda: supervisor.state``).
        started_at: ``time.monotonic()`` value at process start.
        clock: Returns the current aware instant for the snapshot timestamp.
    """

    def __init__(
        self,
        state_getter: Callable[[], PollingState],
        *,
        started_at: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._state_getter = state_getter
        self._started_at = time.monotonic() if started_at is None else started_at
        self._clock = clock
        self._process = psutil.Process()

    def uptime_s(self) -> float:
        return max(0.0, time.monotonic() - self._started_at)

    def memory(self) -> dict[str, str]:
        """Resident and virtual memory of this process in MB."""
        info = self._process.memory_info()
        return {
            "rss": f"{round(info.rss / _MB)}MB",
            "vms": f"{round(info.vms / _MB)}MB",
        }

    def snapshot(self) -> dict[str, Any]:
        """Return the current health snapshot as a JSON-ready dict."""
        state = self._state_getter()
        uptime = self.uptime_s()
        return {
            "status": "healthy",
            "uptime": format_uptime(uptime),
            "uptime_s": round(uptime, 3),
            "memory": self.memory(),
            "polling": {
                "consecutive_failures": state.consecutive_failures,
                "last_successful_poll": (
                    state.last_success_at.isoformat() if state.last_success_at else None
                ),
                "polling_interval_ms": state.interval_ms,
            },
            "timestamp": self._clock().isoformat(),
        }
