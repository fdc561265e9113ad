"""
Polling supervisor: fetch -> persist -> broadcast on a fixed cadence.

Each tick asks the device telemetry provider for the plug's status (bounded
by a fetch timeout), appends the resulting Sample to the telemetry store and
pushes the transformed reading to live observers. Ticks are serialized: a
new tick never starts while the previous one is still running, and ticks
start on a fixed interval whether the previous one succeeded or failed.
There is no backoff.

Failure handling is fail-fast. Every failed tick (timeout, connection error,
protocol error, persistence failure, anything else) increments the
consecutive failure counter and is logged with its phase and classification.
When the counter reaches the threshold the supervisor broadcasts an error
notice and schedules one process restart with a non-zero exit status; the
external process manager brings the service back. A successful tick ends
the outage, so a later outage escalates again.

PollingState is a frozen snapshot replaced wholesale after each tick, so
readers (the health endpoint) never observe a half-updated state.

CHANGELOG:
- 2026-10-20: Re-arm escalation after recovery; malformed status counts as a
  failed fetch (STORY-018)
- 2026-10-09: Count failed appends as failed ticks (STORY-011)
- 2026-10-08: Threshold-triggered restart and manual restart (STORY-011)
- 2026-10-06: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from plug_monitor.errors import classify
from plug_monitor.models import ErrorNotice, Sample, transform
from plug_monitor.services.calendar import utc_now

if TYPE_CHECKING:
    from plug_monitor.device.provider import DeviceTelemetryProvider
    from plug_monitor.services.fanout import LiveFanout
    from plug_monitor.services.store import TelemetryStore

logger = logging.getLogger(__name__)

FAILURE_EXIT_CODE = 1
MANUAL_EXIT_CODE = 0
RESTART_NOTICE = "Server restarting due to persistent API failures"


class Restarter(Protocol):
    """Capability to schedule a delayed process restart."""

    def schedule(self, delay_s: float, exit_code: int, reason: str) -> bool: ...


@dataclass(frozen=True)
class PollingState:
    """Snapshot of the polling loop's health.

    Attributes:
        consecutive_failures: Length of the current run of failed ticks.
        last_success_at: Timestamp of the last successful tick, if any.
        interval_ms: Tick interval in milliseconds.
    """

    consecutive_failures: int = 0
    last_success_at: datetime | None = None
    interval_ms: int = 5000


class PollingSupervisor:
    """Runs the serialized poll loop and escalates sustained failure.

    Args:
        provider: Device telemetry provider.
        store: Telemetry store receiving one Sample per successful tick.
        fanout: Live fan-out for transformed readings and error notices.
        restarter: Restart capability (see ProcessRestarter).
        device_id: Identifier of the polled device.
        interval_s: Seconds between tick starts.
        fetch_timeout_s: Upper bound for one provider fetch.
        failure_threshold: Consecutive failures that trigger a restart.
        failure_restart_delay_s: Grace delay before the failure restart.
        manual_restart_delay_s: Grace delay before a manual restart.
        clock: Returns the current aware instant. Injected for tests.
    """

    def __init__(
        self,
        *,
        provider: DeviceTelemetryProvider,
        store: TelemetryStore,
        fanout: LiveFanout,
        restarter: Restarter,
        device_id: str,
        interval_s: float = 5.0,
        fetch_timeout_s: float = 10.0,
        failure_threshold: int = 40,
        failure_restart_delay_s: float = 10.0,
        manual_restart_delay_s: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._provider = provider
        self._store = store
        self._fanout = fanout
        self._restarter = restarter
        self._device_id = device_id
        self._interval_s = interval_s
        self._fetch_timeout_s = fetch_timeout_s
        self._failure_threshold = failure_threshold
        self._failure_restart_delay_s = failure_restart_delay_s
        self._manual_restart_delay_s = manual_restart_delay_s
        self._clock = clock
        self._state = PollingState(interval_ms=int(interval_s * 1000))
        self._escalated = False

    @property
    def state(self) -> PollingState:
        """Current polling state snapshot."""
        return self._state

    @property
    def escalated(self) -> bool:
        """True once the current outage has triggered a restart."""
        return self._escalated

    # ------------------------------------------------------------------
    # Single tick
    # ------------------------------------------------------------------

    async def tick(self) -> bool:
        """Run one poll tick.

        Returns:
            True if a sample was fetched, stored and broadcast; False if the
            tick failed (the failure is counted and logged, never raised).
        """
        try:
            readings = await asyncio.wait_for(
                self._provider.fetch_status(self._device_id),
                timeout=self._fetch_timeout_s,
            )
            sample = Sample(timestamp=self._clock(), readings=tuple(readings))
        except Exception as exc:
            await self._record_failure("fetch", exc)
            return False

        try:
            await self._store.append(sample)
        except Exception as exc:
            await self._record_failure("persist", exc)
            return False

        self._state = replace(
            self._state,
            consecutive_failures=0,
            last_success_at=sample.timestamp,
        )
        # A later outage must be able to escalate again.
        self._escalated = False

        delivered = await self._fanout.broadcast(transform(sample))
        logger.info(
            "Polling successful at %s (%d readings, %d observers)",
            sample.timestamp.isoformat(),
            len(sample.readings),
            delivered,
        )
        return True

    async def _record_failure(self, phase: str, exc: BaseException) -> None:
        failures = self._state.consecutive_failures + 1
        self._state = replace(self._state, consecutive_failures=failures)
        logger.error(
            "Polling failed (%d consecutive) during %s [%s]: %s",
            failures,
            phase,
            classify(exc),
            str(exc) or type(exc).__name__,
        )
        if failures >= self._failure_threshold and not self._escalated:
            await self._escalate(failures)

    async def _escalate(self, failures: int) -> None:
        self._escalated = True
        logger.critical(
            "CRITICAL: %d consecutive polling failures. Restarting in %.0f seconds",
            failures,
            self._failure_restart_delay_s,
        )
        await self._fanout.broadcast(
            ErrorNotice(error=RESTART_NOTICE, timestamp=self._clock())
        )
        scheduled = self._restarter.schedule(
            self._failure_restart_delay_s,
            FAILURE_EXIT_CODE,
            f"{failures} consecutive polling failures",
        )
        if not scheduled:
            logger.warning("Failure restart not scheduled; a restart is already pending")

    # ------------------------------------------------------------------
    # Administrative restart
    # ------------------------------------------------------------------

    def request_restart(self) -> bool:
        """Schedule a graceful restart independent of the failure counter.

        Returns:
            True if scheduled, False if a restart is already pending.
        """
        logger.warning("Manual restart requested")
        return self._restarter.schedule(
            self._manual_restart_delay_s,
            MANUAL_EXIT_CODE,
            "manual restart requested",
        )

    @property
    def manual_restart_delay_s(self) -> float:
        return self._manual_restart_delay_s

    # ------------------------------------------------------------------
    # Loop runner
    # ------------------------------------------------------------------

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Tick on a fixed cadence until ``shutdown_event`` is set.

        Tick starts are ``interval_s`` apart. A tick that overruns the
        interval delays the next one; ticks never overlap.
        """
        logger.info(
            "Poll loop started (device=%s, interval=%ss)",
            self._device_id,
            self._interval_s,
        )
        loop = asyncio.get_running_loop()
        while not shutdown_event.is_set():
            started = loop.time()
            try:
                await self.tick()
            except Exception:
                logger.error("Poll cycle error", exc_info=True)
            remaining = max(0.0, self._interval_s - (loop.time() - started))
            # Use wait with timeout so we can check shutdown between sleeps
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(shutdown_event.wait(), timeout=remaining)
        logger.info("Poll loop stopped")
