"""
Health and timezone diagnostics endpoints.

GET /health returns the HealthReporter snapshot (uptime, memory, polling
state). GET /timezone-test shows how the request's timezone was resolved and
the UTC bounds of "today" in that zone. No authentication is required; both
are intended for Docker HEALTHCHECK and operators.

CHANGELOG:
- 2026-10-12: Add /timezone-test (STORY-015)
- 2026-10-11: Initial creation (STORY-013)

TODO:
- None
"""

import time
from typing import Any

from fastapi import APIRouter

from plug_monitor.api.deps import AppComponents, Zone
from plug_monitor.services.calendar import day_boundaries, offset_label, utc_now

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(components: AppComponents) -> dict[str, Any]:
    """Return process and polling health.

    Returns:
        dict: Snapshot with ``status``, ``uptime``, ``memory``, ``polling``
        and ``timestamp``.
    """
    return components.health.snapshot()


@router.get("/timezone-test")
async def timezone_test(zone: Zone) -> dict[str, Any]:
    """Show how the request's timezone resolves and today's UTC bounds."""
    now = utc_now()
    start, end = day_boundaries(now, zone.tz)
    return {
        "serverTime": now.isoformat(),
        "serverTimezone": time.tzname[0],
        "requestedTimezone": zone.name,
        "resolvedOffset": offset_label(zone.tz),
        "localTime": now.astimezone(zone.tz).isoformat(),
        "todayStart": start.isoformat(),
        "todayEnd": end.isoformat(),
    }
