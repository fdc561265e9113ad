"""
Administrative restart endpoint.

POST /restart asks the polling supervisor for a graceful restart (exit
status 0 after a short grace delay). The external process manager starts
the service again.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-011)

TODO:
- None
"""

import logging
from typing import Any

from fastapi import APIRouter

from plug_monitor.api.deps import AppComponents
from plug_monitor.services.calendar import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.post("/restart")
async def restart(components: AppComponents) -> dict[str, Any]:
    """Schedule a manual restart of the service."""
    supervisor = components.supervisor
    scheduled = supervisor.request_restart()
    delay = supervisor.manual_restart_delay_s
    return {
        "message": (
            f"Server restarting in {delay:g} seconds..."
            if scheduled
            else "Restart already pending"
        ),
        "scheduled": scheduled,
        "timestamp": utc_now().isoformat(),
    }
