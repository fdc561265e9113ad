"""
Relay control endpoints for the smart plug.

POST /switch turns the relay on or off; GET /switch-status reads the
current ``switch_1`` datapoint from the device. Both talk to the device
provider directly and report failures as ``{"success": false, ...}`` JSON;
neither touches the polling state.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-016)

TODO:
- None
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from plug_monitor.api.deps import AppComponents, AppSettings
from plug_monitor.errors import ValidationFailure
from plug_monitor.models import CODE_SWITCH
from plug_monitor.services.calendar import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["switch"])


def parse_switch_state(payload: Any) -> bool:
    """Extract a strict boolean ``state`` from the request body.

    Raises:
        ValidationFailure: If the body is not an object or ``state`` is not
            a JSON boolean (``1``, ``"true"`` and missing values are rejected).
    """
    state = payload.get("state") if isinstance(payload, dict) else None
    if not isinstance(state, bool):
        raise ValidationFailure("Invalid state parameter. Must be true (on) or false (off)")
    return state


@router.post("/switch", response_model=None)
async def switch(
    components: AppComponents,
    settings: AppSettings,
    payload: Annotated[Any, Body()] = None,
) -> dict[str, Any] | JSONResponse:
    """Turn the plug on (``{"state": true}``) or off (``{"state": false}``).

    Returns:
        dict: ``{"success": true, "message": ..., "data": <provider response>}``.
        HTTP 400 for a non-boolean state, HTTP 500 when the provider fails.
    """
    state = parse_switch_state(payload)

    try:
        result = await components.provider.send_command(
            settings.tuya_device_id,
            [{"code": CODE_SWITCH, "value": state}],
        )
    except Exception as exc:
        logger.error("Error controlling device switch", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to control device switch",
                "details": str(exc),
            },
        )

    if result and result.get("success") is not False:
        return {
            "success": True,
            "message": f"Device switched {'on' if state else 'off'} successfully",
            "data": result,
        }

    logger.warning("Device rejected switch command: %s", result)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Failed to control device switch",
            "data": result,
        },
    )


@router.get("/switch-status", response_model=None)
async def switch_status(
    components: AppComponents,
    settings: AppSettings,
) -> dict[str, Any] | JSONResponse:
    """Return the relay state reported by the device."""
    try:
        readings = await components.provider.fetch_status(settings.tuya_device_id)
    except Exception as exc:
        logger.error("Error fetching switch status", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to fetch switch status from Tuya API",
                "details": str(exc),
            },
        )

    switch_reading = next((r for r in readings if r.code == CODE_SWITCH), None)
    if switch_reading is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Switch status not found in device data"},
        )

    now = utc_now().isoformat()
    return {
        "success": True,
        "data": {
            "switch": switch_reading.value,
            "timestamp": now,
            "lastUpdated": now,
        },
    }
