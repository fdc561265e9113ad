"""
WebSocket live channel.

Each connected client is registered with the LiveFanout and receives a JSON
TransformedReading after every successful poll, or an ErrorNotice right
before a forced restart. The channel is server-to-client; anything the client
sends is read and discarded so disconnects are noticed promptly.

Served on ``/ws`` and, for dashboards that connect to the bare host, on ``/``.

CHANGELOG:
- 2026-10-07: Initial creation (STORY-010)

TODO:
- None
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from plug_monitor.services.fanout import WebSocketObserver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


async def live_updates(websocket: WebSocket) -> None:
    """Register the socket as an observer until the client disconnects."""
    fanout = websocket.app.state.components.fanout
    await websocket.accept()
    observer = WebSocketObserver(websocket)
    fanout.register(observer)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect as exc:
        logger.debug("WebSocket client disconnected (code=%s)", exc.code)
    finally:
        fanout.unregister(observer)


router.add_api_websocket_route("/ws", live_updates)
router.add_api_websocket_route("/", live_updates)
