"""
Live fan-out of telemetry updates to connected observers.

Keeps the set of currently connected observers and pushes each JSON payload
to all of them. Delivery is best-effort and at-most-once: an observer that is
not ready at broadcast time simply misses that update, and an observer whose
send fails or times out is dropped from the set. Nothing is queued or
retried, and one broken observer never fails the broadcast for the others.

The observer set is copied before iteration, so observers may connect or
disconnect while a broadcast is in flight.

CHANGELOG:
- 2026-10-07: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol, runtime_checkable

from pydantic import BaseModel
from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


@runtime_checkable
class Observer(Protocol):
    """Anything that can receive live updates."""

    def is_ready(self) -> bool:
        """Return True when the channel can accept data right now."""
        ...

    async def send_text(self, data: str) -> None:
        """Send one encoded payload."""
        ...


class WebSocketObserver:
    """Adapts a FastAPI/Starlette WebSocket to the :class:`Observer` protocol.

    Args:
        websocket: An accepted WebSocket connection.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    def is_ready(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)

    def __repr__(self) -> str:
        return f"WebSocketObserver(client={self.websocket.client!r})"


class LiveFanout:
    """Registry of live observers with best-effort broadcast.

    Args:
        send_timeout_s: Upper bound for a single observer send. A slower
            observer is treated as failed and unregistered.
    """

    def __init__(self, *, send_timeout_s: float = 1.0) -> None:
        self._observers: set[Observer] = set()
        self._send_timeout_s = send_timeout_s

    @property
    def observer_count(self) -> int:
        """Number of currently registered observers."""
        return len(self._observers)

    def register(self, observer: Observer) -> None:
        """Add an observer; registering twice is a no-op."""
        self._observers.add(observer)
        logger.info("Observer connected (%d total)", len(self._observers))

    def unregister(self, observer: Observer) -> None:
        """Remove an observer; unknown observers are ignored."""
        if observer in self._observers:
            self._observers.discard(observer)
            logger.info("Observer disconnected (%d total)", len(self._observers))

    async def broadcast(self, payload: BaseModel | dict) -> int:
        """Send ``payload`` to every ready observer.

        Args:
            payload: A pydantic model or JSON-compatible dict.

        Returns:
            The number of observers the payload was delivered to.
        """
        observers = list(self._observers)
        if not observers:
            return 0

        if isinstance(payload, BaseModel):
            data = payload.model_dump_json()
        else:
            data = json.dumps(payload, default=str)

        ready = [observer for observer in observers if observer.is_ready()]
        if not ready:
            return 0

        results = await asyncio.gather(
            *(self._send(observer, data) for observer in ready),
        )
        delivered = sum(1 for ok in results if ok)
        logger.debug("Broadcast delivered to %d/%d observers", delivered, len(observers))
        return delivered

    async def _send(self, observer: Observer, data: str) -> bool:
        try:
            await asyncio.wait_for(observer.send_text(data), timeout=self._send_timeout_s)
        except Exception as exc:
            logger.warning(
                "Dropping observer %r after failed send (%s: %s)",
                observer,
                type(exc).__name__,
                exc,
            )
            self.unregister(observer)
            return False
        return True
