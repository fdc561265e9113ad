"""
Device telemetry provider protocol.

The polling supervisor and the switch endpoints only depend on this
protocol, so the Tuya cloud client can be replaced by a fake in tests or by
another vendor's client.

CHANGELOG:
- 2026-10-03: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from plug_monitor.models import Reading


@runtime_checkable
class DeviceTelemetryProvider(Protocol):
    """Fetches status from and sends commands to a remote device.

    Implementations raise :class:`~plug_monitor.errors.ProviderTimeout`,
    :class:`~plug_monitor.errors.ProviderConnectionError` or
    :class:`~plug_monitor.errors.ProviderProtocolError` on failure.
    """

    async def fetch_status(self, device_id: str) -> list[Reading]:
        """Return the device's current datapoints."""
        ...

    async def send_command(self, device_id: str, commands: list[dict[str, Any]]) -> dict[str, Any]:
        """Send ``[{code, value}]`` commands and return the provider response."""
        ...
