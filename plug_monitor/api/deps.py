"""
FastAPI dependency injection providers.

Route handlers receive the application's components (built once in the
lifespan and stored on ``app.state.components``) and the request's timezone
through FastAPI's Depends() mechanism instead of module-level globals.

CHANGELOG:
- 2026-10-12: Add RequestZone dependency (STORY-015)
- 2026-10-11: Initial creation (STORY-014)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Annotated, NamedTuple

from fastapi import Depends, Header, Query, Request

from plug_monitor.cache.redis_client import ChartCache
from plug_monitor.config import Settings
from plug_monitor.device.provider import DeviceTelemetryProvider
from plug_monitor.polling.restart import ProcessRestarter
from plug_monitor.polling.supervisor import PollingSupervisor
from plug_monitor.services.aggregation import AggregationEngine
from plug_monitor.services.calendar import resolve_timezone
from plug_monitor.services.fanout import LiveFanout
from plug_monitor.services.health import HealthReporter
from plug_monitor.services.store import TelemetryStore


@dataclass
class Components:
    """Everything the routes and the polling loop share.

    Attributes:
        store: Telemetry store.
        aggregation: Chart aggregation engine.
        fanout: Live observer registry.
        provider: Device telemetry provider.
        restarter: Process restart capability.
        supervisor: Polling supervisor.
        health: Health reporter.
        cache: Chart cache.
    """

    store: TelemetryStore
    aggregation: AggregationEngine
    fanout: LiveFanout
    provider: DeviceTelemetryProvider
    restarter: ProcessRestarter
    supervisor: PollingSupervisor
    health: HealthReporter
    cache: ChartCache


class RequestZone(NamedTuple):
    """Timezone a request asked for, by name and as a fixed-offset tzinfo."""

    name: str
    tz: tzinfo


def get_components(request: Request) -> Components:
    """Return the components built by the application lifespan."""
    return request.app.state.components


def get_settings(request: Request) -> Settings:
    """Return the Settings the application was created with."""
    return request.app.state.settings


def get_zone(
    request: Request,
    timezone: Annotated[str | None, Query()] = None,
    x_timezone: Annotated[str | None, Header()] = None,
) -> RequestZone:
    """Pick the request's timezone: query param, then header, then default.

    Unrecognized names resolve to UTC (see ``resolve_timezone``).
    """
    name = timezone or x_timezone or request.app.state.settings.default_timezone
    return RequestZone(name=name, tz=resolve_timezone(name))


AppComponents = Annotated[Components, Depends(get_components)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Zone = Annotated[RequestZone, Depends(get_zone)]
