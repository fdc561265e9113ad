"""
Shared test fixtures for the power monitor tests.

Provides isolated Settings (no .env leakage), an in-memory SQLite telemetry
store, and a FastAPI TestClient wired to mocked components so the HTTP
surface can be exercised without a database, Redis or the Tuya cloud.

CHANGELOG:
- 2026-10-12: Add api_client fixture with mocked components (STORY-015)
- 2026-10-04: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from plug_monitor.api.deps import Components
from plug_monitor.api.main import create_app
from plug_monitor.config import Settings
from plug_monitor.db.session import create_engine, create_session_factory, init_schema
from plug_monitor.polling.supervisor import PollingState
from plug_monitor.services.fanout import LiveFanout
from plug_monitor.services.store import TelemetryStore

# All Settings environment variable names, used for cleanup.
_ALL_ENV_VARS = (
    "TUYA_CLIENT_ID",
    "TUYA_CLIENT_SECRET",
    "TUYA_API_REGION",
    "TUYA_DEVICE_ID",
    "DATABASE_URL",
    "REDIS_URL",
    "CACHE_TTL_S",
    "POLL_INTERVAL_S",
    "FETCH_TIMEOUT_S",
    "STORE_WRITE_TIMEOUT_S",
    "FAILURE_THRESHOLD",
    "FAILURE_RESTART_DELAY_S",
    "MANUAL_RESTART_DELAY_S",
    "DEFAULT_TIMEZONE",
    "BROADCAST_SEND_TIMEOUT_S",
    "HOST",
    "PORT",
    "LOG_LEVEL",
)

DEVICE_ID = "device-001"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all monitor env vars and isolate from .env files before each test."""
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def settings() -> Settings:
    """Settings with test credentials and an in-memory database."""
    return Settings(
        tuya_client_id="test-client-id",
        tuya_client_secret="test-client-secret",
        tuya_device_id=DEVICE_ID,
        database_url="sqlite+aiosqlite://",
    )


@pytest_asyncio.fixture()
async def store() -> AsyncGenerator[TelemetryStore, None]:
    """A TelemetryStore over a fresh in-memory SQLite database."""
    engine = create_engine("sqlite+aiosqlite://")
    await init_schema(engine)
    try:
        yield TelemetryStore(create_session_factory(engine), write_timeout_s=5.0)
    finally:
        await engine.dispose()


@pytest.fixture()
def components() -> Components:
    """Components with every collaborator mocked.

    The fanout is a real LiveFanout so WebSocket registration can be
    observed; everything else is a mock with sensible defaults.
    """
    store = AsyncMock()
    store.latest = AsyncMock(return_value=[])
    store.count = AsyncMock(return_value=0)

    aggregation = AsyncMock()

    provider = AsyncMock()
    provider.fetch_status = AsyncMock(return_value=[])
    provider.send_command = AsyncMock(return_value={"success": True, "result": True})

    restarter = MagicMock()
    restarter.cancel = AsyncMock()

    supervisor = MagicMock()
    supervisor.state = PollingState()
    supervisor.request_restart = MagicMock(return_value=True)
    supervisor.manual_restart_delay_s = 5.0

    health = MagicMock()
    health.snapshot = MagicMock(return_value={"status": "healthy"})

    cache = AsyncMock()
    cache.get_json = AsyncMock(return_value=None)
    cache.set_json = AsyncMock()

    return Components(
        store=store,
        aggregation=aggregation,
        fanout=LiveFanout(),
        provider=provider,
        restarter=restarter,
        supervisor=supervisor,
        health=health,
        cache=cache,
    )


@pytest.fixture()
def api_client(settings: Settings, components: Components) -> Generator[TestClient, None, None]:
    """TestClient for an app using the mocked components and no poll loop.

    Uses a context manager so the lifespan (startup/shutdown) runs.
    """
    app = create_app(settings, components=components, start_polling=False)
    with TestClient(app) as test_client:
        yield test_client
