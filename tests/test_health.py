"""
Tests for the health reporter and the /health endpoint.

CHANGELOG:
- 2026-10-08: Initial creation (STORY-013)

TODO:
- None
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

from fastapi.testclient import TestClient

from plug_monitor.api.deps import Components
from plug_monitor.polling.supervisor import PollingState
from plug_monitor.services.health import HealthReporter, format_uptime

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class TestFormatUptime:
    def test_format(self) -> None:
        assert format_uptime(3723.9) == "1h 2m 3s"
        assert format_uptime(0) == "0h 0m 0s"


class TestHealthReporter:
    """Snapshot contents."""

    def test_snapshot_reflects_polling_state(self) -> None:
        state = PollingState(consecutive_failures=3, last_success_at=NOW, interval_ms=5000)
        reporter = HealthReporter(lambda: state, clock=lambda: NOW)

        snapshot = reporter.snapshot()

        assert snapshot["status"] == "healthy"
        assert snapshot["polling"] == {
            "consecutive_failures": 3,
            "last_successful_poll": "2024-01-01T12:00:00+00:00",
            "polling_interval_ms": 5000,
        }
        assert snapshot["timestamp"] == "2024-01-01T12:00:00+00:00"
        assert snapshot["memory"]["rss"].endswith("MB")
        assert snapshot["memory"]["vms"].endswith("MB")

    def test_no_success_yet(self) -> None:
        reporter = HealthReporter(PollingState, clock=lambda: NOW)
        assert reporter.snapshot()["polling"]["last_successful_poll"] is None

    def test_uptime_counts_from_start(self) -> None:
        reporter = HealthReporter(PollingState, started_at=time.monotonic() - 65)
        snapshot = reporter.snapshot()
        assert snapshot["uptime_s"] >= 65
        assert snapshot["uptime"].startswith("0h 1m")

    def test_snapshot_has_no_side_effects(self) -> None:
        state = PollingState(consecutive_failures=1)
        reporter = HealthReporter(lambda: state, clock=lambda: NOW)
        reporter.snapshot()
        reporter.snapshot()
        assert state == PollingState(consecutive_failures=1)


class TestHealthEndpoint:
    def test_health_returns_snapshot(
        self, api_client: TestClient, components: Components
    ) -> None:
        resp = api_client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}
        components.health.snapshot.assert_called_once()

    def test_timezone_test_endpoint(self, api_client: TestClient) -> None:
        resp = api_client.get("/timezone-test", params={"timezone": "+05:30"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["requestedTimezone"] == "+05:30"
        assert body["resolvedOffset"] == "+05:30"
        assert body["localTime"].endswith("+05:30")
        assert body["todayStart"].endswith("T18:30:00+00:00")
        assert body["todayEnd"].endswith("T18:29:59.999000+00:00")
