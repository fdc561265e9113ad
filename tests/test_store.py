"""
Tests for the SQLAlchemy-backed telemetry store.

Runs against an in-memory SQLite database via aiosqlite.

Tests verify:
- A sample appended and queried back over its timestamp is unchanged.
- query_range is inclusive and ordered oldest first.
- count() with and without bounds.
- latest(n) returns newest first and honours the limit.
- Database errors and slow writes surface as PersistenceFailure.

CHANGELOG:
- 2026-10-09: Add write-timeout test (STORY-011)
- 2026-10-04: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from plug_monitor.errors import PersistenceFailure
from plug_monitor.models import Reading, Sample
from plug_monitor.services.calendar import fixed_offset
from plug_monitor.services.store import TelemetryStore

T0 = datetime(2024, 1, 1, 12, 0, 0, 123000, tzinfo=UTC)


def _sample(ts: datetime, power: int = 1000) -> Sample:
    return Sample(
        timestamp=ts,
        readings=(
            Reading(code="switch_1", value=True),
            Reading(code="cur_current", value=415),
            Reading(code="cur_power", value=power),
            Reading(code="cur_voltage", value=2301),
        ),
    )


class TestAppendAndQuery:
    """Round trip and range semantics."""

    @pytest.mark.asyncio
    async def test_append_then_query_returns_sample_unchanged(
        self, store: TelemetryStore
    ) -> None:
        sample = _sample(T0)
        await store.append(sample)

        result = await store.query_range(T0, T0)

        assert result == [sample]
        assert result[0].timestamp.tzinfo is not None
        assert result[0].value_of("switch_1") is True

    @pytest.mark.asyncio
    async def test_query_range_inclusive_and_ordered(self, store: TelemetryStore) -> None:
        for offset in (2, 0, 1, 3):
            await store.append(_sample(T0 + timedelta(seconds=offset), power=offset))

        result = await store.query_range(T0, T0 + timedelta(seconds=2))

        assert [s.value_of("cur_power") for s in result] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_query_range_accepts_other_offsets(self, store: TelemetryStore) -> None:
        await store.append(_sample(T0))
        tz = fixed_offset(6)
        start = (T0 - timedelta(minutes=1)).astimezone(tz)
        end = (T0 + timedelta(minutes=1)).astimezone(tz)

        assert len(await store.query_range(start, end)) == 1


class TestCountAndLatest:
    """count() and latest() surfaces used by the debug endpoints."""

    @pytest.mark.asyncio
    async def test_count(self, store: TelemetryStore) -> None:
        for offset in range(5):
            await store.append(_sample(T0 + timedelta(minutes=offset)))

        assert await store.count() == 5
        assert await store.count(T0 + timedelta(minutes=1), T0 + timedelta(minutes=3)) == 3
        assert await store.count(start=T0 + timedelta(minutes=4)) == 1

    @pytest.mark.asyncio
    async def test_latest_newest_first(self, store: TelemetryStore) -> None:
        for offset in range(5):
            await store.append(_sample(T0 + timedelta(minutes=offset), power=offset))

        latest = await store.latest(3)

        assert [s.value_of("cur_power") for s in latest] == [4, 3, 2]

    @pytest.mark.asyncio
    async def test_latest_zero_returns_empty(self, store: TelemetryStore) -> None:
        await store.append(_sample(T0))
        assert await store.latest(0) == []


class TestFailures:
    """Store errors are reported as PersistenceFailure."""

    @pytest.mark.asyncio
    async def test_database_error_becomes_persistence_failure(self) -> None:
        session = MagicMock()
        session.__aenter__ = MagicMock(
            side_effect=OperationalError("INSERT", {}, Exception("db down"))
        )
        factory = MagicMock(return_value=session)
        store = TelemetryStore(factory)

        with pytest.raises(PersistenceFailure) as exc_info:
            await store.append(_sample(T0))
        assert exc_info.value.classification == "persistence"

    @pytest.mark.asyncio
    async def test_slow_write_times_out(self) -> None:
        class _SlowSession:
            async def __aenter__(self) -> _SlowSession:
                await asyncio.sleep(1)
                return self

            async def __aexit__(self, *exc: object) -> None:
                return None

        store = TelemetryStore(lambda: _SlowSession(), write_timeout_s=0.01)

        with pytest.raises(PersistenceFailure, match="timed out"):
            await store.append(_sample(T0))

    @pytest.mark.asyncio
    async def test_read_error_becomes_persistence_failure(self) -> None:
        session = MagicMock()
        session.__aenter__ = MagicMock(
            side_effect=OperationalError("SELECT", {}, Exception("db down"))
        )
        store = TelemetryStore(MagicMock(return_value=session))

        with pytest.raises(PersistenceFailure):
            await store.latest(5)
