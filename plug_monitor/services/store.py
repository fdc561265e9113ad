"""
Telemetry store: append-only persistence of raw samples.

Wraps the async session factory with the four operations the rest of the
service needs: append one sample, read a time range, count, and fetch the
latest samples. Every database error (and an append that exceeds its write
timeout) surfaces as :class:`~plug_monitor.errors.PersistenceFailure` so the
polling loop can count it like any other failed tick.

CHANGELOG:
- 2026-10-09: Bound append() by a write timeout (STORY-011)
- 2026-10-04: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plug_monitor.db.models import DeviceSample
from plug_monitor.errors import PersistenceFailure
from plug_monitor.models import Sample, readings_from_status

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    SQLite hands back naive datetimes even for timezone-aware columns;
    stored values are always UTC so the naive form is tagged, not shifted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _row_to_sample(row: DeviceSample) -> Sample:
    return Sample(timestamp=_as_utc(row.timestamp), readings=readings_from_status(row.status))


class TelemetryStore:
    """Append-only sample store over an async SQLAlchemy session factory.

    Args:
        session_factory: Factory producing AsyncSession instances.
        write_timeout_s: Upper bound for a single append.

    Usage::

        store = TelemetryStore(create_session_factory(engine), write_timeout_s=5)
        await store.append(sample)
        rows = await store.query_range(start, end)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        write_timeout_s: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self._write_timeout_s = write_timeout_s

    async def append(self, sample: Sample) -> None:
        """Persist one sample.

        Raises:
            PersistenceFailure: On any database error or when the write does
                not finish within ``write_timeout_s``.
        """
        try:
            await asyncio.wait_for(self._insert(sample), timeout=self._write_timeout_s)
        except TimeoutError as exc:
            raise PersistenceFailure(
                f"append timed out after {self._write_timeout_s}s"
            ) from exc
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceFailure(f"append failed: {exc}") from exc

    async def _insert(self, sample: Sample) -> None:
        async with self._session_factory() as session:
            session.add(
                DeviceSample(
                    timestamp=_as_utc(sample.timestamp),
                    status=sample.status(),
                )
            )
            await session.commit()
        logger.debug("Appended sample at %s", sample.timestamp.isoformat())

    async def query_range(self, start: datetime, end: datetime) -> list[Sample]:
        """Return samples with ``start <= timestamp <= end``, oldest first."""
        start, end = _as_utc(start), _as_utc(end)
        stmt = (
            select(DeviceSample)
            .where(DeviceSample.timestamp >= start, DeviceSample.timestamp <= end)
            .order_by(DeviceSample.timestamp.asc(), DeviceSample.id.asc())
        )
        rows = await self._fetch(stmt, "query_range")
        return [_row_to_sample(row) for row in rows]

    async def count(self, start: datetime | None = None, end: datetime | None = None) -> int:
        """Count samples, optionally restricted to an inclusive time range."""
        stmt = select(func.count()).select_from(DeviceSample)
        if start is not None:
            stmt = stmt.where(DeviceSample.timestamp >= _as_utc(start))
        if end is not None:
            stmt = stmt.where(DeviceSample.timestamp <= _as_utc(end))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return int(result.scalar_one())
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceFailure(f"count failed: {exc}") from exc

    async def latest(self, n: int) -> list[Sample]:
        """Return up to ``n`` most recent samples, newest first."""
        if n <= 0:
            return []
        stmt = (
            select(DeviceSample)
            .order_by(DeviceSample.timestamp.desc(), DeviceSample.id.desc())
            .limit(n)
        )
        rows = await self._fetch(stmt, "latest")
        return [_row_to_sample(row) for row in rows]

    async def _fetch(self, stmt: Select, operation: str) -> list[DeviceSample]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceFailure(f"{operation} failed: {exc}") from exc
