"""
Aggregation service for the dashboard's time-bucketed chart data.

Reads raw samples for a window from the telemetry store and averages each
metering code per bucket: per local hour for "today", per local calendar day
for "week" and "month". The FRAME_CONFIG dict maps frame names to their
bucket resolution and window length.

Codes are averaged independently, so a bucket with current readings but no
power readings reports ``power=0`` and the real current mean. Power and
voltage means are divided by 10 (the device reports tenths). Empty buckets
stay at 0 and carry ``sample_count=0``.

CHANGELOG:
- 2026-10-06: Report per-bucket sample_count (STORY-009)
- 2026-10-05: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import TYPE_CHECKING

from plug_monitor.models import (
    CODE_CURRENT,
    CODE_POWER,
    CODE_VOLTAGE,
    DayBucket,
    HourBucket,
    Sample,
    scaled_value,
)
from plug_monitor.services.calendar import (
    calendar_date_string,
    hour_of_day,
    local_dates,
    utc_now,
    window_boundaries,
)

if TYPE_CHECKING:
    from plug_monitor.services.store import TelemetryStore

logger = logging.getLogger(__name__)

AGGREGATED_CODES: tuple[str, ...] = (CODE_POWER, CODE_CURRENT, CODE_VOLTAGE)


@dataclass(frozen=True)
class FrameConfig:
    """Configuration for a chart frame.

    Attributes:
        resolution: ``hour`` buckets the current day by local hour,
            ``day`` buckets by local calendar date.
        days: Number of local days covered, ending with today.
    """

    resolution: str
    days: int


FRAME_CONFIG: dict[str, FrameConfig] = {
    "today": FrameConfig(resolution="hour", days=1),
    "week": FrameConfig(resolution="day", days=7),
    "month": FrameConfig(resolution="day", days=30),
}


class _Mean:
    """Running arithmetic mean."""

    __slots__ = ("total", "count")

    def __init__(self) -> None:
        self.total = 0.0
        self.count = 0

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1

    @property
    def value(self) -> float:
        return self.total / self.count if self.count else 0.0


def bucket_means(
    samples: Iterable[Sample],
    key_of: Callable[[datetime], Hashable],
) -> tuple[dict[Hashable, dict[str, float]], dict[Hashable, int]]:
    """Average every aggregated code per bucket.

    Args:
        samples: Raw samples, any order.
        key_of: Maps a sample timestamp to its bucket key.

    Returns:
        ``(means, counts)`` where ``means[key][code]`` is the scaled mean of
        that code in the bucket (codes with no numeric values are absent)
        and ``counts[key]`` is the number of samples that fell in the bucket.
    """
    raw: dict[Hashable, dict[str, _Mean]] = defaultdict(lambda: defaultdict(_Mean))
    counts: dict[Hashable, int] = defaultdict(int)

    for sample in samples:
        key = key_of(sample.timestamp)
        counts[key] += 1
        for reading in sample.readings:
            if reading.code not in AGGREGATED_CODES:
                continue
            value = reading.value
            if isinstance(value, bool) or not isinstance(value, int | float):
                continue
            raw[key][reading.code].add(value)

    means = {
        key: {code: scaled_value(code, mean.value) for code, mean in per_code.items()}
        for key, per_code in raw.items()
    }
    return means, dict(counts)


class AggregationEngine:
    """Computes today/week/month chart rollups from the telemetry store.

    Args:
        store: Store providing ``query_range(start, end)``.
        clock: Returns the current aware instant. Injected for tests.
    """

    def __init__(
        self,
        store: TelemetryStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    async def today(self, tz: tzinfo) -> list[HourBucket]:
        """Return 24 hourly buckets (hour 0..23) for the current local day."""
        now = self._clock()
        start, end = window_boundaries(now, tz, FRAME_CONFIG["today"].days)
        samples = await self._store.query_range(start, end)
        means, counts = bucket_means(samples, lambda ts: hour_of_day(ts, tz))

        buckets = [
            HourBucket(hour=hour, sample_count=counts.get(hour, 0), **_channels(means.get(hour)))
            for hour in range(24)
        ]
        logger.debug(
            "Today aggregation: %d samples, %d hours with data",
            len(samples),
            len(counts),
        )
        return buckets

    async def week(self, tz: tzinfo) -> list[DayBucket]:
        """Return 7 daily buckets: the 6 prior local days plus today."""
        return await self._days("week", tz)

    async def month(self, tz: tzinfo) -> list[DayBucket]:
        """Return 30 daily buckets: the 29 prior local days plus today."""
        return await self._days("month", tz)

    async def chart(self, tz: tzinfo) -> dict[str, list]:
        """Run the three chart aggregations concurrently."""
        today, week, month = await asyncio.gather(
            self.today(tz),
            self.week(tz),
            self.month(tz),
        )
        return {"today": today, "week": week, "month": month}

    async def _days(self, frame: str, tz: tzinfo) -> list[DayBucket]:
        config = FRAME_CONFIG[frame]
        now = self._clock()
        start, end = window_boundaries(now, tz, config.days)
        dates = local_dates(now, tz, config.days)
        samples = await self._store.query_range(start, end)
        means, counts = bucket_means(samples, lambda ts: calendar_date_string(ts, tz))

        logger.debug(
            "%s aggregation: %d samples, %d days with data",
            frame.capitalize(),
            len(samples),
            len(counts),
        )
        return [
            DayBucket(date=day, sample_count=counts.get(day, 0), **_channels(means.get(day)))
            for day in dates
        ]


def _channels(means: dict[str, float] | None) -> dict[str, float]:
    """Map per-code means to bucket fields, zero-filling missing codes."""
    means = means or {}
    return {
        "power": means.get(CODE_POWER, 0.0),
        "current": means.get(CODE_CURRENT, 0.0),
        "voltage": means.get(CODE_VOLTAGE, 0.0),
    }
