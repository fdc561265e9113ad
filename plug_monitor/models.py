"""
Pydantic models for smart-plug telemetry.

Defines the raw :class:`Sample` persisted once per successful poll, the
:class:`TransformedReading` pushed to live observers, and the bucket models
returned by the chart aggregations. The device reports voltage and power in
tenths (``cur_voltage`` = 2305 means 230.5 V), current in native units.

CHANGELOG:
- 2026-10-06: Add sample_count to bucket models (STORY-009)
- 2026-10-02: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

CODE_POWER = "cur_power"
CODE_CURRENT = "cur_current"
CODE_VOLTAGE = "cur_voltage"
CODE_SWITCH = "switch_1"

TENTHS_SCALE = 10.0
"""Divisor applied to values the device reports in tenths."""

SCALED_CODES = frozenset({CODE_POWER, CODE_VOLTAGE})
"""Codes whose raw values are reported in tenths."""


class Reading(BaseModel):
    """One status datapoint as reported by the device.

    Attributes:
        code: Datapoint code, e.g. ``cur_power`` or ``switch_1``.
        value: Raw value. Numbers for metering codes, booleans for switches.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    value: Any = None


class Sample(BaseModel):
    """A single raw telemetry sample produced by one successful poll tick.

    Immutable once created; the store never updates a sample.

    Attributes:
        timestamp: UTC instant the poll completed.
        readings: Datapoints in the order the device returned them.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    readings: tuple[Reading, ...] = ()

    def value_of(self, code: str) -> Any:
        """Return the raw value for ``code`` or None when absent."""
        for reading in self.readings:
            if reading.code == code:
                return reading.value
        return None

    def status(self) -> list[dict[str, Any]]:
        """Return the readings in their persisted ``[{code, value}]`` form."""
        return [reading.model_dump() for reading in self.readings]


class TransformedReading(BaseModel):
    """Live view of a sample with unit scaling applied.

    Attributes:
        time: Sample timestamp.
        current: Current in native device units.
        voltage: Voltage in volts (raw / 10).
        power: Power in watts (raw / 10).
    """

    time: datetime
    current: float
    voltage: float
    power: float


class ErrorNotice(BaseModel):
    """Error broadcast sent to observers before a forced restart."""

    error: str
    timestamp: datetime


class HourBucket(BaseModel):
    """Hourly rollup for the current local day.

    ``power``, ``current`` and ``voltage`` are 0 when no sample contributed;
    ``sample_count`` tells an empty bucket apart from a genuine zero.
    """

    hour: int
    power: float = 0.0
    current: float = 0.0
    voltage: float = 0.0
    sample_count: int = 0


class DayBucket(BaseModel):
    """Daily rollup keyed by local calendar date (``YYYY-MM-DD``)."""

    date: str
    power: float = 0.0
    current: float = 0.0
    voltage: float = 0.0
    sample_count: int = 0


def scaled_value(code: str, raw: Any) -> float:
    """Convert a raw datapoint value to engineering units.

    Non-numeric values (including booleans) yield 0.
    """
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        return 0.0
    if code in SCALED_CODES:
        return raw / TENTHS_SCALE
    return float(raw)


def transform(sample: Sample) -> TransformedReading:
    """Derive the live :class:`TransformedReading` for a sample.

    A missing metering code is reported as 0.
    """
    return TransformedReading(
        time=sample.timestamp,
        current=scaled_value(CODE_CURRENT, sample.value_of(CODE_CURRENT)),
        voltage=scaled_value(CODE_VOLTAGE, sample.value_of(CODE_VOLTAGE)),
        power=scaled_value(CODE_POWER, sample.value_of(CODE_POWER)),
    )


def readings_from_status(status: Iterable[dict[str, Any]]) -> tuple[Reading, ...]:
    """Build readings from the ``[{code, value}]`` list the device returns."""
    return tuple(Reading(code=item["code"], value=item.get("value")) for item in status)
