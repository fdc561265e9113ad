"""
Fixed-offset calendar helpers for chart bucketing.

Turns "now" plus a fixed UTC offset into local day boundaries, calendar-date
keys and multi-day windows. All returned instants are timezone-aware UTC.
Only fixed offsets are supported; there is no DST handling.

Zone names are resolved through :data:`KNOWN_ZONES` or parsed as explicit
offsets (``+06:00``, ``UTC+6``, ``GMT-3:30``). Anything else falls back to
UTC.

CHANGELOG:
- 2026-10-05: Single window computation shared by today/week/month (STORY-008)
- 2026-10-03: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, date, datetime, timedelta, timezone, tzinfo

logger = logging.getLogger(__name__)

KNOWN_ZONES: dict[str, timedelta] = {
    "Asia/Dhaka": timedelta(hours=6),
    "UTC": timedelta(0),
    "Etc/UTC": timedelta(0),
    "GMT": timedelta(0),
}
"""Named zones with their fixed offsets."""

_OFFSET_RE = re.compile(
    r"^(?:UTC|GMT)?\s*(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)

_LAST_MS = timedelta(days=1) - timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def fixed_offset(hours: float) -> tzinfo:
    """Build a fixed-offset tzinfo from an hour offset (may be fractional)."""
    return timezone(timedelta(hours=hours))


def resolve_timezone(name: str | None) -> tzinfo:
    """Resolve a zone name or offset string to a fixed-offset tzinfo.

    Args:
        name: A key of :data:`KNOWN_ZONES`, an offset string such as
            ``+06:00`` / ``UTC+6``, or None.

    Returns:
        The matching fixed-offset zone, or UTC when the name is empty or
        unrecognized.
    """
    if not name:
        return UTC
    name = name.strip()
    if name in KNOWN_ZONES:
        return timezone(KNOWN_ZONES[name])

    match = _OFFSET_RE.match(name)
    if match:
        hours = int(match.group("hours"))
        minutes = int(match.group("minutes") or 0)
        if hours <= 14 and minutes < 60:
            delta = timedelta(hours=hours, minutes=minutes)
            if match.group("sign") == "-":
                delta = -delta
            return timezone(delta)

    logger.debug("Unrecognized timezone %r, using UTC", name)
    return UTC


def offset_label(tz: tzinfo) -> str:
    """Return the ``+HH:MM`` label of a fixed-offset zone."""
    offset = tz.utcoffset(None) or timedelta(0)
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def local_date(instant: datetime, tz: tzinfo) -> date:
    """Return the local calendar date of ``instant`` in ``tz``."""
    return instant.astimezone(tz).date()


def calendar_date_string(instant: datetime, tz: tzinfo) -> str:
    """Return the local calendar date of ``instant`` as ``YYYY-MM-DD``."""
    return local_date(instant, tz).isoformat()


def hour_of_day(instant: datetime, tz: tzinfo) -> int:
    """Return the local hour (0-23) of ``instant`` in ``tz``."""
    return instant.astimezone(tz).hour


def day_boundaries(now: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    """Return the UTC instants of local 00:00:00.000 and 23:59:59.999 today.

    Args:
        now: Current instant (aware).
        tz: Fixed-offset zone defining "today".

    Returns:
        ``(start_utc, end_utc)`` for the zone's current calendar day.
    """
    return window_boundaries(now, tz, days=1)


def window_boundaries(now: datetime, tz: tzinfo, days: int) -> tuple[datetime, datetime]:
    """Return the inclusive UTC bounds of the last ``days`` local days.

    The window starts at local midnight ``days - 1`` days before today and
    ends at the last millisecond of today, so ``days=1`` is today only.
    """
    if days < 1:
        raise ValueError("days must be >= 1")
    local_now = now.astimezone(tz)
    today_start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    start = today_start - timedelta(days=days - 1)
    end = today_start + _LAST_MS
    return start.astimezone(UTC), end.astimezone(UTC)


def local_dates(now: datetime, tz: tzinfo, days: int) -> list[str]:
    """Return the ``YYYY-MM-DD`` keys of the last ``days`` local days, oldest first."""
    today = local_date(now, tz)
    return [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]
