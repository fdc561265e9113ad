"""
SQLAlchemy ORM models for the telemetry store.

Defines the DeviceSample model: one row per successful poll, holding the
poll timestamp and the device status list exactly as reported
(``[{"code": ..., "value": ...}, ...]``). Rows are append-only.

CHANGELOG:
- 2026-10-04: Initial creation (STORY-005)

TODO:
- None
"""

import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all power monitor ORM models."""

    pass


class DeviceSample(Base):
    """Raw status snapshot of the smart plug.

    Attributes:
        id: Surrogate key; insertion order.
        timestamp: Poll completion instant in UTC.
        status: Device datapoints as a JSON list of ``{code, value}``.
    """

    __tablename__ = "device_samples"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    status: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
    )

    def __repr__(self) -> str:
        """Return string representation of the DeviceSample."""
        return f"DeviceSample(id={self.id!r}, timestamp={self.timestamp!r})"
