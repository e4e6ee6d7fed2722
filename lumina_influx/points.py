"""Immutable measurement points and timestamp helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import Any

from influxdb_client import Point, WritePrecision

FieldValue = float | int | str | bool

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_NS_PER_UNIT = (
    (100_000_000_000, 1_000_000_000),
    (100_000_000_000_000, 1_000_000),
    (100_000_000_000_000_000, 1_000),
)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def coerce_datetime_utc(value: Any) -> datetime:
    """Parse a datetime, RFC3339 string or epoch number into an aware UTC datetime."""
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return EPOCH + timedelta(microseconds=to_epoch_ns(value) // 1_000)
    text = str(value or "").strip()
    if not text:
        raise ValueError("Timestamp value cannot be empty.")
    return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))


def to_epoch_ns(value: Any) -> int:
    """Normalise a timestamp to integer nanoseconds since the epoch.

    Bare numbers are interpreted by magnitude: seconds, milliseconds,
    microseconds, then nanoseconds.
    """
    if isinstance(value, bool):
        raise TypeError("Timestamp cannot be a boolean.")
    if isinstance(value, (int, float)):
        for bound, factor in _NS_PER_UNIT:
            if abs(value) < bound:
                if isinstance(value, int):
                    return value * factor
                return round(value * factor)
        return int(value)
    dt = coerce_datetime_utc(value)
    return ((dt - EPOCH) // timedelta(microseconds=1)) * 1_000


def to_epoch_ms(value: Any) -> int:
    """Normalise a timestamp to integer milliseconds since the epoch."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return to_epoch_ns(value) // 1_000_000
    dt = coerce_datetime_utc(value)
    return (dt - EPOCH) // timedelta(milliseconds=1)


@dataclass(frozen=True, slots=True)
class MarketPoint:
    """A single timestamped measurement with tags and fields."""

    measurement: str
    tags: Mapping[str, str]
    fields: Mapping[str, FieldValue]
    timestamp_ns: int

    def __post_init__(self) -> None:
        measurement = str(self.measurement or "").strip()
        if not measurement:
            raise ValueError("Point measurement name cannot be empty.")
        if not self.fields:
            raise ValueError(f"Point for measurement '{measurement}' has no fields.")
        object.__setattr__(self, "measurement", measurement)
        object.__setattr__(
            self,
            "tags",
            MappingProxyType({str(key): str(value) for key, value in self.tags.items()}),
        )
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "timestamp_ns", int(self.timestamp_ns))

    @classmethod
    def at(
        cls,
        measurement: str,
        *,
        fields: Mapping[str, FieldValue],
        timestamp: Any,
        tags: Mapping[str, str] | None = None,
    ) -> MarketPoint:
        """Build a point from any supported timestamp representation."""
        return cls(
            measurement=measurement,
            tags=dict(tags or {}),
            fields=fields,
            timestamp_ns=to_epoch_ns(timestamp),
        )

    def to_influx(self) -> Point:
        point = Point(self.measurement)
        for key, value in self.tags.items():
            point.tag(key, value)
        for key, value in self.fields.items():
            point.field(key, value)
        return point.time(self.timestamp_ns, write_precision=WritePrecision.NS)

    def to_line_protocol(self) -> str:
        return self.to_influx().to_line_protocol()


def ohlcv_point(
    measurement: str,
    *,
    symbol: str,
    interval: str,
    timestamp: Any,
    open: float,
    high: float,
    low: float,
    close: float,
    volume: float,
    exchange: str | None = None,
) -> MarketPoint:
    """Build the candle point written for one symbol/interval bar."""
    tags = {"symbol": str(symbol), "interval": str(interval)}
    if exchange:
        tags["exchange"] = str(exchange)
    return MarketPoint.at(
        measurement,
        tags=tags,
        fields={
            "open": float(open),
            "high": float(high),
            "low": float(low),
            "close": float(close),
            "volume": float(volume),
        },
        timestamp=timestamp,
    )
