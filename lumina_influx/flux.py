"""Flux query text helpers."""

from __future__ import annotations

LATEST_POINT_LOOKBACK = "-1h"


def escape_flux_string(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def latest_point_query(
    bucket: str, measurement: str, *, lookback: str = LATEST_POINT_LOOKBACK
) -> str:
    """Flux for the most recent point of one measurement inside the lookback window."""
    return f"""
from(bucket: "{escape_flux_string(bucket)}")
  |> range(start: {lookback})
  |> filter(fn: (r) => r._measurement == "{escape_flux_string(measurement)}")
  |> last()
""".strip()
