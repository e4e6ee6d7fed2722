"""InfluxDB time-series gateway: shared connection, batched writes, queries."""

from lumina_influx.connection import InfluxConnection, build_influx_client, open_gateway
from lumina_influx.errors import (
    ConnectionClosedError,
    EmptyResultError,
    GatewayError,
    QueryError,
    WriteBufferFullError,
    WriteError,
)
from lumina_influx.gateway import LatestDataPoint, TimeSeriesGateway
from lumina_influx.points import MarketPoint, ohlcv_point
from lumina_influx.store import InfluxStore, TimeSeriesStore

__all__ = [
    "ConnectionClosedError",
    "EmptyResultError",
    "GatewayError",
    "InfluxConnection",
    "InfluxStore",
    "LatestDataPoint",
    "MarketPoint",
    "QueryError",
    "TimeSeriesGateway",
    "TimeSeriesStore",
    "WriteBufferFullError",
    "WriteError",
    "build_influx_client",
    "ohlcv_point",
    "open_gateway",
]
