"""Write/query surface over the shared time-series store."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import polars as pl

from lumina_influx.errors import EmptyResultError, QueryError, WriteError
from lumina_influx.flux import latest_point_query
from lumina_influx.points import MarketPoint, to_epoch_ms
from lumina_influx.store import TimeSeriesStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LatestDataPoint:
    """Timestamp (epoch ms) and identifying tags of the newest point."""

    timestamp: int
    symbol: str
    interval: str

    def as_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "symbol": self.symbol, "interval": self.interval}


class TimeSeriesGateway:
    """Application-facing helpers for writing and reading time-series points.

    The gateway owns no transport itself: it is handed a started store by
    `InfluxConnection` and shares it with every caller.
    """

    def __init__(self, store: TimeSeriesStore, *, bucket: str):
        self.store = store
        self.bucket = str(bucket)

    async def write_data(self, points: Sequence[MarketPoint]) -> None:
        """Enqueue `points` in order and flush them immediately.

        Raises:
            WriteError: the buffer refused the points or the flush failed.
        """
        try:
            self.store.enqueue(points)
            await self.store.flush()
        except Exception as exc:
            LOGGER.error("Error writing data points to InfluxDB: %s", exc)
            if isinstance(exc, WriteError):
                raise
            raise WriteError(str(exc)) from exc

    async def query_data(self, query: str) -> list[dict[str, Any]]:
        """Run a Flux query and collect every row into memory.

        The query text is passed through untouched; callers must escape any
        values they interpolate.
        """
        try:
            return await self.store.query(query)
        except Exception as exc:
            LOGGER.error("Error running InfluxDB query: %s", exc)
            if isinstance(exc, QueryError):
                raise
            raise QueryError(str(exc)) from exc

    async def query_frame(self, query: str) -> pl.DataFrame:
        rows = await self.query_data(query)
        if not rows:
            return pl.DataFrame()
        return pl.DataFrame(rows)

    async def query_latest_data_point(self, metric: str) -> LatestDataPoint:
        """Return the newest point of `metric` within the last hour.

        Raises:
            EmptyResultError: no point was recorded in the lookback window.
            QueryError: the store failed or the row could not be read.
        """
        query = latest_point_query(self.bucket, metric)
        try:
            rows = await self.store.query(query)
            if not rows:
                raise EmptyResultError(f"No data points for metric {metric} in the last hour.")
            row = rows[0]
            missing = [key for key in ("_time", "symbol", "interval") if row.get(key) is None]
            if missing:
                raise QueryError(
                    f"Latest row for metric {metric} lacks column(s): {', '.join(missing)}."
                )
            return LatestDataPoint(
                timestamp=to_epoch_ms(row["_time"]),
                symbol=row["symbol"],
                interval=row["interval"],
            )
        except Exception as exc:
            LOGGER.error("Error querying latest data point for metric %s: %s", metric, exc)
            if isinstance(exc, QueryError):
                raise
            raise QueryError(str(exc)) from exc
