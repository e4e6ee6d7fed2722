"""Store capability and its InfluxDB adapter."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from typing import Any, Protocol

from influxdb_client import Point, WritePrecision

from lumina_influx.configuration.schema import WriteOptionsConfig
from lumina_influx.errors import WriteBufferFullError
from lumina_influx.points import MarketPoint

LOGGER = logging.getLogger(__name__)


class TimeSeriesStore(Protocol):
    """Structural protocol for the write-buffer/query collaborator.

    Implementations must tolerate calls from several concurrent tasks on
    one event loop.
    """

    def enqueue(self, points: Sequence[MarketPoint]) -> None:
        ...

    async def flush(self) -> None:
        ...

    async def query(self, query: str) -> list[dict[str, Any]]:
        ...

    async def start(self) -> None:
        ...

    async def aclose(self) -> None:
        ...


class InfluxStore:
    """Buffered writes and row-collecting queries over `InfluxDBClientAsync`."""

    def __init__(
        self,
        client: Any,
        *,
        org: str,
        bucket: str,
        write_options: WriteOptionsConfig | None = None,
    ):
        self.org = str(org)
        self.bucket = str(bucket)
        self.write_options = write_options or WriteOptionsConfig()
        self._write_api = client.write_api()
        self._query_api = client.query_api()
        self._pending: list[Point] = []
        self._flush_task: asyncio.Task | None = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def enqueue(self, points: Sequence[MarketPoint]) -> None:
        self._pending.extend(point.to_influx() for point in points)

    async def flush(self) -> None:
        # Detach before the first await so concurrent flushes never resend a point.
        pending, self._pending = self._pending, []
        if not pending:
            return
        batch_size = max(1, int(self.write_options.batch_size))
        for offset in range(0, len(pending), batch_size):
            await self._write_chunk(pending[offset : offset + batch_size])

    async def _write_chunk(self, chunk: list[Point]) -> None:
        retry_max = max(0, int(self.write_options.max_retries))
        capacity = int(self.write_options.max_buffer_lines)
        for attempt in range(retry_max + 1):
            try:
                await self._write_api.write(
                    bucket=self.bucket,
                    org=self.org,
                    record=chunk,
                    write_precision=WritePrecision.NS,
                )
                return
            except Exception as exc:
                if attempt >= retry_max:
                    raise
                # A chunk held for another attempt must fit the retry buffer.
                if len(chunk) > capacity:
                    raise WriteBufferFullError(
                        f"Failed chunk of {len(chunk)} points exceeds "
                        f"max_buffer_lines={capacity}; not retried."
                    ) from exc
                backoff = min(4.0, 0.35 * (2**attempt))
                LOGGER.warning(
                    "InfluxDB write attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt + 1,
                    retry_max + 1,
                    exc,
                    backoff,
                )
                await asyncio.sleep(backoff)

    async def query(self, query: str) -> list[dict[str, Any]]:
        tables = await self._query_api.query(query, org=self.org)
        rows: list[dict[str, Any]] = []
        for table in tables:
            for record in table.records:
                rows.append(dict(record.values))
        return rows

    async def start(self) -> None:
        interval_ms = int(self.write_options.flush_interval_ms)
        if interval_ms <= 0 or self._flush_task is not None:
            return
        self._flush_task = asyncio.create_task(self._periodic_flush(interval_ms / 1000.0))

    async def _periodic_flush(self, interval_sec: float) -> None:
        while True:
            await asyncio.sleep(interval_sec)
            try:
                await self.flush()
            except Exception as exc:
                LOGGER.error("Periodic InfluxDB flush failed: %s", exc)

    async def aclose(self) -> None:
        if self._flush_task is not None:
            self._flush_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._flush_task
            self._flush_task = None
        if self._pending:
            LOGGER.warning(
                "Discarding %d unflushed points on close of bucket %s",
                len(self._pending),
                self.bucket,
            )
            self._pending = []
