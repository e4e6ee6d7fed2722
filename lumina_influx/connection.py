"""Lifecycle of the shared InfluxDB client and its gateway."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from influxdb_client.client.influxdb_client_async import InfluxDBClientAsync

from lumina_influx.configuration.schema import InfluxConfig
from lumina_influx.errors import ConnectionClosedError
from lumina_influx.gateway import TimeSeriesGateway
from lumina_influx.store import InfluxStore

LOGGER = logging.getLogger(__name__)


def build_influx_client(config: InfluxConfig) -> InfluxDBClientAsync:
    """Create the async client; must run inside the event loop that will use it."""
    client_session_kwargs: dict[str, Any] = {}
    if not config.keep_alive:
        client_session_kwargs["headers"] = {"Connection": "close"}
    return InfluxDBClientAsync(
        url=config.url,
        token=config.token,
        org=config.org,
        timeout=config.timeout_ms,
        enable_gzip=config.enable_gzip,
        connection_pool_maxsize=config.connection_pool_maxsize,
        client_session_kwargs=client_session_kwargs,
    )


class InfluxConnection:
    """Owns the one client, store and gateway for a process.

    The client is built on the first `open()` and released on the first
    `close()`; neither happens per call.
    """

    def __init__(
        self,
        config: InfluxConfig,
        *,
        client_factory: Callable[[InfluxConfig], Any] | None = None,
    ):
        self.config = config
        self._client_factory = client_factory or build_influx_client
        self._client: Any = None
        self._store: InfluxStore | None = None
        self._gateway: TimeSeriesGateway | None = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._gateway is not None and not self._closed

    async def open(self) -> TimeSeriesGateway:
        if self._closed:
            raise ConnectionClosedError("InfluxDB connection was already closed.")
        if self._gateway is not None:
            return self._gateway

        client = self._client_factory(self.config)
        store = InfluxStore(
            client,
            org=self.config.org,
            bucket=self.config.bucket,
            write_options=self.config.write,
        )
        self._client = client
        self._store = store
        self._gateway = TimeSeriesGateway(store, bucket=self.config.bucket)
        await store.start()
        LOGGER.info(
            "Opened InfluxDB connection to %s (org=%s, bucket=%s, keep_alive=%s)",
            self.config.url,
            self.config.org,
            self.config.bucket,
            self.config.keep_alive,
        )
        return self._gateway

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        client, store = self._client, self._store
        self._client = None
        self._store = None
        self._gateway = None
        try:
            if store is not None:
                await store.aclose()
        finally:
            if client is not None:
                await client.close()
                LOGGER.info("Closed InfluxDB connection to %s", self.config.url)

    async def __aenter__(self) -> TimeSeriesGateway:
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.close()
        return False


@asynccontextmanager
async def open_gateway(
    config: InfluxConfig,
    *,
    client_factory: Callable[[InfluxConfig], Any] | None = None,
) -> AsyncIterator[TimeSeriesGateway]:
    """Scoped gateway: the connection is released when the block exits."""
    connection = InfluxConnection(config, client_factory=client_factory)
    async with connection as gateway:
        yield gateway
