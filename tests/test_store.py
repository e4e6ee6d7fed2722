from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from lumina_influx.configuration.schema import WriteOptionsConfig
from lumina_influx.errors import WriteBufferFullError
from lumina_influx.points import MarketPoint
from lumina_influx.store import InfluxStore


@dataclass(slots=True)
class FakeWriteApi:
    failures: int = 0
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def write(self, bucket, org=None, record=None, write_precision=None, **kwargs):
        self.calls.append(
            {"bucket": bucket, "org": org, "record": list(record), "precision": write_precision}
        )
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("influx unavailable")
        return True


@dataclass(slots=True)
class FakeRecord:
    values: dict[str, Any]


@dataclass(slots=True)
class FakeTable:
    records: list[FakeRecord]


@dataclass(slots=True)
class FakeQueryApi:
    tables: list[FakeTable] = field(default_factory=list)
    queries: list[tuple[str, str | None]] = field(default_factory=list)

    async def query(self, query, org=None, params=None):
        self.queries.append((query, org))
        return self.tables


@dataclass(slots=True)
class FakeClient:
    write: FakeWriteApi = field(default_factory=FakeWriteApi)
    read: FakeQueryApi = field(default_factory=FakeQueryApi)

    def write_api(self):
        return self.write

    def query_api(self):
        return self.read


def _points(count: int) -> list[MarketPoint]:
    return [
        MarketPoint.at("price", tags={"seq": str(i)}, fields={"close": float(i)}, timestamp=i)
        for i in range(count)
    ]


def _seqs(record: list) -> list[str]:
    return [point.to_line_protocol().split(" ")[0].split(",")[1] for point in record]


def _store(client: FakeClient, **options) -> InfluxStore:
    return InfluxStore(
        client, org="test-org", bucket="test-bucket", write_options=WriteOptionsConfig(**options)
    )


def test_flush_sends_points_in_order_split_by_batch_size():
    client = FakeClient()
    store = _store(client, batch_size=2)
    store.enqueue(_points(5))
    asyncio.run(store.flush())

    assert [len(call["record"]) for call in client.write.calls] == [2, 2, 1]
    sent = [seq for call in client.write.calls for seq in _seqs(call["record"])]
    assert sent == [f"seq={i}" for i in range(5)]
    assert client.write.calls[0]["bucket"] == "test-bucket"
    assert client.write.calls[0]["org"] == "test-org"
    assert store.pending_count == 0


def test_flush_with_empty_buffer_is_noop():
    client = FakeClient()
    asyncio.run(_store(client).flush())
    assert client.write.calls == []


def test_failed_flush_is_not_retried_by_default():
    client = FakeClient(write=FakeWriteApi(failures=1))
    store = _store(client)
    store.enqueue(_points(3))
    with pytest.raises(ConnectionError):
        asyncio.run(store.flush())
    assert len(client.write.calls) == 1
    assert store.pending_count == 0


def test_failed_chunk_is_retried_when_configured():
    client = FakeClient(write=FakeWriteApi(failures=1))
    store = _store(client, max_retries=1)
    store.enqueue(_points(2))
    asyncio.run(store.flush())
    assert len(client.write.calls) == 2
    assert client.write.calls[0]["record"] == client.write.calls[1]["record"]


def test_enqueue_is_not_limited_by_retry_buffer_capacity():
    client = FakeClient()
    store = _store(client, max_buffer_lines=3, batch_size=10)
    store.enqueue(_points(5))
    store.enqueue(_points(2))
    assert store.pending_count == 7
    asyncio.run(store.flush())
    assert sum(len(call["record"]) for call in client.write.calls) == 7


def test_failed_chunk_larger_than_retry_buffer_is_not_retried():
    client = FakeClient(write=FakeWriteApi(failures=1))
    store = _store(client, max_buffer_lines=3, max_retries=2)
    store.enqueue(_points(4))
    with pytest.raises(WriteBufferFullError) as excinfo:
        asyncio.run(store.flush())
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert len(client.write.calls) == 1


def test_query_collects_rows_from_all_tables():
    client = FakeClient()
    client.read.tables = [
        FakeTable([FakeRecord({"_field": "open", "_value": 1.0})]),
        FakeTable(
            [
                FakeRecord({"_field": "close", "_value": 2.0}),
                FakeRecord({"_field": "close", "_value": 3.0}),
            ]
        ),
    ]
    rows = asyncio.run(_store(client).query('from(bucket: "b")'))
    assert [row["_value"] for row in rows] == [1.0, 2.0, 3.0]
    assert client.read.queries == [('from(bucket: "b")', "test-org")]


def test_periodic_flush_runs_when_interval_set():
    client = FakeClient()
    store = _store(client, flush_interval_ms=10)

    async def _run():
        await store.start()
        store.enqueue(_points(2))
        await asyncio.sleep(0.1)
        await store.aclose()

    asyncio.run(_run())
    assert sum(len(call["record"]) for call in client.write.calls) == 2


def test_aclose_discards_pending_points():
    client = FakeClient()
    store = _store(client)
    store.enqueue(_points(2))
    asyncio.run(store.aclose())
    assert store.pending_count == 0
    assert client.write.calls == []
