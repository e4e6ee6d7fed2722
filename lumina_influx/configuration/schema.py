"""Typed runtime configuration schema."""

from __future__ import annotations

from dataclasses import dataclass, field

from influxdb_client import WriteOptions

# Batch threshold sits one above the library default so size-triggered
# flushing never fires; flush timing belongs to the caller.
DEFAULT_BATCH_SIZE = WriteOptions().batch_size + 1


@dataclass(slots=True)
class SystemConfig:
    """System-level runtime settings."""

    log_level: str = "INFO"


@dataclass(slots=True)
class WriteOptionsConfig:
    """Write buffer settings handed to the store adapter."""

    batch_size: int = DEFAULT_BATCH_SIZE
    # 0 disables periodic flushing.
    flush_interval_ms: int = 0
    max_buffer_lines: int = 30_000
    max_retries: int = 0


@dataclass(slots=True)
class InfluxConfig:
    """InfluxDB v2 connection settings."""

    url: str = "http://localhost:8086"
    org: str = ""
    bucket: str = ""
    token: str = ""
    token_env: str = "INFLUXDB_TOKEN"
    timeout_ms: int = 10_000
    keep_alive: bool = True
    connection_pool_maxsize: int = 100
    enable_gzip: bool = False
    write: WriteOptionsConfig = field(default_factory=WriteOptionsConfig)


@dataclass(slots=True)
class RuntimeConfig:
    """Full runtime configuration bundle."""

    system: SystemConfig = field(default_factory=SystemConfig)
    influx: InfluxConfig = field(default_factory=InfluxConfig)
