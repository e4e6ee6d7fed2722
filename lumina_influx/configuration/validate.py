"""Runtime configuration validation."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from lumina_influx.configuration.schema import RuntimeConfig


def validate_runtime_config(runtime: RuntimeConfig) -> None:
    """Validate runtime configuration invariants."""
    level = str(runtime.system.log_level or "").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"system.log_level '{runtime.system.log_level}' is not a logging level.")

    influx = runtime.influx
    missing = [
        name
        for name, value in (
            ("url", influx.url),
            ("org", influx.org),
            ("bucket", influx.bucket),
            ("token", influx.token),
        )
        if not str(value or "").strip()
    ]
    if missing:
        raise ValueError(
            "InfluxDB configuration incomplete. Require url/org/bucket/token. "
            f"missing={', '.join(missing)}; token is read from env {influx.token_env!r}."
        )
    parsed = urlparse(influx.url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"influx.url must be an http(s) URL, got {influx.url!r}.")
    if influx.timeout_ms < 1:
        raise ValueError("influx.timeout_ms must be >= 1.")
    if influx.connection_pool_maxsize < 1:
        raise ValueError("influx.connection_pool_maxsize must be >= 1.")

    write = influx.write
    if write.batch_size < 1:
        raise ValueError("influx.write.batch_size must be >= 1.")
    if write.flush_interval_ms < 0:
        raise ValueError("influx.write.flush_interval_ms must be >= 0 (0 disables it).")
    if write.max_buffer_lines < 1:
        raise ValueError("influx.write.max_buffer_lines must be >= 1.")
    if write.max_retries < 0:
        raise ValueError("influx.write.max_retries must be >= 0.")
