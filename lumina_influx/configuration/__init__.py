"""Typed configuration API."""

from lumina_influx.configuration.loader import load_runtime_config
from lumina_influx.configuration.schema import (
    InfluxConfig,
    RuntimeConfig,
    SystemConfig,
    WriteOptionsConfig,
)
from lumina_influx.configuration.validate import validate_runtime_config

__all__ = [
    "InfluxConfig",
    "RuntimeConfig",
    "SystemConfig",
    "WriteOptionsConfig",
    "load_runtime_config",
    "validate_runtime_config",
]
