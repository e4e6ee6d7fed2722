"""Configuration loader with env overrides and legacy mapping."""

import json
import os
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any, TypeVar

import yaml
from dotenv import load_dotenv
from lumina_influx.configuration.schema import (
    InfluxConfig,
    RuntimeConfig,
    SystemConfig,
    WriteOptionsConfig,
)
from lumina_influx.configuration.validate import validate_runtime_config

T = TypeVar("T")

ENV_PREFIX = "LI_"
LEGACY_INFLUX_ENV = {
    "url": "INFLUX_URL",
    "org": "INFLUX_ORG",
    "bucket": "INFLUX_BUCKET",
}


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def load_yaml_config(config_path: str = "config.yaml") -> dict[str, Any]:
    """Load YAML config from project root or an absolute path."""
    project_root = Path(__file__).resolve().parents[2]
    raw_path = Path(config_path)
    candidates: list[Path] = []
    if raw_path.is_absolute():
        candidates.append(raw_path)
    else:
        candidates.extend(
            [
                project_root / config_path,
                Path.cwd() / config_path,
                raw_path,
            ]
        )

    path = next((candidate for candidate in candidates if candidate.exists()), None)
    if path is None:
        tried = ", ".join(str(candidate.absolute()) for candidate in candidates)
        raise FileNotFoundError(f"Configuration file not found. Tried: {tried}")
    with open(path, encoding="utf-8") as file:
        loaded = yaml.safe_load(file) or {}
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _parse_env_scalar(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if raw.strip().startswith(("[", "{")):
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return raw
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested_value(container: dict[str, Any], path_tokens: list[str], value: Any) -> None:
    cur: dict[str, Any] = container
    for token in path_tokens[:-1]:
        key = token.lower()
        node = cur.get(key)
        if not isinstance(node, dict):
            node = {}
            cur[key] = node
        else:
            node = dict(node)
            cur[key] = node
        cur = node
    cur[path_tokens[-1].lower()] = value


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Apply `LI_` env overrides onto the config dictionary.

    `LI__INFLUX__WRITE__BATCH_SIZE=500` sets `influx.write.batch_size`.
    """
    merged = dict(data)
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        value = _parse_env_scalar(raw_value)
        if key.startswith(ENV_PREFIX + "_"):
            tokens = [token for token in key[len(ENV_PREFIX) + 1 :].split("__") if token]
        else:
            tokens = [token for token in key[len(ENV_PREFIX) :].split("__") if token]
        # Single-segment keys such as LI_LOG_DIR belong to other settings.
        if len(tokens) < 2:
            continue
        _set_nested_value(merged, tokens, value)
    return merged


def apply_legacy_mapping(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Fill influx settings from the flat INFLUX_* variables when the config omits them."""
    mapped = dict(data)
    influx = mapped.get("influx", {})
    if not isinstance(influx, dict):
        influx = {}
    influx = dict(influx)
    for key, env_name in LEGACY_INFLUX_ENV.items():
        legacy_value = str(env.get(env_name, "") or "").strip()
        if legacy_value and not str(influx.get(key, "") or "").strip():
            influx[key] = legacy_value
    mapped["influx"] = influx
    return mapped


def _coerce_dataclass_kwargs(raw: dict[str, Any], model_cls: type[T]) -> dict[str, Any]:
    allowed = {item.name for item in fields(model_cls)}
    return {key: value for key, value in raw.items() if key in allowed}


def _section(raw: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def build_runtime_config(data: dict[str, Any], env: Mapping[str, str]) -> RuntimeConfig:
    """Build a strongly typed runtime config from raw dict + environment."""
    mapped = apply_legacy_mapping(apply_env_overrides(data, env), env)

    system_raw = _section(mapped, "system")
    influx_raw = _section(mapped, "influx")
    write_raw = _section(influx_raw, "write")

    influx_kwargs = _coerce_dataclass_kwargs(influx_raw, InfluxConfig)
    influx_kwargs.pop("write", None)
    influx_kwargs.pop("token", None)
    influx = InfluxConfig(
        **influx_kwargs,
        write=WriteOptionsConfig(**_coerce_dataclass_kwargs(write_raw, WriteOptionsConfig)),
    )
    # Secrets come from the environment; a token in YAML is only a fallback.
    influx.token_env = str(influx.token_env or "INFLUXDB_TOKEN").strip()
    influx.token = str(env.get(influx.token_env) or influx_raw.get("token") or "").strip()

    runtime = RuntimeConfig(
        system=SystemConfig(**_coerce_dataclass_kwargs(system_raw, SystemConfig)),
        influx=influx,
    )

    runtime.system.log_level = str(runtime.system.log_level or "INFO").strip().upper()
    runtime.influx.url = str(runtime.influx.url or "").strip().rstrip("/")
    runtime.influx.org = str(runtime.influx.org or "").strip()
    runtime.influx.bucket = str(runtime.influx.bucket or "").strip()
    runtime.influx.timeout_ms = _as_int(runtime.influx.timeout_ms, 10_000)
    runtime.influx.keep_alive = _as_bool(runtime.influx.keep_alive, True)
    runtime.influx.enable_gzip = _as_bool(runtime.influx.enable_gzip, False)
    runtime.influx.connection_pool_maxsize = _as_int(runtime.influx.connection_pool_maxsize, 100)

    write = runtime.influx.write
    write.batch_size = _as_int(write.batch_size, WriteOptionsConfig().batch_size)
    write.flush_interval_ms = _as_int(write.flush_interval_ms, 0)
    write.max_buffer_lines = _as_int(write.max_buffer_lines, 30_000)
    write.max_retries = _as_int(write.max_retries, 0)
    return runtime


def load_runtime_config(
    config_path: str = "config.yaml", env: Mapping[str, str] | None = None
) -> RuntimeConfig:
    """Load `.env`, read YAML, apply overrides, and produce validated typed config."""
    load_dotenv()
    effective_env = env if env is not None else os.environ
    raw = load_yaml_config(config_path=config_path)
    runtime = build_runtime_config(raw, effective_env)
    validate_runtime_config(runtime)
    return runtime
