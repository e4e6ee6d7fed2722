"""Print the newest point of a measurement stored in InfluxDB."""

from __future__ import annotations

import argparse
import asyncio
import json

from lumina_influx.configuration import load_runtime_config
from lumina_influx.connection import open_gateway
from lumina_influx.errors import EmptyResultError, GatewayError
from lumina_influx.utils.logging_utils import setup_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Look up the latest InfluxDB data point.")
    parser.add_argument("--metric", required=True, help="Measurement name to look up.")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to the YAML config (default: config.yaml).",
    )
    return parser


async def _lookup(runtime, metric: str, *, client_factory=None) -> dict:
    async with open_gateway(runtime.influx, client_factory=client_factory) as gateway:
        latest = await gateway.query_latest_data_point(metric)
    return latest.as_dict()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        runtime = load_runtime_config(config_path=args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Invalid configuration: {exc}")
        return 3
    setup_logging("lumina_influx", level=runtime.system.log_level)
    try:
        payload = asyncio.run(_lookup(runtime, args.metric))
    except EmptyResultError:
        print(f"No data for metric {args.metric} in the last hour.")
        return 1
    except GatewayError as exc:
        print(f"Lookup failed: {exc}")
        return 2
    print(json.dumps(payload, ensure_ascii=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
