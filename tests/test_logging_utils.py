from __future__ import annotations

import json
import logging

from lumina_influx.utils.logging_utils import JsonLogFormatter, setup_logging


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_setup_logging_is_idempotent_and_writes_file(tmp_path, monkeypatch):
    monkeypatch.setenv("LI_LOG_DIR", str(tmp_path))
    name = "lumina_influx_test_logging"
    logger = setup_logging(name, level="DEBUG")
    try:
        assert setup_logging(name, level="DEBUG") is logger
        assert len(logger.handlers) == 2
        assert logger.level == logging.DEBUG
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in (tmp_path / f"{name}.log").read_text(encoding="utf-8")
    finally:
        _drop_handlers(logger)


def test_json_formatter_payload():
    record = logging.LogRecord(
        "lumina_influx.gateway", logging.ERROR, __file__, 1, "boom %s", ("x",), None
    )
    payload = json.loads(JsonLogFormatter().format(record))
    assert payload["logger"] == "lumina_influx.gateway"
    assert payload["level"] == "ERROR"
    assert payload["message"] == "boom x"
