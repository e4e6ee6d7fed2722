import json
import logging
import os
from logging.handlers import RotatingFileHandler


class JsonLogFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def _resolve_logs_dir() -> str:
    candidate = str(os.getenv("LI_LOG_DIR", "logs") or "").strip()
    return candidate or "logs"


def _use_json() -> bool:
    return os.getenv("LI_JSON_LOG", "0").strip().lower() in {"1", "true", "yes"}


def setup_logging(name="lumina_influx", level="INFO"):
    """Sets up a logger with a StreamHandler and FileHandler.

    Library modules log through `logging.getLogger(__name__)`; passing the
    package name here routes all of them to the same handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Prevent duplicate handlers when setup_logging is called multiple times.
    if logger.handlers:
        return logger

    plain_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    formatter = JsonLogFormatter() if _use_json() else plain_formatter

    # Console Handler
    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    # File Handler (Rotating: 10MB limit, 5 backups)
    logs_dir = _resolve_logs_dir()
    os.makedirs(logs_dir, exist_ok=True)
    fh = RotatingFileHandler(
        os.path.join(logs_dir, f"{name}.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    return logger
