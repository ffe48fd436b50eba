"""Structured JSON logging configuration."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from app.config import Settings

# Extra attributes copied into the JSON line when present on the record.
EXTRA_FIELDS = ("request_id", "event_type", "payload", "request_path")


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message (+ extras)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


def configure_logging(settings: Settings) -> None:
    """
    Configure root logging with the JSON formatter on stderr.
    Level comes from settings.LOG_LEVEL (default INFO).
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    root_logger.info(f"Logging configured: level={settings.LOG_LEVEL}, format=JSON")
