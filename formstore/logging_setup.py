from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

# Structured fields passed through ``extra=`` that end up in the JSON line.
EXTRA_FIELDS = (
    "role",
    "service",
    "run_id",
    "operation",
    "table",
    "row_position",
    "counter_kind",
    "columns",
    "canonical_column",
    "alias_column",
    "identifiers",
    "rows_updated",
    "rows_failed",
    "error_code",
    "detail",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None

        return json.dumps(payload, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
