"""
Structured logging for the performance test engine.

Provides:
    - StructuredFormatter: JSON formatter for machine-parseable log output.
    - configure_logging: Root logger setup used by the server entry points.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

PLAIN_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-parseable log output.

    Each log record is serialised as a single JSON line containing at minimum:
        timestamp, level, logger, message.
    If the record carries a ``metrics`` attribute (set via ``extra={"metrics": {...}}``),
    those key-value pairs are included under the ``"metrics"`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "metrics"):
            log_entry["metrics"] = record.metrics
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "structured") -> None:
    """Install the root handler.

    ``fmt="json"`` emits one JSON object per line via ``StructuredFormatter``;
    anything else uses the plain ``time | level | logger | message`` layout.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
