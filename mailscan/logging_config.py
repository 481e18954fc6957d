"""Centralized logging configuration for the mailbox scanner.

Log records go to stderr so the run summary printed by run_scan stays
alone on stdout.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import TextIO

NOISY_LOGGERS = ("google.auth", "urllib3", "requests_oauthlib", "oauthlib", "pypdf")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Extra record attributes copied into JSON output when a caller sets them
CONTEXT_FIELDS = ("step", "day", "uid")


class JSONFormatter(logging.Formatter):
    """One JSON object per log record (NDJSON).

    Fields: timestamp, level, logger, message, any of CONTEXT_FIELDS
    passed through ``extra=``, and exception when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = str(value)
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(
    level_override: str | None = None, stream: TextIO | None = None
) -> None:
    """Configure the root logger from the environment.

    Args:
        level_override: If set, takes precedence over LOG_LEVEL env var.
        stream: Where records are written. Defaults to stderr.

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING or ERROR. Defaults to INFO.
        LOG_FORMAT: "json" for JSON lines, anything else for text.
    """
    level_name = (level_override or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if os.getenv("LOG_FORMAT", "text").lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root_logger.addHandler(handler)

    # OAuth and HTTP libraries log request details, including token endpoints
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
