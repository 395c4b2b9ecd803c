"""
docrag Logging
==============

One call configures the root logger for the CLI and the API server.

Log lines go to stderr so ``docrag search`` output on stdout stays
pipeable. With ``DOCRAG_LOG_JSON=true`` each line is a JSON object that
also carries the chunk/query fields passed through ``extra=``:

    logger.info("Ingested logs.md", extra={"source": "logs.md"})
    -> {"ts": "...", "level": "INFO", "logger": "docrag.rag.ingestion",
        "msg": "Ingested logs.md", "source": "logs.md"}
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Optional

# Attributes copied from ``extra=`` into JSON lines
EXTRA_FIELDS = ("source", "chunk_id", "query", "score", "duration")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)-26s | %(message)s"

# Client libraries that log every HTTP request at INFO
QUIET_LOGGERS = ("urllib3", "httpx", "openai")


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        return json.dumps(log_entry, default=str)


def _formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(level: str = "INFO", json_output: bool = False, log_file: Optional[str] = None):
    """
    Replace the root logger's handlers with docrag's.

    Args:
        level: Root log level name, case-insensitive (unknown names mean INFO)
        json_output: Emit JSON lines instead of text
        log_file: Also write to this file, rotated at 10 MB
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    formatter = _formatter(json_output)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS,
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug("Logging configured: level=%s json=%s file=%s", level, json_output, log_file or "none")


def setup_logging_from_settings(settings, verbose: bool = False):
    """Configure logging from ``Settings.logging``; ``verbose`` forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else settings.logging.level,
        json_output=settings.logging.json_logs,
        log_file=settings.logging.log_file,
    )
