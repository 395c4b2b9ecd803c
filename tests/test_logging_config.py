"""
Tests for structured logging setup.
"""

import json
import logging
import logging.handlers

import pytest

from docrag.logging_config import (
    LOG_FILE_BACKUPS,
    LOG_FILE_MAX_BYTES,
    JSONFormatter,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(msg="Saved 3 chunks", **extra):
    record = logging.LogRecord("docrag.rag.store", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "docrag.rag.store"
        assert entry["msg"] == "Saved 3 chunks"
        assert "ts" in entry

    def test_extra_fields(self):
        entry = json.loads(JSONFormatter().format(make_record(chunk_id="logs.md:0-5", unrelated="x")))

        assert entry["chunk_id"] == "logs.md:0-5"
        assert "unrelated" not in entry


class TestSetupLogging:

    def test_file_handler(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "docrag.log"

        setup_logging(level="DEBUG", json_output=True, log_file=str(log_file))
        logging.getLogger("docrag.test").info("hello", extra={"query": "logs"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert any(line["msg"] == "hello" and line["query"] == "logs" for line in lines)

    def test_file_is_rotated(self, tmp_path, restore_root_logger):
        setup_logging(log_file=str(tmp_path / "docrag.log"))

        file_handlers = [h for h in logging.getLogger().handlers
                         if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == LOG_FILE_MAX_BYTES
        assert file_handlers[0].backupCount == LOG_FILE_BACKUPS

    def test_client_libraries_quieted(self, restore_root_logger):
        setup_logging(level="DEBUG")

        assert logging.getLogger("openai").level == logging.WARNING

    def test_level(self, restore_root_logger):
        setup_logging(level="warning")

        assert logging.getLogger().level == logging.WARNING
