"""
Tests for logging setup and the structured payload formatter.
"""

from __future__ import annotations

import logging

import pytest

from kestrel.log import PayloadFormatter, payload, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(message, **extra):
    record = logging.LogRecord("kestrel.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestPayloadFormatter:
    def test_payload_is_appended_as_sorted_json(self):
        formatter = PayloadFormatter(fmt="%(levelname)s - %(message)s")
        record = make_record("Moved messages", **payload(folder="trash", count=3))
        assert formatter.format(record) == 'INFO - Moved messages {"count": 3, "folder": "trash"}'

    def test_plain_records_are_untouched(self):
        formatter = PayloadFormatter(fmt="%(message)s")
        assert formatter.format(make_record("hello")) == "hello"


class TestSetupLogging:
    def test_file_handler_writes_payload(self, temp_dir, restore_root_logger):
        log_file = temp_dir / "state" / "kestrel.log"
        setup_logging(log_file=log_file)

        logging.getLogger("kestrel.test").info("Sync started", extra=payload(account_id="a1"))
        for handler in restore_root_logger.handlers:
            handler.flush()

        text = log_file.read_text()
        assert 'Sync started {"account_id": "a1"}' in text

    def test_debug_level(self, restore_root_logger):
        setup_logging(debug=True)
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("aiosmtplib").level == logging.WARNING
