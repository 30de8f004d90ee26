"""
Unit tests for centralized logging.

Tests cover:
- Structured JSON format and context fields (package_id, session_id, operator)
- Logger configuration from config.ini
- Cleanup of old log files
"""

import json
import logging
import os
import time
from datetime import datetime

import pytest

from logger import (
    TOOL_NAME,
    AppLogger,
    StructuredJSONFormatter,
    clear_logging_context,
    get_logger,
    set_operator_context,
    set_package_context,
    set_session_context,
)


def make_record(msg="Test message", exc_info=None):
    return logging.LogRecord(
        name="TestLogger",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
        func="test_function",
    )


@pytest.fixture(autouse=True)
def clean_context():
    clear_logging_context()
    yield
    clear_logging_context()


@pytest.fixture
def isolated_logging(test_dir):
    """Reconfigure logging against a config.ini inside test_dir, then restore."""
    original_path = AppLogger.config_path
    AppLogger.reset()

    def configure(text):
        config_path = test_dir / "config.ini"
        config_path.write_text(text, encoding="utf-8")
        AppLogger.config_path = config_path
        return get_logger("test_logger")

    yield configure

    AppLogger.reset()
    AppLogger.config_path = original_path
    get_logger()


class TestStructuredJSONFormatter:

    def test_basic_json_format(self):
        data = json.loads(StructuredJSONFormatter().format(make_record()))

        assert data['level'] == 'INFO'
        assert data['tool'] == TOOL_NAME
        assert data['module'] == 'TestLogger'
        assert data['function'] == 'test_function'
        assert data['line'] == 42
        assert data['message'] == 'Test message'
        assert data['package_id'] is None
        datetime.fromisoformat(data['timestamp'])

    def test_context_fields(self):
        set_package_context("PKG-1")
        set_session_context("20261019_100000")
        set_operator_context("ana")

        data = json.loads(StructuredJSONFormatter().format(make_record()))

        assert data['package_id'] == "PKG-1"
        assert data['session_id'] == "20261019_100000"
        assert data['operator'] == "ana"

    def test_clear_context(self):
        set_package_context("PKG-1")
        set_operator_context("ana")
        clear_logging_context()

        data = json.loads(StructuredJSONFormatter().format(make_record()))
        assert data['package_id'] is None
        assert data['operator'] is None

    def test_unicode_kept(self):
        data = StructuredJSONFormatter().format(make_record("Producto agregado: Psicofármaco"))
        assert "Psicofármaco" in data

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = make_record(exc_info=sys.exc_info())

        data = json.loads(StructuredJSONFormatter().format(record))
        assert "ValueError: boom" in data['exc_info']

    def test_extra_data(self):
        record = make_record()
        record.extra_data = {"lines": 3}
        data = json.loads(StructuredJSONFormatter().format(record))
        assert data['extra'] == {"lines": 3}


class TestAppLogger:

    def test_writes_json_file_in_configured_dir(self, isolated_logging, test_dir):
        log_dir = test_dir / "logs"
        logger = isolated_logging(f"[Logging]\nLogDir = {log_dir}\nLogLevel = DEBUG\n")

        set_package_context("PKG-77")
        logger.info("Item added: 111")
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_file = log_dir / f"{datetime.now():%Y-%m-%d}.log"
        entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        entry = [e for e in entries if e['message'] == "Item added: 111"][0]
        assert entry['package_id'] == "PKG-77"
        assert entry['level'] == "INFO"

    def test_log_level_from_config(self, isolated_logging, test_dir):
        isolated_logging(f"[Logging]\nLogDir = {test_dir / 'logs'}\nLogLevel = WARNING\n")
        assert logging.getLogger().level == logging.WARNING

    def test_handlers_installed_once(self, isolated_logging, test_dir):
        isolated_logging(f"[Logging]\nLogDir = {test_dir / 'logs'}\n")
        count = len(logging.getLogger().handlers)

        get_logger("another")
        get_logger("third")

        assert len(logging.getLogger().handlers) == count

    def test_missing_config_returns_empty_parser(self, test_dir):
        config = AppLogger._load_config(test_dir / "missing.ini")
        assert not config.has_section('Logging')


class TestCleanup:

    def test_old_logs_removed(self, test_dir):
        old_log = test_dir / "2020-01-01.log"
        new_log = test_dir / "today.log"
        old_log.write_text("old")
        new_log.write_text("new")
        old_time = time.time() - 40 * 24 * 3600
        os.utime(old_log, (old_time, old_time))

        AppLogger._cleanup_old_logs(test_dir, retention_days=30)

        assert not old_log.exists()
        assert new_log.exists()

    def test_zero_retention_disables_cleanup(self, test_dir):
        old_log = test_dir / "2020-01-01.log"
        old_log.write_text("old")
        old_time = time.time() - 400 * 24 * 3600
        os.utime(old_log, (old_time, old_time))

        AppLogger._cleanup_old_logs(test_dir, retention_days=0)

        assert old_log.exists()
