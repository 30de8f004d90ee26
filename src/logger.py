r"""
Centralized logging configuration for the Package Assembly engine.

This module provides:
- Structured JSON logging to a daily file (one JSON object per line)
- Automatic file rotation when a log file exceeds MaxLogSizeMB
- Human-readable console output
- Cleanup of logs older than LogRetentionDays
- Context fields (package_id, session_id, operator) attached to every record

Log file location: [Logging] LogDir from config.ini, or
~/.package_assembly/logs when not configured.
Log file format: YYYY-MM-DD.log

Example log entry (JSON format):
    {"timestamp": "2026-10-19T10:12:03.481", "level": "INFO",
     "tool": "package_assembly", "package_id": "PKG-1760868723481",
     "session_id": null, "operator": "ana", "module": "aggregator",
     "function": "accept_event", "line": 88, "message": "Item added: 111"}
"""

import logging
import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any
import configparser
from contextvars import ContextVar


TOOL_NAME = 'package_assembly'
ROOT_LOGGER_NAME = 'PackageAssembly'

_package_id: ContextVar[Optional[str]] = ContextVar('package_id', default=None)
_session_id: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
_operator: ContextVar[Optional[str]] = ContextVar('operator', default=None)


class StructuredJSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON with fields:
    - timestamp: ISO 8601 format
    - level: Log level name
    - tool: Always "package_assembly"
    - package_id / session_id / operator: Current context (if set)
    - module, function, line: Source location
    - message: Rendered log message
    - exc_info: Formatted traceback (if present)
    - extra: Value of the record's ``extra_data`` attribute (if present)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'tool': TOOL_NAME,
            'package_id': _package_id.get(),
            'session_id': _session_id.get(),
            'operator': _operator.get(),
            'module': record.name,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exc_info'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_data['extra'] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False, default=str)


class AppLogger:
    """
    Application logger with one-time configuration.

    The first call to ``get_logger`` configures the root logger (file and
    console handlers); later calls only hand out named loggers that share
    that configuration.

    Configuration is read from config.ini:
        [Logging]
        LogLevel = INFO
        MaxLogSizeMB = 10
        LogRetentionDays = 30
        LogDir = C:\\PackageAssembly\\logs

    Attributes:
        _initialized: Whether logging has been configured (class-level)
        config_path: Location of config.ini (class-level, overridable in tests)
    """

    _initialized: bool = False
    config_path: Path = Path('config.ini')

    @classmethod
    def get_logger(cls, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
        """
        Get or create a logger, configuring logging on first use.

        Usage in modules:
            from logger import get_logger
            logger = get_logger(__name__)

        Args:
            name: Logger name, typically the module name (__name__)

        Returns:
            Logger instance sharing the application handlers
        """
        if not cls._initialized:
            cls._setup_logging()
            cls._initialized = True

        return logging.getLogger(name)

    @classmethod
    def reset(cls):
        """Remove the handlers installed by ``_setup_logging`` and allow reconfiguration."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            if getattr(handler, '_package_assembly', False):
                handler.close()
                root_logger.removeHandler(handler)
        cls._initialized = False

    @classmethod
    def _setup_logging(cls):
        """
        Configure the root logger from config.ini.

        Sets up the log directory, level, a RotatingFileHandler with the JSON
        formatter, a console handler with a readable format, and removes log
        files older than the retention period.
        """
        config = cls._load_config(cls.config_path)

        configured_dir = config.get('Logging', 'LogDir', fallback='').strip()
        log_dir = Path(configured_dir) if configured_dir else cls._default_log_dir()

        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            fallback_dir = cls._default_log_dir()
            fallback_dir.mkdir(parents=True, exist_ok=True)
            print(f"Warning: Could not create log directory {log_dir}. Using {fallback_dir}. Error: {e}")
            log_dir = fallback_dir

        log_file = log_dir / f"{datetime.now():%Y-%m-%d}.log"

        log_level_str = config.get('Logging', 'LogLevel', fallback='INFO')
        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        max_log_size = config.getint('Logging', 'MaxLogSizeMB', fallback=10) * 1024 * 1024

        console_formatter = logging.Formatter(
            fmt='%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_log_size,
            backupCount=30,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredJSONFormatter())
        file_handler._package_assembly = True

        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(console_formatter)
        console_handler._package_assembly = True

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        retention_days = config.getint('Logging', 'LogRetentionDays', fallback=30)
        cls._cleanup_old_logs(log_dir, retention_days)

        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.info("=" * 80)
        logger.info("Package Assembly started")
        logger.info(f"Log Level: {log_level_str}")
        logger.info(f"Log File: {log_file}")
        logger.info("=" * 80)

    @staticmethod
    def _default_log_dir() -> Path:
        return Path(os.path.expanduser("~")) / ".package_assembly" / "logs"

    @staticmethod
    def _load_config(config_path: Path) -> configparser.ConfigParser:
        """
        Load logging configuration from config.ini.

        Returns an empty ConfigParser when the file does not exist; callers
        then use the fallback defaults (INFO, 10MB, 30 days).
        """
        config = configparser.ConfigParser()
        config_path = Path(config_path)

        if config_path.exists():
            config.read(config_path, encoding='utf-8')

        return config

    @staticmethod
    def _cleanup_old_logs(log_dir: Path, retention_days: int):
        """
        Delete log files older than the retention period.

        Args:
            log_dir: Directory containing log files
            retention_days: Days to keep logs; 0 or negative disables cleanup
        """
        if retention_days <= 0:
            return

        cutoff_date = datetime.now() - timedelta(days=retention_days)

        try:
            for log_file in log_dir.glob("*.log*"):
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    log_file.unlink()
                    logging.getLogger(ROOT_LOGGER_NAME).debug(f"Deleted old log: {log_file.name}")
        except OSError as e:
            # Old logs are housekeeping only; a locked file must not stop startup
            logging.getLogger(ROOT_LOGGER_NAME).warning(f"Failed to cleanup old logs: {e}")


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get application logger.

    Example:
        >>> from logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Catalog loaded")
    """
    return AppLogger.get_logger(name)


def set_package_context(package_id: Optional[str]) -> None:
    """Set the package id included in subsequent log entries (None clears it)."""
    _package_id.set(package_id)


def set_session_context(session_id: Optional[str]) -> None:
    """Set the session id included in subsequent log entries (None clears it)."""
    _session_id.set(session_id)


def set_operator_context(operator: Optional[str]) -> None:
    """
    Set the operator (warehouse staff member) for subsequent log entries.

    Example:
        >>> set_operator_context("ana")
        >>> logger.info("Scanning")  # Will include operator="ana"
    """
    _operator.set(operator)


def clear_logging_context() -> None:
    """Clear package_id, session_id and operator context."""
    _package_id.set(None)
    _session_id.set(None)
    _operator.set(None)
