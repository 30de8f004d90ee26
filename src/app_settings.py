"""
Application settings loaded from config.ini.

Example config.ini:
    [Catalog]
    Path = data/products.json

    [Export]
    OutputDir = exports
    FirstPageRows = 20
    RowsPerPage = 30
    IncludeLabel = true

    [Logging]
    LogLevel = INFO
"""
import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from exceptions import ValidationError
from logger import get_logger

logger = get_logger(__name__)

DEFAULT_FIRST_PAGE_ROWS = 20
DEFAULT_ROWS_PER_PAGE = 30


@dataclass
class AppSettings:
    """Resolved settings with defaults for every missing key."""
    catalog_path: Optional[str] = None
    output_dir: str = "exports"
    first_page_rows: int = DEFAULT_FIRST_PAGE_ROWS
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE
    include_label: bool = True


def _read_positive_int(config: configparser.ConfigParser, key: str, fallback: int) -> int:
    try:
        value = config.getint('Export', key, fallback=fallback)
    except ValueError:
        raise ValidationError(
            f"[Export] {key} must be an integer, got {config.get('Export', key)!r}",
            fields=[key]
        )
    if value < 1:
        raise ValidationError(f"[Export] {key} must be at least 1, got {value}", fields=[key])
    return value


def load_settings(config_path: str = "config.ini") -> AppSettings:
    """
    Load settings from config.ini.

    A missing file is not an error: defaults are returned and a warning is
    logged.

    Args:
        config_path: Path to config.ini

    Returns:
        AppSettings instance

    Raises:
        ValidationError: If a numeric or boolean value cannot be parsed
    """
    config = configparser.ConfigParser()

    if not Path(config_path).exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return AppSettings()

    config.read(config_path, encoding='utf-8')
    logger.info(f"Configuration loaded from {config_path}")

    catalog_path = config.get('Catalog', 'Path', fallback='').strip() or None

    try:
        include_label = config.getboolean('Export', 'IncludeLabel', fallback=True)
    except ValueError:
        raise ValidationError(
            f"[Export] IncludeLabel must be true/false, got {config.get('Export', 'IncludeLabel')!r}",
            fields=['IncludeLabel']
        )

    return AppSettings(
        catalog_path=catalog_path,
        output_dir=config.get('Export', 'OutputDir', fallback='exports').strip() or 'exports',
        first_page_rows=_read_positive_int(config, 'FirstPageRows', DEFAULT_FIRST_PAGE_ROWS),
        rows_per_page=_read_positive_int(config, 'RowsPerPage', DEFAULT_ROWS_PER_PAGE),
        include_label=include_label,
    )
