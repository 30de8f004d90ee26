"""
Tests for config.ini loading.
"""

import pytest

from app_settings import DEFAULT_FIRST_PAGE_ROWS, DEFAULT_ROWS_PER_PAGE, AppSettings, load_settings
from exceptions import ValidationError


def write_config(test_dir, text):
    path = test_dir / "config.ini"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_missing_file_gives_defaults(test_dir):
    settings = load_settings(str(test_dir / "absent.ini"))
    assert settings == AppSettings()
    assert settings.first_page_rows == DEFAULT_FIRST_PAGE_ROWS == 20
    assert settings.rows_per_page == DEFAULT_ROWS_PER_PAGE == 30


def test_full_config(test_dir):
    path = write_config(test_dir, (
        "[Catalog]\nPath = data/products.json\n\n"
        "[Export]\nOutputDir = out\nFirstPageRows = 15\nRowsPerPage = 40\nIncludeLabel = no\n"
    ))
    settings = load_settings(path)

    assert settings.catalog_path == "data/products.json"
    assert settings.output_dir == "out"
    assert settings.first_page_rows == 15
    assert settings.rows_per_page == 40
    assert settings.include_label is False


def test_partial_config_uses_defaults(test_dir):
    settings = load_settings(write_config(test_dir, "[Export]\nRowsPerPage = 25\n"))
    assert settings.catalog_path is None
    assert settings.output_dir == "exports"
    assert settings.first_page_rows == DEFAULT_FIRST_PAGE_ROWS
    assert settings.rows_per_page == 25
    assert settings.include_label is True


@pytest.mark.parametrize("line,field", [
    ("FirstPageRows = many", "FirstPageRows"),
    ("RowsPerPage = 0", "RowsPerPage"),
    ("IncludeLabel = maybe", "IncludeLabel"),
])
def test_invalid_values(test_dir, line, field):
    path = write_config(test_dir, f"[Export]\n{line}\n")
    with pytest.raises(ValidationError) as exc_info:
        load_settings(path)
    assert exc_info.value.fields == [field]
