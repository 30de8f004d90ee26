"""
Pytest configuration file for Package Assembly tests.

Puts 'src' on sys.path so tests import modules the same way the
application does, points logging at a temporary directory, and provides
shared fixtures.
"""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Get the repository root directory (parent of tests directory)
repo_root = Path(__file__).parent.parent

src_dir = repo_root / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

# Logging is configured on first get_logger() call; send it to a temp dir
_log_root = Path(tempfile.mkdtemp(prefix="package_assembly_logs_"))
_log_config = _log_root / "config.ini"
_log_config.write_text(
    f"[Logging]\nLogLevel = DEBUG\nLogDir = {_log_root / 'logs'}\n",
    encoding='utf-8'
)

from logger import AppLogger  # noqa: E402

AppLogger.config_path = _log_config

from catalog_index import CatalogIndex  # noqa: E402
from package_models import LabelMeta, LineItem, Package  # noqa: E402
from package_store import PackageStore  # noqa: E402


CATALOG_RECORDS = [
    {"barcode": "111", "name": "Aspirin"},
    {"barcode": "222", "name": "Ibuprofen"},
    {"barcode": "333", "name": "Bandage"},
]


@pytest.fixture
def catalog():
    """Small catalog: 111 Aspirin, 222 Ibuprofen, 333 Bandage."""
    return CatalogIndex.from_records(CATALOG_RECORDS)


@pytest.fixture
def store(catalog):
    """PackageStore over the sample catalog."""
    return PackageStore(catalog)


@pytest.fixture
def empty_package():
    return Package(id="PKG-1")


@pytest.fixture
def test_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


def make_package(items, package_id="PKG-TEST", label=None):
    """
    Build a package directly from raw item tuples.

    Each tuple is (barcode, quantity) or (barcode, quantity, manual); names
    default to "Product <barcode>".
    """
    raw = []
    for entry in items:
        barcode, quantity = entry[0], entry[1]
        manual = entry[2] if len(entry) > 2 else False
        raw.append(LineItem(barcode=barcode, name=f"Product {barcode}", quantity=quantity, manual=manual))
    return Package(id=package_id, items=tuple(raw), label=label or LabelMeta())
