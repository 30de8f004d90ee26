"""
Catalog Index - read-only barcode to product lookup.

The catalog is supplied once at startup (JSON, Excel or in-memory records)
and never changes while the engine runs. Lookups are exact string matches on
the barcode: no case folding, no stripping of dashes or spaces.
"""
import json
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Optional, Union

import pandas as pd

from exceptions import CatalogError
from logger import get_logger
from package_models import Product

logger = get_logger(__name__)

BARCODE_COLUMN = 'barcode'
NAME_COLUMN = 'name'


class CatalogIndex:
    """
    Immutable barcode -> Product index.

    Records with a blank barcode or name are skipped. When the same barcode
    appears more than once the first record wins; later ones are logged and
    ignored.
    """

    def __init__(self, products: Iterable[Union[Product, dict]] = ()):
        index: Dict[str, Product] = {}
        skipped = 0
        duplicates = 0

        for record in products:
            product = self._coerce(record)
            if product is None:
                skipped += 1
                continue
            if product.barcode in index:
                duplicates += 1
                logger.warning(
                    f"Duplicate barcode {product.barcode!r} in catalog, "
                    f"keeping {index[product.barcode].name!r}"
                )
                continue
            index[product.barcode] = product

        self._index = MappingProxyType(index)

        if skipped:
            logger.warning(f"Skipped {skipped} catalog records with blank barcode or name")
        logger.info(f"Catalog index built: {len(index)} products ({duplicates} duplicates ignored)")

    @staticmethod
    def _coerce(record: Union[Product, dict]) -> Optional[Product]:
        if isinstance(record, Product):
            barcode, name = record.barcode, record.name
        else:
            barcode = record.get(BARCODE_COLUMN)
            name = record.get(NAME_COLUMN)

        barcode = '' if barcode is None else str(barcode).strip()
        name = '' if name is None else str(name).strip()
        if not barcode or not name:
            return None
        return Product(barcode=barcode, name=name)

    # === Constructors ===

    @classmethod
    def from_records(cls, records: Iterable[Union[Product, dict]]) -> 'CatalogIndex':
        return cls(records)

    @classmethod
    def from_json(cls, file_path: Union[str, Path]) -> 'CatalogIndex':
        """
        Load a catalog from JSON.

        Accepts either ``{"products": [{"barcode": ..., "name": ...}, ...]}``
        or a bare list of product objects.

        Raises:
            CatalogError: If the file cannot be read or has an unexpected shape
        """
        file_path = Path(file_path)
        logger.info(f"Loading catalog from: {file_path}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in catalog file: {e}")
            raise CatalogError(f"Invalid JSON in catalog file {file_path}: {e}")
        except OSError as e:
            logger.error(f"Failed to read catalog file: {e}")
            raise CatalogError(f"Could not read the catalog file {file_path}: {e}")

        if isinstance(data, dict):
            data = data.get('products')
        if not isinstance(data, list):
            raise CatalogError(f"Catalog file {file_path} must contain a 'products' list")
        if not all(isinstance(record, dict) for record in data):
            raise CatalogError(f"Catalog file {file_path} contains non-object product entries")

        return cls(data)

    @classmethod
    def from_excel(cls, file_path: Union[str, Path]) -> 'CatalogIndex':
        """
        Load a catalog from the first sheet of an Excel file.

        Column headers are matched case-insensitively against "barcode" and
        "name". All cells are read as text so leading zeros survive.

        Raises:
            CatalogError: If the file cannot be read or lacks required columns
        """
        logger.info(f"Loading catalog from: {file_path}")

        try:
            df = pd.read_excel(file_path, dtype=str).fillna('')
        except Exception as e:
            logger.error(f"Failed to read Excel file: {e}")
            raise CatalogError(f"Could not read the Excel file: {e}")

        df.columns = [str(col).strip().lower() for col in df.columns]
        missing = [col for col in (BARCODE_COLUMN, NAME_COLUMN) if col not in df.columns]
        if missing:
            logger.error(f"Missing required catalog columns: {missing}")
            raise CatalogError(f"The catalog file is missing required columns: {', '.join(missing)}")

        return cls(df[[BARCODE_COLUMN, NAME_COLUMN]].to_dict('records'))

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'CatalogIndex':
        """Dispatch on extension: .xlsx/.xls to Excel, anything else to JSON."""
        if Path(file_path).suffix.lower() in ('.xlsx', '.xls'):
            return cls.from_excel(file_path)
        return cls.from_json(file_path)

    # === Lookup ===

    def lookup(self, barcode: str) -> Optional[Product]:
        """Return the product for ``barcode`` or None when it is not cataloged."""
        return self._index.get(barcode)

    def __contains__(self, barcode) -> bool:
        return barcode in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._index.values())
