"""
Custom exceptions for the Package Assembly engine.

Every failure the engine reports is scoped to the single operation that
raised it. None of these errors leaves a package in a partially updated
state, so the caller can always re-collect input or retry the export.

Exception hierarchy:
    PackageAssemblyError (base)
    ├── UnresolvedBarcodeError (scan matched no catalog entry)
    ├── ValidationError (blank manual-entry fields, bad label fields)
    ├── ItemNotFoundError (adjust/remove on a barcode not in the package)
    ├── PackageNotFoundError (unknown package id in the store)
    ├── CatalogError (catalog file unreadable or malformed)
    └── ExportSerializationError (spreadsheet/PDF/label writer failed)
"""

from typing import Optional


class PackageAssemblyError(Exception):
    """
    Base exception for all Package Assembly errors.

    All application-specific exceptions inherit from this class, so callers
    can catch any engine error with a single except clause:
        try:
            store.dispatch(package_id, event)
        except PackageAssemblyError as e:
            show_message(e.get_display_message())

    Note: This does NOT inherit from built-in errors like ValueError, IOError
    to keep application and system errors apart.
    """

    def get_display_message(self) -> str:
        """Return a message suitable for showing to warehouse staff."""
        return str(self)


class UnresolvedBarcodeError(PackageAssemblyError):
    """
    Raised when a scanned code matches no catalog product.

    Recoverable: the caller should prompt for a manual entry carrying the
    same barcode.

    Attributes:
        code (str): The scanned code that could not be resolved.
    """

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or f"Barcode not found in catalog: {code}")
        self.code = code

    def get_display_message(self) -> str:
        return "Producto no encontrado. Puede agregarlo manualmente."


class ValidationError(PackageAssemblyError):
    """
    Raised when input validation fails.

    Typical causes:
    - Manual entry submitted with a blank barcode or product name
    - Blank scan (scanner sent only a line terminator)
    - Unknown label field passed to the store
    - Non-numeric values in config.ini

    The in-progress input is not consumed; the caller may fix it and resubmit.

    Attributes:
        fields (list): Names of the offending fields, if known.
    """

    def __init__(self, message: str, fields: Optional[list] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    def get_display_message(self) -> str:
        if self.fields and set(self.fields) <= {'barcode', 'name'}:
            return "Por favor complete todos los campos obligatorios"
        return str(self)


class ItemNotFoundError(PackageAssemblyError):
    """
    Raised when a quantity adjustment or removal targets a barcode that is
    not present in the package.

    Attributes:
        barcode (str): The barcode that was not found.
    """

    def __init__(self, barcode: str, package_id: Optional[str] = None):
        where = f" in package {package_id}" if package_id else ""
        super().__init__(f"No item with barcode {barcode!r}{where}")
        self.barcode = barcode
        self.package_id = package_id


class PackageNotFoundError(PackageAssemblyError):
    """
    Raised when the store is asked for a package id it does not hold.

    Attributes:
        package_id (str): The requested id.
    """

    def __init__(self, package_id: str):
        super().__init__(f"Package not found: {package_id}")
        self.package_id = package_id


class CatalogError(PackageAssemblyError):
    """
    Raised when the product catalog cannot be loaded.

    Common causes:
    - Catalog file missing or unreadable
    - Invalid JSON
    - Excel sheet without barcode/name columns
    """
    pass


class ExportSerializationError(PackageAssemblyError):
    """
    Raised when an external writer fails to serialize an export.

    The partially written file is removed before this is raised. The
    package and its projections are untouched, so the export can be retried
    (possibly against a different writer or output directory).

    Attributes:
        path (str): Destination path of the failed export.
        reason (str): Underlying error message.
    """

    def __init__(self, path, reason: str):
        super().__init__(f"Could not write export {path}: {reason}")
        self.path = str(path)
        self.reason = reason

    def get_display_message(self) -> str:
        return (
            f"No se pudo generar el archivo:\n\n"
            f"{self.path}\n\n"
            f"Motivo: {self.reason}"
        )
