"""
Package Store - owns the session's packages and the active package.

All item mutations go through ``aggregator.accept_event``; the store only
swaps in the package value the aggregator returns. Packages live for the
lifetime of the store (one user session) and are never persisted.
"""
import time
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from aggregator import accept_event
from catalog_index import CatalogIndex
from exceptions import PackageNotFoundError, ValidationError
from logger import get_logger, set_package_context
from package_models import EventOutcome, LabelMeta, Package, PackageEvent

logger = get_logger(__name__)

PACKAGE_ID_PREFIX = "PKG-"
LABEL_FIELDS = ('responsible', 'laboratory', 'is_psychotropic')


class PackageStore(QObject):
    """
    In-memory collection of packages for one session.

    The store assumes at most one mutation in flight per package; hosts that
    call it from several threads must serialize access themselves.

    Attributes:
        package_created (Signal): Emitted with the new package id
        package_updated (Signal): Emitted with the id after an item or label change
        package_deleted (Signal): Emitted with the id of a deleted package
        active_package_changed (Signal): Emitted with the new active id ("" when none)
        catalog (CatalogIndex): Index used to resolve scanned codes
    """
    package_created = Signal(str)
    package_updated = Signal(str)
    package_deleted = Signal(str)
    active_package_changed = Signal(str)

    def __init__(self, catalog: CatalogIndex, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.catalog = catalog
        self._packages: Dict[str, Package] = {}
        self._active_id: Optional[str] = None
        self._last_id_number = 0

        logger.info(f"PackageStore initialized with {len(catalog)} catalog products")

    def _next_package_id(self) -> str:
        # Millisecond timestamp, bumped when two packages are created in the same millisecond
        number = max(int(time.time() * 1000), self._last_id_number + 1)
        while f"{PACKAGE_ID_PREFIX}{number}" in self._packages:
            number += 1
        self._last_id_number = number
        return f"{PACKAGE_ID_PREFIX}{number}"

    def create_package(self) -> Package:
        """Create an empty package and make it the active one."""
        package = Package(id=self._next_package_id(), created_at=datetime.now(), label=LabelMeta())
        self._packages[package.id] = package

        logger.info(f"Package created: {package.id}")
        self.package_created.emit(package.id)
        self.set_active(package.id)
        return package

    def get(self, package_id: str) -> Package:
        """
        Return the current state of a package.

        Raises:
            PackageNotFoundError: If the id is unknown
        """
        try:
            return self._packages[package_id]
        except KeyError:
            raise PackageNotFoundError(package_id)

    def list_packages(self) -> List[Package]:
        """All packages in creation order."""
        return list(self._packages.values())

    def __len__(self) -> int:
        return len(self._packages)

    def __contains__(self, package_id) -> bool:
        return package_id in self._packages

    @property
    def active_package_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_package(self) -> Optional[Package]:
        if self._active_id is None:
            return None
        return self._packages[self._active_id]

    def set_active(self, package_id: str):
        """
        Select the package that subsequent scans apply to.

        Raises:
            PackageNotFoundError: If the id is unknown
        """
        self.get(package_id)
        if package_id == self._active_id:
            return
        self._active_id = package_id
        set_package_context(package_id)
        logger.debug(f"Active package: {package_id}")
        self.active_package_changed.emit(package_id)

    def dispatch(self, package_id: str, event: PackageEvent) -> Tuple[Package, EventOutcome]:
        """
        Apply an event to the package's current state and store the result.

        Errors raised by the aggregator propagate unchanged and leave the
        stored package as it was.

        Args:
            package_id: Target package
            event: Scanned, ManualEntry, AdjustQuantity or RemoveItem

        Returns:
            Tuple[Package, EventOutcome]: Updated package and outcome

        Raises:
            PackageNotFoundError: If the id is unknown
            ValidationError, ItemNotFoundError: From the aggregator
        """
        current = self.get(package_id)
        logger.debug(f"Dispatching {type(event).__name__} to {package_id}")

        updated, outcome = accept_event(current, event, self.catalog)

        if updated is not current:
            self._packages[package_id] = updated
            self.package_updated.emit(package_id)

        return updated, outcome

    def dispatch_active(self, event: PackageEvent) -> Tuple[Package, EventOutcome]:
        """
        Dispatch to the active package.

        Raises:
            PackageNotFoundError: If no package is active
        """
        if self._active_id is None:
            raise PackageNotFoundError("<no active package>")
        return self.dispatch(self._active_id, event)

    def update_label(self, package_id: str, **changes) -> Package:
        """
        Merge label fields into a package's label metadata.

        Only keyword arguments with a non-None value are applied. Text fields
        are stripped; an empty string clears the field.

        Args:
            package_id: Target package
            **changes: Any of responsible, laboratory, is_psychotropic

        Returns:
            The updated package

        Raises:
            PackageNotFoundError: If the id is unknown
            ValidationError: If an unknown field name is passed
        """
        current = self.get(package_id)

        unknown = sorted(set(changes) - set(LABEL_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown label fields: {', '.join(unknown)}", fields=unknown)

        applied = {}
        for key, value in changes.items():
            if value is None:
                continue
            if key == 'is_psychotropic':
                applied[key] = bool(value)
            else:
                applied[key] = str(value).strip() or None

        if not applied:
            return current

        updated = replace(current, label=replace(current.label, **applied))
        self._packages[package_id] = updated

        logger.info(f"Label updated for {package_id}: {sorted(applied)}")
        self.package_updated.emit(package_id)
        return updated

    def delete_package(self, package_id: str):
        """
        Discard a package. Clears the active selection if it was active.

        Raises:
            PackageNotFoundError: If the id is unknown
        """
        self.get(package_id)
        del self._packages[package_id]
        logger.info(f"Package deleted: {package_id}")
        self.package_deleted.emit(package_id)

        if self._active_id == package_id:
            self._active_id = None
            set_package_context(None)
            self.active_package_changed.emit("")
