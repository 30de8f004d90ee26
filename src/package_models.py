"""
Data model for package assembly.

A Package holds a raw sequence of LineItem entries (the source of truth) plus
label metadata. The per-barcode view shown to users and written to exports is
always derived with ``normalize`` and never stored separately.

Packages and line items are immutable; every mutation produces a new value.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

from exceptions import UnresolvedBarcodeError


MANUAL_NOTE = "Ingreso Manual"

# Outcome status codes returned by the aggregator
ITEM_ADDED = "ITEM_ADDED"
ITEM_MERGED = "ITEM_MERGED"
NEEDS_MANUAL_ENTRY = "NEEDS_MANUAL_ENTRY"
QUANTITY_ADJUSTED = "QUANTITY_ADJUSTED"
ITEM_REMOVED = "ITEM_REMOVED"


@dataclass(frozen=True)
class Product:
    """Catalog product. Barcode is the natural key."""
    barcode: str
    name: str


@dataclass(frozen=True)
class LineItem:
    """One product within a package."""
    barcode: str
    name: str
    quantity: int = 1
    manual: bool = False
    created_at: Optional[datetime] = None   # set for manual items only

    @property
    def notes(self) -> str:
        return MANUAL_NOTE if self.manual else ""


def normalize(items: Iterable[LineItem]) -> List[LineItem]:
    """
    Collapse raw item entries into one LineItem per barcode.

    Order follows the first appearance of each barcode and quantities are
    summed. Everything else (name, manual flag, created_at) comes from the
    first entry for the barcode.

    The result is a fixed point: ``normalize(normalize(x)) == normalize(x)``.

    Args:
        items: Raw entries, in arrival order

    Returns:
        List of unique LineItems
    """
    merged: Dict[str, LineItem] = {}

    for item in items:
        existing = merged.get(item.barcode)
        if existing is None:
            merged[item.barcode] = item
        else:
            merged[item.barcode] = replace(existing, quantity=existing.quantity + item.quantity)

    return list(merged.values())


@dataclass(frozen=True)
class LabelMeta:
    """Shipping label fields ("rótulo") attached to a package."""
    responsible: Optional[str] = None
    laboratory: Optional[str] = None
    is_psychotropic: bool = False


@dataclass(frozen=True)
class Package:
    """
    A shipment bundle being assembled.

    Attributes:
        id: Unique id, e.g. "PKG-1760868723481"
        items: Raw item entries, in arrival order
        created_at: Creation timestamp
        label: Label metadata
    """
    id: str
    items: Tuple[LineItem, ...] = ()
    created_at: datetime = field(default_factory=datetime.now)
    label: LabelMeta = field(default_factory=LabelMeta)

    @property
    def line_items(self) -> list:
        """Normalized per-barcode view of ``items``."""
        return normalize(self.items)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.line_items)


# === Events ===

@dataclass(frozen=True)
class Scanned:
    """A decoded barcode from a scanner or camera."""
    code: str


@dataclass(frozen=True)
class ManualEntry:
    """A product typed in by the user because the catalog lacks it."""
    barcode: str
    name: str


@dataclass(frozen=True)
class AdjustQuantity:
    """Add ``delta`` (may be negative) to an item's quantity, floored at 1."""
    barcode: str
    delta: int


@dataclass(frozen=True)
class RemoveItem:
    """Delete an item regardless of its quantity."""
    barcode: str


PackageEvent = Union[Scanned, ManualEntry, AdjustQuantity, RemoveItem]


@dataclass(frozen=True)
class EventOutcome:
    """
    Result of applying one event.

    Attributes:
        status: One of ITEM_ADDED, ITEM_MERGED, NEEDS_MANUAL_ENTRY,
                QUANTITY_ADJUSTED, ITEM_REMOVED
        barcode: Barcode the event resolved to
        name: Product name as stored in the package (None when unresolved
              or removed)
        quantity: Resulting quantity (0 when unresolved or removed)
        message: User-facing status text
    """
    status: str
    barcode: str
    name: Optional[str] = None
    quantity: int = 0
    message: str = ""

    @property
    def needs_manual_entry(self) -> bool:
        return self.status == NEEDS_MANUAL_ENTRY

    def raise_for_status(self) -> None:
        """Raise UnresolvedBarcodeError if the scanned code was not resolved."""
        if self.needs_manual_entry:
            raise UnresolvedBarcodeError(self.barcode)
