"""
Line-Item Aggregator.

Applies one event (scan, manual entry, quantity adjustment, removal) to a
package and returns the updated package together with an EventOutcome. The
package passed in is never modified.

Every event is applied to the normalized item list, so after any event the
stored items are unique per barcode.
"""
from dataclasses import replace
from datetime import datetime
from typing import List, Tuple

from catalog_index import CatalogIndex
from exceptions import ItemNotFoundError, ValidationError
from logger import get_logger
from package_models import (
    ITEM_ADDED,
    ITEM_MERGED,
    ITEM_REMOVED,
    NEEDS_MANUAL_ENTRY,
    QUANTITY_ADJUSTED,
    AdjustQuantity,
    EventOutcome,
    LineItem,
    ManualEntry,
    Package,
    PackageEvent,
    RemoveItem,
    Scanned,
    normalize,
)

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Producto no encontrado. Puede agregarlo manualmente."


def _find(items: List[LineItem], barcode: str) -> int:
    for index, item in enumerate(items):
        if item.barcode == barcode:
            return index
    return -1


def _increment(package: Package, items: List[LineItem], index: int) -> Tuple[Package, EventOutcome]:
    item = items[index]
    updated = replace(item, quantity=item.quantity + 1)
    items[index] = updated

    logger.info(f"Quantity incremented: {updated.barcode} -> {updated.quantity}")
    outcome = EventOutcome(
        status=ITEM_MERGED,
        barcode=updated.barcode,
        name=updated.name,
        quantity=updated.quantity,
        message=f"Cantidad incrementada: {updated.name}",
    )
    return replace(package, items=tuple(items)), outcome


def _append(package: Package, items: List[LineItem], item: LineItem) -> Tuple[Package, EventOutcome]:
    items.append(item)

    logger.info(f"Item added: {item.barcode} ({'manual' if item.manual else 'catalog'})")
    outcome = EventOutcome(
        status=ITEM_ADDED,
        barcode=item.barcode,
        name=item.name,
        quantity=item.quantity,
        message=f"Producto agregado: {item.name}",
    )
    return replace(package, items=tuple(items)), outcome


def _apply_scan(package, items, event: Scanned, catalog: CatalogIndex):
    code = (event.code or '').strip()
    if not code:
        raise ValidationError("Scanned code is empty", fields=['code'])

    product = catalog.lookup(code)
    if product is None:
        logger.info(f"Barcode not in catalog, manual entry required: {code}")
        return package, EventOutcome(
            status=NEEDS_MANUAL_ENTRY,
            barcode=code,
            message=NOT_FOUND_MESSAGE,
        )

    index = _find(items, code)
    if index >= 0:
        return _increment(package, items, index)

    return _append(package, items, LineItem(barcode=product.barcode, name=product.name))


def _apply_manual_entry(package, items, event: ManualEntry):
    barcode = (event.barcode or '').strip()
    name = (event.name or '').strip()

    missing = [field for field, value in (('barcode', barcode), ('name', name)) if not value]
    if missing:
        logger.warning(f"Manual entry rejected, missing fields: {missing}")
        raise ValidationError(
            f"Manual entry requires non-empty {' and '.join(missing)}",
            fields=missing
        )

    index = _find(items, barcode)
    if index >= 0:
        return _increment(package, items, index)

    return _append(
        package,
        items,
        LineItem(barcode=barcode, name=name, manual=True, created_at=datetime.now()),
    )


def _apply_adjustment(package, items, event: AdjustQuantity):
    index = _find(items, event.barcode)
    if index < 0:
        raise ItemNotFoundError(event.barcode, package.id)

    item = items[index]
    new_quantity = max(1, item.quantity + int(event.delta))
    items[index] = replace(item, quantity=new_quantity)

    logger.info(f"Quantity adjusted: {item.barcode} {item.quantity} -> {new_quantity} (delta {event.delta})")
    outcome = EventOutcome(
        status=QUANTITY_ADJUSTED,
        barcode=item.barcode,
        name=item.name,
        quantity=new_quantity,
        message=f"Cantidad actualizada: {item.name} ({new_quantity})",
    )
    return replace(package, items=tuple(items)), outcome


def _apply_removal(package, items, event: RemoveItem):
    index = _find(items, event.barcode)
    if index < 0:
        raise ItemNotFoundError(event.barcode, package.id)

    removed = items.pop(index)

    logger.info(f"Item removed: {removed.barcode} (quantity {removed.quantity})")
    outcome = EventOutcome(
        status=ITEM_REMOVED,
        barcode=removed.barcode,
        message=f"Producto eliminado: {removed.name}",
    )
    return replace(package, items=tuple(items)), outcome


def accept_event(package: Package, event: PackageEvent, catalog: CatalogIndex) -> Tuple[Package, EventOutcome]:
    """
    Apply a single event to a package.

    Args:
        package: Current package state (not modified)
        event: Scanned, ManualEntry, AdjustQuantity or RemoveItem
        catalog: Index used to resolve scanned codes

    Returns:
        Tuple[Package, EventOutcome]: The updated package (the same object
        when the event resolved to NEEDS_MANUAL_ENTRY) and the outcome.

    Raises:
        ValidationError: Blank scan or manual entry with a blank field
        ItemNotFoundError: Adjust/remove on a barcode not in the package
        TypeError: Unknown event type
    """
    items = normalize(package.items)

    if isinstance(event, Scanned):
        return _apply_scan(package, items, event, catalog)
    if isinstance(event, ManualEntry):
        return _apply_manual_entry(package, items, event)
    if isinstance(event, AdjustQuantity):
        return _apply_adjustment(package, items, event)
    if isinstance(event, RemoveItem):
        return _apply_removal(package, items, event)

    raise TypeError(f"Unsupported package event: {type(event).__name__}")
