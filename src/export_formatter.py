"""
Export Formatter - projects a package into export-ready structures.

Two projections are built from one call to ``normalize``:

- TabularExport: a header row plus one row per line item, written to the
  "COMPRAS" sheet of the spreadsheet.
- Manifest: a header block and a column table split into pages, rendered to
  the PDF manifest.

Because both come from the same normalized list, the spreadsheet and the
manifest always show the same rows and the same total.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from app_settings import DEFAULT_FIRST_PAGE_ROWS, DEFAULT_ROWS_PER_PAGE
from exceptions import ValidationError
from package_models import LineItem, Package, normalize

SHEET_NAME = "COMPRAS"
TABULAR_HEADER = ['ID_PAQUETE', 'CODIGO_BARRAS', 'NOMBRE_PRODUCTO', 'CANTIDAD', 'OBSERVACIONES']
SPREADSHEET_EXTENSION = ".xlsx"

MANIFEST_TITLE = "LISTA DE PRODUCTOS - PAQUETE"
MANIFEST_COLUMNS = ['Código', 'Producto', 'Cantidad', 'Observaciones']
MANIFEST_EXTENSION = ".pdf"
PSYCHOTROPIC_TYPE = "Psicofármaco"


@dataclass(frozen=True)
class TabularExport:
    """Rows for the spreadsheet export (header excluded from ``rows``)."""
    package_id: str
    header: List[str]
    rows: List[list]
    filename: str
    sheet_name: str = SHEET_NAME

    @property
    def total_quantity(self) -> int:
        return sum(row[3] for row in self.rows)


@dataclass(frozen=True)
class ManifestHeader:
    """Header block printed at the top of the first manifest page."""
    title: str
    package_id: str
    generated_at: datetime
    total_items: int
    responsible: Optional[str] = None
    laboratory: Optional[str] = None
    is_psychotropic: bool = False

    def fields(self) -> List[Tuple[str, str]]:
        """Label/value pairs in print order; optional fields only when set."""
        pairs = [
            ("ID del Paquete", self.package_id),
            ("Fecha", self.generated_at.strftime("%d/%m/%Y %H:%M")),
            ("Total de items", str(self.total_items)),
        ]
        if self.responsible:
            pairs.append(("Responsable", self.responsible))
        if self.laboratory:
            pairs.append(("Laboratorio", self.laboratory))
        if self.is_psychotropic:
            pairs.append(("Tipo", PSYCHOTROPIC_TYPE))
        return pairs


@dataclass(frozen=True)
class ManifestPage:
    """One page of the manifest table. ``columns`` is repeated on every page."""
    number: int
    columns: List[str]
    rows: List[list]


@dataclass(frozen=True)
class Manifest:
    header: ManifestHeader
    pages: List[ManifestPage]
    filename: str
    footer: str = ""

    @property
    def rows(self) -> List[list]:
        return [row for page in self.pages for row in page.rows]

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass(frozen=True)
class ExportBundle:
    """Both projections plus the normalized items they were built from."""
    items: List[LineItem]
    tabular: TabularExport
    manifest: Manifest
    generated_at: datetime = field(default_factory=datetime.now)


def tabular_filename(package_id: str, export_date: datetime) -> str:
    return f"COMPRAS_{package_id}_{export_date.date().isoformat()}{SPREADSHEET_EXTENSION}"


def manifest_filename(package_id: str) -> str:
    return f"lista_paquete_{package_id}{MANIFEST_EXTENSION}"


def build_tabular(package: Package, items: List[LineItem], generated_at: datetime) -> TabularExport:
    rows = [
        [package.id, item.barcode, item.name, item.quantity, item.notes]
        for item in items
    ]
    return TabularExport(
        package_id=package.id,
        header=list(TABULAR_HEADER),
        rows=rows,
        filename=tabular_filename(package.id, generated_at),
    )


def paginate(rows: List[list], first_page_rows: int, rows_per_page: int) -> List[List[list]]:
    """
    Split rows into pages.

    The first page holds fewer rows because the header block takes space.
    An empty row list still produces one (empty) page.
    """
    if first_page_rows < 1 or rows_per_page < 1:
        raise ValidationError("Page capacities must be at least 1 row")

    chunks = [rows[:first_page_rows]]
    remaining = rows[first_page_rows:]
    while remaining:
        chunks.append(remaining[:rows_per_page])
        remaining = remaining[rows_per_page:]
    return chunks


def build_manifest(package: Package, items: List[LineItem], generated_at: datetime,
                   first_page_rows: int = DEFAULT_FIRST_PAGE_ROWS,
                   rows_per_page: int = DEFAULT_ROWS_PER_PAGE) -> Manifest:
    label = package.label
    header = ManifestHeader(
        title=MANIFEST_TITLE,
        package_id=package.id,
        generated_at=generated_at,
        total_items=sum(item.quantity for item in items),
        responsible=label.responsible or None,
        laboratory=label.laboratory or None,
        is_psychotropic=label.is_psychotropic,
    )

    rows = [[item.barcode, item.name, item.quantity, item.notes] for item in items]
    pages = [
        ManifestPage(number=number, columns=list(MANIFEST_COLUMNS), rows=chunk)
        for number, chunk in enumerate(paginate(rows, first_page_rows, rows_per_page), start=1)
    ]

    return Manifest(
        header=header,
        pages=pages,
        filename=manifest_filename(package.id),
        footer=f"Documento generado el {generated_at.strftime('%d/%m/%Y %H:%M:%S')}",
    )


def build_exports(package: Package, generated_at: Optional[datetime] = None,
                  first_page_rows: int = DEFAULT_FIRST_PAGE_ROWS,
                  rows_per_page: int = DEFAULT_ROWS_PER_PAGE) -> ExportBundle:
    """
    Build the spreadsheet and manifest projections of a package.

    Args:
        package: Package to export
        generated_at: Timestamp stamped on both exports (defaults to now)
        first_page_rows: Table rows that fit on the first manifest page
        rows_per_page: Table rows that fit on later manifest pages

    Returns:
        ExportBundle with both projections
    """
    generated_at = generated_at or datetime.now()
    items = normalize(package.items)

    return ExportBundle(
        items=items,
        tabular=build_tabular(package, items, generated_at),
        manifest=build_manifest(package, items, generated_at, first_page_rows, rows_per_page),
        generated_at=generated_at,
    )
