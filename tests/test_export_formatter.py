"""
Tests for export projections: tabular rows, manifest pages and their agreement.
"""

from datetime import datetime

import pytest

from conftest import make_package
from exceptions import ValidationError
from export_formatter import (
    MANIFEST_COLUMNS,
    MANIFEST_TITLE,
    SHEET_NAME,
    TABULAR_HEADER,
    build_exports,
    manifest_filename,
    paginate,
    tabular_filename,
)
from package_models import LabelMeta

GENERATED_AT = datetime(2026, 10, 19, 14, 30, 5)


@pytest.fixture
def mixed_package():
    """Raw events [{A,2},{B,1,manual},{A,1}]."""
    return make_package([("A", 2), ("B", 1, True), ("A", 1)], package_id="PKG-42")


def test_tabular_and_manifest_agree(mixed_package):
    bundle = build_exports(mixed_package, GENERATED_AT)

    assert bundle.tabular.rows == [
        ["PKG-42", "A", "Product A", 3, ""],
        ["PKG-42", "B", "Product B", 1, "Ingreso Manual"],
    ]
    assert bundle.manifest.rows == [
        ["A", "Product A", 3, ""],
        ["B", "Product B", 1, "Ingreso Manual"],
    ]
    assert bundle.tabular.total_quantity == 4
    assert bundle.manifest.header.total_items == 4


def test_tabular_header_and_names(mixed_package):
    tabular = build_exports(mixed_package, GENERATED_AT).tabular

    assert tabular.header == TABULAR_HEADER
    assert tabular.sheet_name == SHEET_NAME == "COMPRAS"
    assert tabular.filename == "COMPRAS_PKG-42_2026-10-19.xlsx"


def test_filenames():
    assert tabular_filename("PKG-1", GENERATED_AT) == "COMPRAS_PKG-1_2026-10-19.xlsx"
    assert manifest_filename("PKG-1") == "lista_paquete_PKG-1.pdf"


def test_manifest_header_minimal(mixed_package):
    header = build_exports(mixed_package, GENERATED_AT).manifest.header

    assert header.title == MANIFEST_TITLE
    assert header.fields() == [
        ("ID del Paquete", "PKG-42"),
        ("Fecha", "19/10/2026 14:30"),
        ("Total de items", "4"),
    ]


def test_manifest_header_optional_fields():
    package = make_package(
        [("A", 1)],
        label=LabelMeta(responsible="Ana", laboratory="Bagó", is_psychotropic=True),
    )
    labels = [label for label, _ in build_exports(package, GENERATED_AT).manifest.header.fields()]
    assert labels[-3:] == ["Responsable", "Laboratorio", "Tipo"]


def test_manifest_header_skips_false_psychotropic():
    package = make_package([("A", 1)], label=LabelMeta(laboratory="Bagó"))
    labels = [label for label, _ in build_exports(package, GENERATED_AT).manifest.header.fields()]
    assert "Laboratorio" in labels
    assert "Tipo" not in labels
    assert "Responsable" not in labels


def test_manifest_footer_and_filename(mixed_package):
    manifest = build_exports(mixed_package, GENERATED_AT).manifest
    assert manifest.footer == "Documento generado el 19/10/2026 14:30:05"
    assert manifest.filename == "lista_paquete_PKG-42.pdf"


def test_manifest_pagination_repeats_columns():
    package = make_package([(f"C{n:03d}", 1) for n in range(55)])
    manifest = build_exports(package, GENERATED_AT, first_page_rows=10, rows_per_page=20).manifest

    assert [len(page.rows) for page in manifest.pages] == [10, 20, 20, 5]
    assert [page.number for page in manifest.pages] == [1, 2, 3, 4]
    assert all(page.columns == MANIFEST_COLUMNS for page in manifest.pages)
    assert [row[0] for row in manifest.rows] == [f"C{n:03d}" for n in range(55)]


def test_manifest_single_page_when_fits(mixed_package):
    manifest = build_exports(mixed_package, GENERATED_AT).manifest
    assert manifest.page_count == 1


def test_empty_package_exports():
    bundle = build_exports(make_package([]), GENERATED_AT)

    assert bundle.tabular.rows == []
    assert bundle.manifest.page_count == 1
    assert bundle.manifest.pages[0].rows == []
    assert bundle.manifest.header.total_items == 0


def test_paginate_rejects_zero_capacity():
    with pytest.raises(ValidationError):
        paginate([[1]], 0, 10)


def test_paginate_exact_boundary():
    rows = [[n] for n in range(30)]
    assert [len(chunk) for chunk in paginate(rows, 10, 20)] == [10, 20]


def test_bundle_items_are_normalized(mixed_package):
    bundle = build_exports(mixed_package, GENERATED_AT)
    assert [(i.barcode, i.quantity) for i in bundle.items] == [("A", 3), ("B", 1)]
    assert bundle.generated_at == GENERATED_AT
