"""
Writers that serialize export projections to files.

- Spreadsheet: pandas DataFrame written with openpyxl, one sheet "COMPRAS".
- Manifest: reportlab PDF, one explicit page per manifest page.

Writers only serialize; they never reorder or re-aggregate rows. On failure
the partially written file is removed and ExportSerializationError is raised.
"""
from pathlib import Path
from typing import Optional, Union
from xml.sax.saxutils import escape

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Image as PdfImage,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from exceptions import ExportSerializationError
from export_formatter import Manifest, TabularExport
from logger import get_logger
from package_models import MANUAL_NOTE

logger = get_logger(__name__)

MANUAL_ROW_FILL = PatternFill(start_color="FFF3CD", end_color="FFF3CD", fill_type="solid")
HEADER_COLOR = "#334455"
MAX_COLUMN_WIDTH = 60


def _discard_partial(path: Path):
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove partial export {path}: {e}")


def write_spreadsheet(table: TabularExport, path: Union[str, Path]) -> Path:
    """
    Write the tabular projection to an .xlsx file.

    Manual rows are highlighted; the header row is bold and columns are
    sized to their content.

    Args:
        table: Tabular projection
        path: Destination file

    Returns:
        Path of the written file

    Raises:
        ExportSerializationError: If the file cannot be written
    """
    path = Path(path)
    logger.info(f"Writing spreadsheet: {path}")

    df = pd.DataFrame(table.rows, columns=table.header)
    notes_col_idx = table.header.index('OBSERVACIONES') + 1

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(path, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name=table.sheet_name)
            worksheet = writer.sheets[table.sheet_name]

            for cell in worksheet[1]:
                cell.font = Font(bold=True)

            for row in worksheet.iter_rows(min_row=2, max_row=worksheet.max_row):
                if row[notes_col_idx - 1].value == MANUAL_NOTE:
                    for cell in row:
                        cell.fill = MANUAL_ROW_FILL

            for col_idx, column in enumerate(table.header, start=1):
                values = [str(column)] + [str(row[col_idx - 1]) for row in table.rows]
                width = min(max(len(v) for v in values) + 2, MAX_COLUMN_WIDTH)
                worksheet.column_dimensions[get_column_letter(col_idx)].width = width
    except Exception as e:
        logger.error(f"Failed to write spreadsheet {path}: {e}", exc_info=True)
        _discard_partial(path)
        raise ExportSerializationError(path, str(e))

    logger.info(f"Spreadsheet saved: {path} ({len(table.rows)} rows)")
    return path


def _manifest_styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            "ManifestTitle",
            parent=styles["Title"],
            fontSize=16,
            leading=20,
            textColor=colors.HexColor(HEADER_COLOR),
        ),
        'body': ParagraphStyle(
            "ManifestBody",
            parent=styles["Normal"],
            fontSize=10,
            leading=14,
        ),
        'cell': ParagraphStyle(
            "ManifestCell",
            parent=styles["Normal"],
            fontSize=9,
            leading=11,
        ),
        'footer': ParagraphStyle(
            "ManifestFooter",
            parent=styles["Normal"],
            fontSize=8,
            leading=10,
            alignment=1,
            textColor=colors.grey,
        ),
    }


TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(HEADER_COLOR)),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("ALIGN", (0, 0), (-1, -1), "LEFT"),
    ("ALIGN", (2, 1), (2, -1), "RIGHT"),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ("LINEBELOW", (0, 1), (-1, -1), 0.5, colors.HexColor("#DDDDDD")),
    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F9F9F9")]),
    ("TOPPADDING", (0, 0), (-1, -1), 4),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ("LEFTPADDING", (0, 0), (-1, -1), 6),
    ("RIGHTPADDING", (0, 0), (-1, -1), 6),
])
COLUMN_WIDTHS = [40 * mm, 80 * mm, 22 * mm, 38 * mm]


def _header_flowables(manifest: Manifest, styles, label_image: Optional[Path]):
    header = manifest.header
    info = [
        Paragraph(f"<b>{escape(label)}:</b> {escape(value)}", styles['body'])
        for label, value in header.fields()
    ]

    if label_image is None:
        return info

    # Label printed at its physical size, to the right of the info block
    image = PdfImage(str(label_image), width=65 * mm, height=35 * mm)
    block = Table([[info, image]], colWidths=[115 * mm, 65 * mm])
    block.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))
    return [block]


def write_manifest_pdf(manifest: Manifest, path: Union[str, Path],
                       label_image: Optional[Union[str, Path]] = None) -> Path:
    """
    Render the manifest to a PDF.

    Page 1 carries the title and header block; every page carries the column
    header followed by that page's rows, and a "Página n de m" line.

    Args:
        manifest: Paginated manifest projection
        path: Destination file
        label_image: Optional PNG of the package label to place in the header

    Returns:
        Path of the written file

    Raises:
        ExportSerializationError: If the document cannot be built
    """
    path = Path(path)
    label_image = Path(label_image) if label_image else None
    logger.info(f"Writing manifest: {path} ({manifest.page_count} pages)")

    try:
        elements = _manifest_flowables(manifest, label_image)
        path.parent.mkdir(parents=True, exist_ok=True)
        doc = SimpleDocTemplate(
            str(path),
            pagesize=A4,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
            title=f"Lista de Paquete {manifest.header.package_id}",
        )
        doc.build(elements)
    except Exception as e:
        logger.error(f"Failed to write manifest {path}: {e}", exc_info=True)
        _discard_partial(path)
        raise ExportSerializationError(path, str(e))

    logger.info(f"Manifest saved: {path}")
    return path


def _table_row(row, cell_style) -> list:
    code, name, quantity, notes = row
    return [
        str(code),
        Paragraph(escape(str(name)), cell_style),
        str(quantity),
        Paragraph(escape(str(notes)), cell_style),
    ]


def _manifest_flowables(manifest: Manifest, label_image: Optional[Path]) -> list:
    styles = _manifest_styles()
    elements: list = [
        Paragraph(escape(manifest.header.title), styles['title']),
        Spacer(1, 4 * mm),
    ]
    elements.extend(_header_flowables(manifest, styles, label_image))
    elements.append(Spacer(1, 6 * mm))

    for page in manifest.pages:
        if page.number > 1:
            elements.append(PageBreak())
        data = [page.columns] + [_table_row(row, styles['cell']) for row in page.rows]
        # repeatRows keeps the column header on pages reportlab adds for oversized chunks
        table = Table(data, colWidths=COLUMN_WIDTHS, repeatRows=1)
        table.setStyle(TABLE_STYLE)
        elements.append(table)
        elements.append(Spacer(1, 4 * mm))
        elements.append(Paragraph(f"Página {page.number} de {manifest.page_count}", styles['footer']))

    elements.append(Spacer(1, 6 * mm))
    elements.append(Paragraph(escape(manifest.footer), styles["footer"]))
    return elements
