"""
Package label ("rótulo") generation.

Renders a thermal-printer label for a package: a Code-128 barcode of the
package id on top, and below it the package id, the laboratory and a
PSICOFÁRMACO marker when the package is flagged as psychotropic.
"""
import io
from pathlib import Path
from typing import List, Union

import barcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont

from exceptions import ExportSerializationError
from logger import get_logger
from package_models import Package

logger = get_logger(__name__)

# 65mm x 35mm label at 203 DPI (standard entry-level thermal printers)
DPI = 203
LABEL_WIDTH_MM = 65
LABEL_HEIGHT_MM = 35
LABEL_WIDTH_PX = int((LABEL_WIDTH_MM / 25.4) * DPI)    # ~520 pixels
LABEL_HEIGHT_PX = int((LABEL_HEIGHT_MM / 25.4) * DPI)  # ~280 pixels

FONT_SIZE_PT = 22
LINE_SPACING_PX = 4
PSYCHOTROPIC_MARKER = "PSICOFÁRMACO"


def label_filename(package_id: str) -> str:
    return f"rotulo_{package_id}.png"


def _safe_barcode_content(package_id: str) -> str:
    # Code-128 handles full ASCII, but scanners choke on spaces and quotes
    content = "".join(c for c in package_id if c.isalnum() or c in '-_')
    return content or "PKG"


def _load_fonts():
    try:
        return ImageFont.truetype("arial.ttf", FONT_SIZE_PT), ImageFont.truetype("arialbd.ttf", FONT_SIZE_PT)
    except OSError:
        logger.warning("Arial fonts not found, falling back to default font")
        font = ImageFont.load_default()
        return font, font


def _text_lines(package: Package) -> List[tuple]:
    lines = [(package.id, False)]
    if package.label.laboratory:
        lines.append((package.label.laboratory, False))
    if package.label.is_psychotropic:
        lines.append((PSYCHOTROPIC_MARKER, True))
    return lines


def render_package_label(package: Package) -> Image.Image:
    """
    Render the label image for a package.

    Returns:
        RGB PIL image of LABEL_WIDTH_PX x LABEL_HEIGHT_PX
    """
    font, font_bold = _load_fonts()
    lines = _text_lines(package)

    label_img = Image.new('RGB', (LABEL_WIDTH_PX, LABEL_HEIGHT_PX), 'white')
    draw = ImageDraw.Draw(label_img)

    line_heights = []
    for text, bold in lines:
        bbox = draw.textbbox((0, 0), text, font=font_bold if bold else font)
        line_heights.append(bbox[3] - bbox[1])
    text_area_height = sum(line_heights) + LINE_SPACING_PX * (len(lines) + 1)
    barcode_height = max(LABEL_HEIGHT_PX - text_area_height, LABEL_HEIGHT_PX // 3)

    code128 = barcode.get_barcode_class('code128')
    barcode_obj = code128(_safe_barcode_content(package.id), writer=ImageWriter())
    buffer = io.BytesIO()
    barcode_obj.write(buffer, {
        'module_height': 15.0,
        'write_text': False,
        'quiet_zone': 2,
    })
    buffer.seek(0)
    barcode_img = Image.open(buffer)

    aspect_ratio = barcode_img.width / barcode_img.height
    new_w = min(int(barcode_height * aspect_ratio), LABEL_WIDTH_PX)
    barcode_img = barcode_img.resize((new_w, barcode_height), Image.LANCZOS)
    label_img.paste(barcode_img, ((LABEL_WIDTH_PX - new_w) // 2, 0))

    y = barcode_height + LINE_SPACING_PX
    for (text, bold), height in zip(lines, line_heights):
        line_font = font_bold if bold else font
        bbox = draw.textbbox((0, 0), text, font=line_font)
        x = (LABEL_WIDTH_PX - (bbox[2] - bbox[0])) / 2
        draw.text((x, y), text, font=line_font, fill='black')
        y += height + LINE_SPACING_PX

    return label_img


def generate_package_label(package: Package, output_dir: Union[str, Path]) -> Path:
    """
    Render the package label and save it as PNG.

    Args:
        package: Package to label
        output_dir: Directory for the PNG (created if missing)

    Returns:
        Path of the written PNG

    Raises:
        ExportSerializationError: If rendering or saving fails
    """
    output_dir = Path(output_dir)
    label_path = output_dir / label_filename(package.id)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        render_package_label(package).save(label_path, format='PNG')
    except Exception as e:
        logger.error(f"Error generating label for {package.id}: {e}", exc_info=True)
        label_path.unlink(missing_ok=True)
        raise ExportSerializationError(label_path, str(e))

    logger.info(f"Label saved: {label_path}")
    return label_path
