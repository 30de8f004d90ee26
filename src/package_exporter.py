"""
Package exporter - writes the spreadsheet, manifest and label for a package.
"""
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from app_settings import AppSettings
from export_formatter import ExportBundle, build_exports
from export_writers import write_manifest_pdf, write_spreadsheet
from label_generator import generate_package_label
from logger import get_logger
from package_models import Package

logger = get_logger(__name__)


@dataclass
class ExportResult:
    """Files produced by ``PackageExporter.export_all``."""
    package_id: str
    spreadsheet_path: Path
    manifest_path: Path
    label_path: Optional[Path] = None


class PackageExporter:
    """
    Builds export projections and hands them to the file writers.

    Attributes:
        output_dir (Path): Directory receiving all generated files
        settings (AppSettings): Page capacities and label toggle
    """

    def __init__(self, output_dir: Union[str, Path], settings: Optional[AppSettings] = None):
        self.output_dir = Path(output_dir)
        self.settings = settings or AppSettings()

    def build(self, package: Package, generated_at: Optional[datetime] = None) -> ExportBundle:
        return build_exports(
            package,
            generated_at=generated_at,
            first_page_rows=self.settings.first_page_rows,
            rows_per_page=self.settings.rows_per_page,
        )

    def export_spreadsheet(self, package: Package, generated_at: Optional[datetime] = None) -> Path:
        bundle = self.build(package, generated_at)
        return write_spreadsheet(bundle.tabular, self.output_dir / bundle.tabular.filename)

    def export_manifest(self, package: Package, generated_at: Optional[datetime] = None,
                        label_path: Optional[Path] = None) -> Path:
        bundle = self.build(package, generated_at)
        return write_manifest_pdf(bundle.manifest, self.output_dir / bundle.manifest.filename, label_path)

    def export_all(self, package: Package, generated_at: Optional[datetime] = None) -> ExportResult:
        """
        Write every artifact for a package from a single projection.

        Returns:
            ExportResult with the written paths

        Raises:
            ExportSerializationError: If any writer fails. Files written
            before the failure are kept.
        """
        bundle = self.build(package, generated_at)
        logger.info(
            f"Exporting package {package.id}: {len(bundle.items)} lines, "
            f"{bundle.manifest.header.total_items} items"
        )

        label_path = None
        if self.settings.include_label:
            label_path = generate_package_label(package, self.output_dir)

        spreadsheet_path = write_spreadsheet(bundle.tabular, self.output_dir / bundle.tabular.filename)
        manifest_path = write_manifest_pdf(
            bundle.manifest, self.output_dir / bundle.manifest.filename, label_path
        )

        return ExportResult(
            package_id=package.id,
            spreadsheet_path=spreadsheet_path,
            manifest_path=manifest_path,
            label_path=label_path,
        )
