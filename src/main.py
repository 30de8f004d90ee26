"""
Console session for assembling packages.

Reads scanner input from stdin (a keyboard-wedge scanner types the code and
presses Enter). Lines starting with ":" are commands:

    :new                       start a new package
    :+ <barcode>               increase quantity by one
    :- <barcode>               decrease quantity by one (never below 1)
    :rm <barcode>              remove an item
    :label key=value ...       responsible=, laboratory=, psychotropic=yes|no
    :list                      show the active package
    :export                    write spreadsheet, manifest and label
    :quit                      end the session
"""
import argparse
import shlex
import sys
from datetime import datetime
from typing import Optional, TextIO

from app_settings import load_settings
from catalog_index import CatalogIndex
from exceptions import PackageAssemblyError
from logger import get_logger, set_operator_context, set_session_context
from package_exporter import PackageExporter
from package_models import AdjustQuantity, ManualEntry, RemoveItem, Scanned
from package_store import PackageStore

logger = get_logger(__name__)

TRUE_WORDS = ('yes', 'si', 'sí', 'true', '1')


class ConsoleSession:
    """
    Line-oriented front end over PackageStore.

    Attributes:
        store (PackageStore): Packages of this session
        exporter (PackageExporter): Writes export files
        stdin / stdout: Streams used for interaction
    """

    def __init__(self, store: PackageStore, exporter: PackageExporter,
                 stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout):
        self.store = store
        self.exporter = exporter
        self.stdin = stdin
        self.stdout = stdout

    def say(self, text: str):
        print(text, file=self.stdout)

    def _ask(self, prompt: str) -> Optional[str]:
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def run(self) -> int:
        set_session_context(datetime.now().strftime("%Y%m%d_%H%M%S"))
        if self.store.active_package is None:
            self.store.create_package()
        self.say(f"Escaneando paquete: {self.store.active_package_id}")

        while True:
            line = self._ask("> ")
            if line is None:
                break
            line = line.strip()
            if not line:
                continue
            try:
                if line.startswith(":"):
                    if not self.handle_command(line[1:]):
                        break
                else:
                    self.handle_scan(line)
            except PackageAssemblyError as e:
                self.say(e.get_display_message())

        self.say("Sesión terminada.")
        return 0

    def handle_scan(self, code: str):
        _, outcome = self.store.dispatch_active(Scanned(code))
        self.say(outcome.message)

        while outcome.needs_manual_entry:
            name = self._ask(f"Nombre del producto para {outcome.barcode} (vacío para cancelar): ")
            if not name or not name.strip():
                self.say("Ingreso manual cancelado.")
                return
            try:
                _, manual_outcome = self.store.dispatch_active(ManualEntry(outcome.barcode, name))
            except PackageAssemblyError as e:
                self.say(e.get_display_message())
                continue
            self.say(manual_outcome.message)
            return

    def handle_command(self, command_line: str) -> bool:
        """Run a command; returns False when the session should end."""
        try:
            parts = shlex.split(command_line)
        except ValueError:
            # Unbalanced quote, e.g. an apostrophe in a laboratory name
            logger.debug(f"Command not shell-quoted, splitting on whitespace: {command_line!r}")
            parts = command_line.split()
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]

        if command in ('quit', 'q', 'exit'):
            return False
        if command == 'new':
            package = self.store.create_package()
            self.say(f"Nuevo paquete: {package.id}")
        elif command in ('+', '-') and args:
            delta = 1 if command == '+' else -1
            _, outcome = self.store.dispatch_active(AdjustQuantity(args[0], delta))
            self.say(outcome.message)
        elif command == 'rm' and args:
            _, outcome = self.store.dispatch_active(RemoveItem(args[0]))
            self.say(outcome.message)
        elif command == 'label':
            self._update_label(args)
        elif command == 'list':
            self._print_active()
        elif command == 'export':
            self._export_active()
        else:
            self.say(f"Comando desconocido: {command_line}")
        return True

    def _update_label(self, args):
        changes = {}
        for arg in args:
            key, _, value = arg.partition('=')
            key = key.strip().lower()
            if key == 'psychotropic':
                changes['is_psychotropic'] = value.strip().lower() in TRUE_WORDS
            else:
                changes[key] = value
        package = self.store.update_label(self.store.active_package_id, **changes)
        self.say(f"Rótulo actualizado: {package.label}")

    def _print_active(self):
        package = self.store.active_package
        if package is None:
            self.say("No hay paquete activo.")
            return
        self.say(f"Paquete {package.id} - {package.total_quantity} items total")
        for item in package.line_items:
            note = f"  [{item.notes}]" if item.notes else ""
            self.say(f"  {item.barcode:<16} {item.name:<40} {item.quantity:>5}{note}")

    def _export_active(self):
        package = self.store.active_package
        if package is None or not package.items:
            self.say("No hay productos para exportar.")
            return
        result = self.exporter.export_all(package)
        self.say(f"Excel: {result.spreadsheet_path}")
        self.say(f"PDF: {result.manifest_path}")
        if result.label_path:
            self.say(f"Rótulo: {result.label_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Assemble packages by scanning product barcodes"
    )
    parser.add_argument(
        '--config',
        default='config.ini',
        help="Path to config.ini (default: config.ini)"
    )
    parser.add_argument(
        '--catalog',
        help="Product catalog (.json or .xlsx); overrides [Catalog] Path"
    )
    parser.add_argument(
        '--output-dir',
        help="Directory for exported files; overrides [Export] OutputDir"
    )
    parser.add_argument(
        '--operator',
        help="Name of the person scanning, recorded in the logs"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    set_operator_context(args.operator)

    try:
        settings = load_settings(args.config)
    except PackageAssemblyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    catalog_path = args.catalog or settings.catalog_path
    if not catalog_path:
        print("Error: no catalog given (use --catalog or [Catalog] Path)", file=sys.stderr)
        return 2

    try:
        catalog = CatalogIndex.from_file(catalog_path)
    except PackageAssemblyError as e:
        logger.error(f"Catalog load failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_dir = args.output_dir or settings.output_dir
    session = ConsoleSession(PackageStore(catalog), PackageExporter(output_dir, settings))
    return session.run()


if __name__ == '__main__':
    sys.exit(main())
