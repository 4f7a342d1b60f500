"""TES3 Anthology Bloodmoon Converter.

Launch the GUI with: python main.py
Convert without the GUI:

    python main.py -1 "Data Files/mod.esp"
    python main.py -2 -b "mod1.esp;mod2.esm"
    python main.py -1 -b -s "C:/Morrowind/Data Files/"
"""

import argparse
import logging
import sys
import time

from PyQt6.QtWidgets import QApplication

from ab_converter import PROGRAM_NAME, __version__
from ab_converter.errors import SetupError
from ab_converter.grid import ConversionDirection
from ab_converter.pipeline import (
    PluginConverter, build_context, collect_input_files, expands_to_batch,
)
from ab_converter.settings import ConverterSettings
from ab_converter.tes3conv import Tes3Conv
from ab_converter.widgets.main_window import MainWindow

log = logging.getLogger("ab_converter")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def parse_args(argv):
    parser = argparse.ArgumentParser(
        prog="tes3_ab_converter",
        description=f"{PROGRAM_NAME} v{__version__}: move exterior positions in "
                    "plugins between the Bloodmoon and Anthology Bloodmoon layouts.",
        epilog="Targets: a single file, several files joined by ';', or a "
               "directory (searched recursively, batch mode only).",
    )
    direction = parser.add_mutually_exclusive_group()
    direction.add_argument(
        "-1", "--bm-to-ab", dest="direction", action="store_const",
        const=ConversionDirection.BM_TO_AB,
        help="Convert Bloodmoon -> Anthology Bloodmoon",
    )
    direction.add_argument(
        "-2", "--ab-to-bm", dest="direction", action="store_const",
        const=ConversionDirection.AB_TO_BM,
        help="Convert Anthology Bloodmoon -> Bloodmoon",
    )
    parser.add_argument(
        "-b", "--batch", action="store_true",
        help="Enable batch mode (required when processing multiple files)",
    )
    parser.add_argument(
        "-s", "--silent", action="store_true",
        help="Suppress non-critical messages (faster conversion)",
    )
    parser.add_argument(
        "--no-backup", action="store_true",
        help="Do not create <name>.bak backups before overwriting",
    )
    parser.add_argument(
        "--report", metavar="PATH",
        help="Write a JSON report of the batch to PATH",
    )
    parser.add_argument(
        "--gui", action="store_true",
        help="Open the GUI even when a direction and targets are given",
    )
    parser.add_argument(
        "targets", nargs="*",
        help="Plugin files, ';'-separated lists, or directories",
    )
    return parser.parse_args(argv)


def setup_logging(log_file: str, silent: bool):
    """Log to the console and to a log file truncated on each run."""
    root = logging.getLogger()
    root.setLevel(logging.WARNING if silent else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console)

    try:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    except OSError as e:
        log.warning("Could not open log file %s: %s", log_file, e)
        return
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(file_handler)


def run_headless(args, settings: ConverterSettings) -> int:
    """Convert the given targets without the GUI and return an exit code."""
    if not args.batch and expands_to_batch(args.targets):
        log.error("ERROR - batch mode (-b) is required for multiple files or directories")
        return EXIT_USAGE

    files = collect_input_files(args.targets)
    if not files:
        log.error("ERROR - no .ESP|ESM input files found")
        return EXIT_USAGE

    log.info("Conversion type set from arguments: %s", args.direction.label)
    tes3conv = Tes3Conv(settings.tes3conv_path)
    try:
        tes3conv.check_available()
        context = build_context(settings.database_path,
                                settings.custom_coordinates_path, args.direction)
    except SetupError as e:
        log.error("ERROR - %s", e)
        return EXIT_USAGE
    log.info("Initialisation complete...")

    start = time.perf_counter()
    converter = PluginConverter(context, tes3conv,
                                make_backups=settings.make_backups and not args.no_backup)
    try:
        report = converter.convert_files(files)
    finally:
        context.reference.close()
    log.info("Total processing time: %.3f seconds", time.perf_counter() - start)

    if args.report:
        try:
            report.save_report(args.report)
            log.info("Report saved to: %s", args.report)
        except OSError as e:
            log.error("ERROR - failed to save report %s: %s", args.report, e)

    return EXIT_FAILED if report.failed_count else EXIT_OK


def launch_gui(settings: ConverterSettings, targets, direction) -> int:
    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName(PROGRAM_NAME)
    app.setStyle("Fusion")

    window = MainWindow(settings, targets=targets, direction=direction)
    window.show()
    return app.exec()


def main(argv=None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = ConverterSettings.load()
    silent = args.silent or settings.silent
    setup_logging(settings.log_file, silent)
    log.info("%s v%s", PROGRAM_NAME, __version__)

    if args.direction is not None and args.targets and not args.gui:
        return run_headless(args, settings)
    return launch_gui(settings, args.targets, args.direction)


if __name__ == "__main__":
    sys.exit(main())
