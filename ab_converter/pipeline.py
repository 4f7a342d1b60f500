"""Per-file conversion pipeline and input discovery.

One file goes through::

    tes3conv -> <stem>.json -> tag/master checks -> scan -> tag
             -> TEMP_<stem>.json -> backup -> tes3conv -> original path

Temporary JSON files are removed whatever the outcome. Failures are local
to the file: they become an ``error`` result and the batch moves on.
"""

import json
import logging
import os
import shutil
import time

from .batch_model import (
    ALREADY_CONVERTED, CONVERTED, ERROR, NO_CHANGES, BatchReport, FileResult,
)
from .errors import ConversionError, HeaderError
from .grid import ConversionDirection
from .header import add_conversion_tag, check_dependency_order, find_conversion_tag
from .regions import ReferenceRegion, load_custom_coordinates
from .scanner import DocumentScanner, TranslationContext, log_updated_scripts
from .tes3conv import Tes3Conv

log = logging.getLogger(__name__)

PLUGIN_EXTENSIONS = (".esp", ".esm")
BACKUP_SUFFIX = ".bak"


def build_context(database_path: str, custom_coordinates_path: str,
                  direction: ConversionDirection) -> TranslationContext:
    """Open the reference database and load overrides for a batch run.

    Raises:
        SetupError: the database cannot be opened.
    """
    reference = ReferenceRegion(database_path)
    log.info("Database found...")
    overrides = load_custom_coordinates(custom_coordinates_path)
    log.info("Custom grid coordinates loaded successfully (%d)...", len(overrides))
    return TranslationContext(reference, overrides, direction)


# ── Input discovery ───────────────────────────────────────────────────

def split_targets(targets) -> list:
    """Expand ';'-joined target strings into individual paths."""
    if isinstance(targets, str):
        targets = [targets]
    paths = []
    for target in targets:
        for part in target.split(";"):
            part = part.strip().strip('"').strip("'").strip()
            if part:
                paths.append(part)
    return paths


def _is_plugin(path: str) -> bool:
    return path.lower().endswith(PLUGIN_EXTENSIONS)


def collect_input_files(targets) -> list:
    """Resolve files and directories into an ordered list of plugin paths.

    Directories are searched recursively. Unknown paths and non-plugin
    files are logged and skipped; duplicates keep their first position.
    """
    found = []
    seen = set()

    def add(path):
        key = os.path.normcase(os.path.abspath(path))
        if key not in seen:
            seen.add(key)
            found.append(path)

    for target in split_targets(targets):
        if os.path.isdir(target):
            matches = []
            for root, dirs, files in os.walk(target):
                dirs.sort()
                for name in files:
                    if _is_plugin(name):
                        matches.append(os.path.join(root, name))
            if not matches:
                log.warning("No .ESP|ESM files found in directory: %s", target)
            for path in sorted(matches):
                add(path)
        elif os.path.isfile(target):
            if _is_plugin(target):
                add(target)
            else:
                log.warning("Skipping non-plugin file: %s", target)
        else:
            log.warning("Input file not found: %s", target)
    return found


def expands_to_batch(targets) -> bool:
    """True when targets name a directory or more than one path."""
    paths = split_targets(targets)
    return len(paths) > 1 or any(os.path.isdir(p) for p in paths)


# ── Conversion ────────────────────────────────────────────────────────

class PluginConverter:
    """Converts plugin/master files one at a time."""

    def __init__(self, context: TranslationContext, tes3conv: Tes3Conv,
                 make_backups: bool = True):
        self.context = context
        self.tes3conv = tes3conv
        self.make_backups = make_backups

    @property
    def direction(self) -> ConversionDirection:
        return self.context.direction

    @staticmethod
    def json_paths(plugin_path: str) -> tuple[str, str]:
        """Return (decoded_json, temp_json) paths for a plugin."""
        folder = os.path.dirname(plugin_path)
        stem = os.path.splitext(os.path.basename(plugin_path))[0]
        return (os.path.join(folder, stem + ".json"),
                os.path.join(folder, f"TEMP_{stem}.json"))

    def convert_file(self, plugin_path: str) -> FileResult:
        """Run the full pipeline for one file and report the outcome."""
        start = time.perf_counter()
        log.info("Processing file: %s", plugin_path)
        json_path, temp_path = self.json_paths(plugin_path)
        try:
            status, message, scripts = self._convert(plugin_path, json_path, temp_path)
        except (ConversionError, OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            status, message, scripts = ERROR, str(e), []
            log.error("ERROR - failed to process file %s: %s", plugin_path, e)
        except Exception as e:
            # A malformed record must not end the batch
            status, message, scripts = ERROR, f"unexpected error: {e!r}", []
            log.exception("ERROR - unexpected failure processing file %s", plugin_path)
        finally:
            self._cleanup(json_path, temp_path)

        seconds = time.perf_counter() - start
        if status == CONVERTED:
            log.info("File converted in: %.3f seconds", seconds)
        return FileResult(plugin_path, status, message, scripts, seconds)

    def _convert(self, plugin_path: str, json_path: str, temp_path: str):
        self.tes3conv.to_json(plugin_path, json_path)
        document = self._load_document(json_path)

        tagged = find_conversion_tag(document)
        if tagged is not None:
            message = f"already converted ({tagged.tag})"
            log.warning("File %s was already converted (%s) - conversion skipped...",
                        plugin_path, tagged.tag)
            return ALREADY_CONVERTED, message, []

        try:
            check_dependency_order(document)
        except HeaderError as e:
            log.error("ERROR - required Parent Masters not found for file: %s (%s) "
                      "- conversion skipped...", plugin_path, e)
            return ERROR, f"required Parent Masters not found: {e}", []

        state = DocumentScanner(self.context).scan(document)
        if not state.any_changed:
            log.info("No replacements found for file: %s - conversion skipped...", plugin_path)
            return NO_CHANGES, "no replacements found", []

        log_updated_scripts(state)
        add_conversion_tag(document, self.direction)
        self._save_document(document, temp_path)
        if self.make_backups:
            self.create_backup(plugin_path)
        self.tes3conv.to_plugin(temp_path, plugin_path)
        return CONVERTED, f"converted {self.direction.tag}", list(state.updated_scripts)

    @staticmethod
    def _load_document(json_path: str) -> list:
        with open(json_path, "r", encoding="utf-8") as f:
            document = json.load(f)
        if not isinstance(document, list):
            raise HeaderError(f"parsed JSON is not a record list: {json_path}")
        return document

    @staticmethod
    def _save_document(document: list, temp_path: str):
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False, indent=2)
        log.info("Modified data saved as: %s", temp_path)

    @staticmethod
    def create_backup(plugin_path: str) -> str:
        """Copy the plugin to <name>.bak unless a backup already exists."""
        backup_path = plugin_path + BACKUP_SUFFIX
        if os.path.exists(backup_path):
            log.info("Backup already exists: %s", backup_path)
            return backup_path
        shutil.copy2(plugin_path, backup_path)
        log.info("Backup created: %s", backup_path)
        return backup_path

    @staticmethod
    def _cleanup(*paths):
        for path in paths:
            try:
                os.remove(path)
                log.info("Temporary .JSON file deleted: %s", path)
            except FileNotFoundError:
                continue
            except OSError as e:
                log.warning("Could not delete temporary file %s: %s", path, e)

    def convert_files(self, paths, report: BatchReport = None) -> BatchReport:
        """Convert *paths* sequentially into a batch report."""
        if report is None:
            report = BatchReport(direction=self.direction.tag)
        for path in paths:
            report.add(self.convert_file(path))
        log.info("Batch finished: %s", report.summary())
        return report
