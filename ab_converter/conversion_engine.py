"""Runs batch conversion on a Qt worker thread."""

import logging

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from .batch_model import BatchReport
from .errors import SetupError
from .grid import ConversionDirection
from .pipeline import PluginConverter, build_context
from .settings import ConverterSettings
from .tes3conv import Tes3Conv

log = logging.getLogger(__name__)


class ConversionWorker(QObject):
    """Worker that converts files one after another in a background thread."""

    file_started = pyqtSignal(int, str)     # index, path
    file_done = pyqtSignal(object)          # FileResult
    setup_failed = pyqtSignal(str)          # error message
    finished = pyqtSignal()

    def __init__(self, paths: list, direction: ConversionDirection,
                 settings: ConverterSettings):
        super().__init__()
        self.paths = paths
        self.direction = direction
        self.settings = settings
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def run(self):
        """Open shared resources, then convert every file in order."""
        # The SQLite connection must live on this thread
        try:
            tes3conv = Tes3Conv(self.settings.tes3conv_path)
            tes3conv.check_available()
            context = build_context(self.settings.database_path,
                                    self.settings.custom_coordinates_path,
                                    self.direction)
        except SetupError as e:
            log.error("ERROR - %s", e)
            self.setup_failed.emit(str(e))
            self.finished.emit()
            return

        converter = PluginConverter(context, tes3conv,
                                    make_backups=self.settings.make_backups)
        try:
            for index, path in enumerate(self.paths):
                if self._cancelled:
                    log.warning("Conversion stopped by user")
                    break
                self.file_started.emit(index, path)
                self.file_done.emit(converter.convert_file(path))
        finally:
            context.reference.close()
            self.finished.emit()


class ConversionEngine(QObject):
    """Owns the worker thread and aggregates results into a BatchReport."""

    progress = pyqtSignal(int, int, str)    # done, total, path
    file_started = pyqtSignal(str)          # path
    file_done = pyqtSignal(object)          # FileResult
    setup_failed = pyqtSignal(str)
    finished = pyqtSignal(object)           # BatchReport

    def __init__(self, parent=None):
        super().__init__(parent)
        self._thread = None
        self._worker = None
        self._report = None
        self._total = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.isRunning()

    @property
    def report(self):
        return self._report

    def convert_batch(self, paths: list, direction: ConversionDirection,
                      settings: ConverterSettings):
        """Start converting *paths* in the background."""
        if self.is_running:
            return
        self._report = BatchReport(direction=direction.tag)
        self._total = len(paths)
        if not paths:
            self.finished.emit(self._report)
            return

        log.info("Conversion type: %s", direction.label)
        thread = QThread()
        worker = ConversionWorker(list(paths), direction, settings)
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.file_started.connect(self._on_file_started)
        worker.file_done.connect(self._on_file_done)
        worker.setup_failed.connect(self.setup_failed.emit)
        worker.finished.connect(self._on_worker_finished)

        self._thread = thread
        self._worker = worker
        thread.start()

    def cancel(self):
        """Stop after the file currently being converted."""
        if self._worker is not None:
            self._worker.cancel()

    def _on_file_started(self, index: int, path: str):
        self.file_started.emit(path)
        self.progress.emit(index, self._total, path)

    def _on_file_done(self, result):
        self._report.add(result)
        self.progress.emit(self._report.total, self._total, result.path)
        self.file_done.emit(result)

    def _on_worker_finished(self):
        if self._thread is not None:
            self._thread.quit()
            self._thread.wait()
        self._thread = None
        self._worker = None
        log.info("Batch finished: %s", self._report.summary())
        self.finished.emit(self._report)
