"""Log panel showing converter log records inside the main window."""

import logging

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPlainTextEdit, QPushButton,
    QCheckBox, QLabel,
)
from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtGui import QTextCursor

_LEVEL_COLORS = {
    logging.WARNING: "#fab387",   # peach
    logging.ERROR: "#f38ba8",     # red
    logging.CRITICAL: "#f38ba8",
}

MAX_BLOCKS = 20000


class _LogSignal(QObject):
    message = pyqtSignal(int, str)   # levelno, formatted text


class QtLogHandler(logging.Handler):
    """Logging handler that forwards records to the GUI thread via a signal.

    Records emitted on the worker thread arrive through a queued connection.
    """

    def __init__(self, level=logging.NOTSET):
        super().__init__(level)
        self.bridge = _LogSignal()
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record):
        try:
            text = self.format(record)
        except (TypeError, ValueError):
            self.handleError(record)
            return
        self.bridge.message.emit(record.levelno, text)


class LogPanel(QWidget):
    """Read-only, auto-scrolling log view."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._warning_count = 0
        self._error_count = 0
        self._build_ui()

    def _build_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        header = QHBoxLayout()
        self._counts_label = QLabel("")
        header.addWidget(self._counts_label)
        header.addStretch()

        self._issues_only = QCheckBox("Warnings and errors only")
        header.addWidget(self._issues_only)

        clear_btn = QPushButton("Clear Log")
        clear_btn.clicked.connect(self.clear)
        header.addWidget(clear_btn)
        layout.addLayout(header)

        self._view = QPlainTextEdit()
        self._view.setReadOnly(True)
        self._view.setMaximumBlockCount(MAX_BLOCKS)
        self._view.setStyleSheet(
            "QPlainTextEdit { font-family: Consolas, 'DejaVu Sans Mono', monospace;"
            " font-size: 12px; }"
        )
        layout.addWidget(self._view)

    def attach(self, handler: QtLogHandler):
        handler.bridge.message.connect(self.append_record)

    def append_record(self, levelno: int, text: str):
        if levelno >= logging.ERROR:
            self._error_count += 1
        elif levelno >= logging.WARNING:
            self._warning_count += 1
        self._update_counts()

        if self._issues_only.isChecked() and levelno < logging.WARNING:
            return
        color = _LEVEL_COLORS.get(levelno)
        if color:
            escaped = (text.replace("&", "&amp;").replace("<", "&lt;")
                       .replace(">", "&gt;").replace("\n", "<br>"))
            self._view.appendHtml(f'<span style="color:{color};">{escaped}</span>')
        else:
            self._view.appendPlainText(text)
        self._view.moveCursor(QTextCursor.MoveOperation.End)

    def clear(self):
        self._view.clear()
        self._warning_count = 0
        self._error_count = 0
        self._counts_label.setText("")

    def _update_counts(self):
        self._counts_label.setText(
            f"Warnings: {self._warning_count}  Errors: {self._error_count}")
