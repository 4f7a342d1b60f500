"""Results panel with a live view of per-file conversion outcomes."""

import os
import time
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QTableWidget, QTableWidgetItem,
    QHeaderView, QLabel, QAbstractItemView, QPushButton, QComboBox,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor

from ..batch_model import ALREADY_CONVERTED, CONVERTED, ERROR, NO_CHANGES


# Status icons and colors
_STATUS = {
    "queued":          ("⏳", QColor("#9399b2")),   # hourglass, overlay2
    "converting":      ("⚙", QColor("#89b4fa")),   # gear, blue
    CONVERTED:         ("✔", QColor("#a6e3a1")),   # check, green
    ALREADY_CONVERTED: ("⏭", QColor("#cba6f7")),   # skip, mauve
    NO_CHANGES:        ("–", QColor("#6c7086")),   # dash, dim gray
    ERROR:             ("✘", QColor("#f38ba8")),   # cross, red
}

_STATUS_TEXT = {
    "queued": "Queued",
    "converting": "Converting",
    CONVERTED: "Converted",
    ALREADY_CONVERTED: "Already converted",
    NO_CHANGES: "No changes",
    ERROR: "Error",
}


class ResultsPanel(QWidget):
    """Per-file table: queued, converting, and finished files."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._paths = []
        self._rows = {}           # path -> row index
        self._start_time = 0.0
        self._done_count = 0
        self._build_ui()

    def _build_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        header = QHBoxLayout()
        self._summary_label = QLabel("No batch running")
        self._summary_label.setStyleSheet("font-weight: bold;")
        header.addWidget(self._summary_label)
        header.addStretch()

        self._filter_combo = QComboBox()
        self._filter_combo.addItems(["All", "Converted", "Skipped", "Error"])
        self._filter_combo.currentTextChanged.connect(self._apply_filter)
        header.addWidget(QLabel("Show:"))
        header.addWidget(self._filter_combo)

        clear_btn = QPushButton("Clear")
        clear_btn.clicked.connect(self.clear)
        header.addWidget(clear_btn)

        layout.addLayout(header)

        self._table = QTableWidget()
        self._table.setColumnCount(6)
        self._table.setHorizontalHeaderLabels([
            "", "File", "Status", "Updated Scripts", "Time", "Message"
        ])
        self._table.horizontalHeader().setSectionResizeMode(
            0, QHeaderView.ResizeMode.Fixed)
        self._table.setColumnWidth(0, 30)
        self._table.setColumnWidth(1, 220)
        self._table.setColumnWidth(2, 120)
        self._table.horizontalHeader().setSectionResizeMode(
            3, QHeaderView.ResizeMode.Stretch)
        self._table.setColumnWidth(4, 70)
        self._table.horizontalHeader().setSectionResizeMode(
            5, QHeaderView.ResizeMode.Stretch)

        self._table.setSelectionBehavior(
            QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.setEditTriggers(
            QAbstractItemView.EditTrigger.NoEditTriggers)
        self._table.verticalHeader().setDefaultSectionSize(24)
        self._table.verticalHeader().setVisible(False)
        self._table.setAlternatingRowColors(True)
        self._table.setStyleSheet("""
            QTableWidget {
                background-color: #1e1e2e;
                alternate-background-color: #24243a;
                color: #cdd6f4;
                gridline-color: #313244;
                border: 1px solid #313244;
                font-size: 12px;
            }
            QTableWidget::item {
                padding: 2px 4px;
            }
            QTableWidget::item:selected {
                background-color: #45475a;
                color: #cdd6f4;
            }
            QHeaderView::section {
                background-color: #181825;
                color: #a6adc8;
                border: 1px solid #313244;
                padding: 3px 6px;
                font-weight: bold;
                font-size: 11px;
            }
        """)
        layout.addWidget(self._table)

    # ── Public API ──────────────────────────────────────────────────

    def load_queue(self, paths: list):
        """Populate the table with files about to be converted."""
        self.clear()
        self._paths = list(paths)
        self._start_time = time.time()

        dim = QColor("#7f849c")  # overlay1
        self._table.setRowCount(len(paths))
        for i, path in enumerate(paths):
            self._rows[path] = i

            icon, color = _STATUS["queued"]
            status_item = QTableWidgetItem(icon)
            status_item.setTextAlignment(Qt.AlignmentFlag.AlignCenter)
            status_item.setData(Qt.ItemDataRole.UserRole, "queued")
            status_item.setForeground(color)
            self._table.setItem(i, 0, status_item)

            file_item = QTableWidgetItem(os.path.basename(path))
            file_item.setToolTip(path)
            self._table.setItem(i, 1, file_item)

            text_item = QTableWidgetItem(_STATUS_TEXT["queued"])
            text_item.setForeground(dim)
            self._table.setItem(i, 2, text_item)

            for col in (3, 4, 5):
                self._table.setItem(i, col, QTableWidgetItem(""))

        self._update_summary()

    def mark_file_started(self, path: str):
        row = self._rows.get(path)
        if row is None:
            return
        self._set_status(row, "converting")
        self._table.scrollToItem(
            self._table.item(row, 0),
            QAbstractItemView.ScrollHint.PositionAtCenter,
        )

    def mark_file_done(self, result):
        """Show a FileResult in its row."""
        row = self._rows.get(result.path)
        if row is None:
            return

        self._done_count += 1
        self._set_status(row, result.status)
        scripts = ", ".join(result.updated_scripts)
        scripts_item = self._table.item(row, 3)
        if scripts_item:
            scripts_item.setText(scripts)
            scripts_item.setToolTip("\n".join(result.updated_scripts))
        time_item = self._table.item(row, 4)
        if time_item:
            time_item.setText(f"{result.seconds:.2f}s")
        message_item = self._table.item(row, 5)
        if message_item:
            message_item.setText(result.message[:160].replace("\n", " "))
            message_item.setToolTip(result.message)
            if result.status == ERROR:
                message_item.setForeground(_STATUS[ERROR][1])

        self._update_summary()
        self._apply_filter(self._filter_combo.currentText())

    def mark_batch_finished(self, report):
        """Called when the entire batch completes."""
        elapsed = time.time() - self._start_time if self._start_time else 0
        self._summary_label.setText(
            f"Batch complete: {report.converted_count} converted, "
            f"{report.skipped_count} skipped, {report.failed_count} failed "
            f"in {self._format_time(elapsed)}"
        )

    def clear(self):
        """Clear the results display."""
        self._table.setRowCount(0)
        self._paths = []
        self._rows = {}
        self._done_count = 0
        self._start_time = 0
        self._summary_label.setText("No batch running")

    # ── Internal ────────────────────────────────────────────────────

    def _set_status(self, row: int, status: str):
        icon, color = _STATUS.get(status, _STATUS["queued"])
        status_item = self._table.item(row, 0)
        if status_item:
            status_item.setText(icon)
            status_item.setForeground(color)
            status_item.setData(Qt.ItemDataRole.UserRole, status)
        text_item = self._table.item(row, 2)
        if text_item:
            text_item.setText(_STATUS_TEXT.get(status, status))
            text_item.setForeground(color)

    def _update_summary(self):
        total = len(self._paths)
        if total == 0:
            return
        elapsed = time.time() - self._start_time if self._start_time else 0
        self._summary_label.setText(
            f"Converting: {self._done_count}/{total} "
            f"({total - self._done_count} remaining) "
            f"| Elapsed: {self._format_time(elapsed)}"
        )

    def _apply_filter(self, filter_text: str):
        """Show/hide rows based on filter selection."""
        for row in range(self._table.rowCount()):
            status_item = self._table.item(row, 0)
            if not status_item:
                continue
            status = status_item.data(Qt.ItemDataRole.UserRole)

            visible = True
            if filter_text == "Converted":
                visible = status == CONVERTED
            elif filter_text == "Skipped":
                visible = status in (ALREADY_CONVERTED, NO_CHANGES)
            elif filter_text == "Error":
                visible = status == ERROR

            self._table.setRowHidden(row, not visible)

    @staticmethod
    def _format_time(seconds: float) -> str:
        """Format seconds into human-readable time."""
        if seconds < 60:
            return f"{seconds:.0f}s"
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        if minutes < 60:
            return f"{minutes}m {secs}s"
        hours = minutes // 60
        mins = minutes % 60
        return f"{hours}h {mins}m"
