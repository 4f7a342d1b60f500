"""Main application window tying together all widgets."""

import logging
import os

from PyQt6.QtWidgets import (
    QMainWindow, QStatusBar, QProgressBar, QFileDialog, QMessageBox, QLabel,
    QWidget, QVBoxLayout, QHBoxLayout, QApplication, QTabWidget, QGroupBox,
    QRadioButton, QButtonGroup, QListWidget, QAbstractItemView, QPushButton,
    QSplitter,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction

from .. import PROGRAM_NAME, __version__
from ..batch_model import ERROR
from ..conversion_engine import ConversionEngine
from ..grid import ConversionDirection
from ..pipeline import collect_input_files, split_targets
from ..settings import ConverterSettings
from .log_panel import LogPanel, QtLogHandler
from .results_panel import ResultsPanel
from .settings_dialog import SettingsDialog

log = logging.getLogger(__name__)

DARK_STYLESHEET = """
QMainWindow, QDialog, QWidget {
    background-color: #1e1e2e;
    color: #cdd6f4;
}
QMenuBar {
    background-color: #181825;
    color: #cdd6f4;
    border-bottom: 1px solid #313244;
}
QMenuBar::item:selected {
    background-color: #313244;
}
QMenu {
    background-color: #1e1e2e;
    color: #cdd6f4;
    border: 1px solid #313244;
}
QMenu::item:selected {
    background-color: #45475a;
}
QListWidget, QTableWidget, QPlainTextEdit, QLineEdit, QComboBox {
    background-color: #181825;
    color: #cdd6f4;
    border: 1px solid #313244;
    selection-background-color: #45475a;
}
QHeaderView::section {
    background-color: #1e1e2e;
    color: #cdd6f4;
    border: 1px solid #313244;
    padding: 4px;
}
QPushButton {
    background-color: #313244;
    color: #cdd6f4;
    border: 1px solid #45475a;
    padding: 5px 15px;
    border-radius: 3px;
}
QPushButton:hover {
    background-color: #45475a;
}
QPushButton:pressed {
    background-color: #585b70;
}
QPushButton:disabled {
    color: #6c7086;
}
QProgressBar {
    border: 1px solid #313244;
    background-color: #181825;
    text-align: center;
    color: #cdd6f4;
}
QProgressBar::chunk {
    background-color: #89b4fa;
}
QStatusBar {
    background-color: #181825;
    color: #a6adc8;
}
QGroupBox {
    border: 1px solid #313244;
    border-radius: 4px;
    margin-top: 8px;
    padding-top: 16px;
    color: #cdd6f4;
}
QGroupBox::title {
    subcontrol-origin: margin;
    left: 10px;
}
QTabWidget::pane {
    border: 1px solid #313244;
}
QTabBar::tab {
    background-color: #181825;
    color: #a6adc8;
    padding: 6px 16px;
    border: 1px solid #313244;
}
QTabBar::tab:selected {
    background-color: #1e1e2e;
    color: #cdd6f4;
}
QSplitter::handle {
    background-color: #313244;
}
QMessageBox QLabel {
    color: #cdd6f4;
    min-width: 320px;
}
QRadioButton, QCheckBox {
    color: #cdd6f4;
    spacing: 6px;
}
QCheckBox::indicator {
    width: 16px;
    height: 16px;
    border: 1px solid #45475a;
    border-radius: 3px;
    background-color: #181825;
}
QCheckBox::indicator:checked {
    background-color: #89b4fa;
    border-color: #89b4fa;
}
"""


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self, settings: ConverterSettings = None, targets=None,
                 direction: ConversionDirection = None):
        super().__init__()
        self.setWindowTitle(f"{PROGRAM_NAME} v{__version__}")
        self.setMinimumSize(1000, 650)

        self.settings = settings or ConverterSettings.load()
        self.engine = ConversionEngine(self)
        self._log_handler = QtLogHandler()

        self._build_ui()
        self._build_menubar()
        self._build_statusbar()
        self._connect_signals()
        self._apply_dark_mode()

        if direction is None:
            direction = ConversionDirection(self.settings.direction)
        self._set_direction(direction)
        if targets:
            self._add_paths(split_targets(targets))

    # ── UI Setup ───────────────────────────────────────────────────

    def _build_ui(self):
        """Inputs on top, Results | Log tabs below."""
        splitter = QSplitter(Qt.Orientation.Vertical)

        top = QWidget()
        top_layout = QVBoxLayout(top)
        top_layout.setContentsMargins(6, 6, 6, 6)

        # Direction
        direction_group = QGroupBox("Conversion Type")
        direction_row = QHBoxLayout(direction_group)
        self.bm_to_ab_radio = QRadioButton(ConversionDirection.BM_TO_AB.label)
        self.ab_to_bm_radio = QRadioButton(ConversionDirection.AB_TO_BM.label)
        self._direction_group = QButtonGroup(self)
        self._direction_group.addButton(self.bm_to_ab_radio,
                                        ConversionDirection.BM_TO_AB.value)
        self._direction_group.addButton(self.ab_to_bm_radio,
                                        ConversionDirection.AB_TO_BM.value)
        direction_row.addWidget(self.bm_to_ab_radio)
        direction_row.addWidget(self.ab_to_bm_radio)
        direction_row.addStretch()
        top_layout.addWidget(direction_group)

        # Inputs
        input_group = QGroupBox("Input Files (.ESP | .ESM)")
        input_layout = QHBoxLayout(input_group)
        self.input_list = QListWidget()
        self.input_list.setSelectionMode(
            QAbstractItemView.SelectionMode.ExtendedSelection)
        self.input_list.setAcceptDrops(False)
        input_layout.addWidget(self.input_list, 1)

        buttons = QVBoxLayout()
        self.add_files_btn = QPushButton("Add Files...")
        self.add_folder_btn = QPushButton("Add Folder...")
        self.remove_btn = QPushButton("Remove")
        self.clear_btn = QPushButton("Clear")
        for btn in (self.add_files_btn, self.add_folder_btn,
                    self.remove_btn, self.clear_btn):
            buttons.addWidget(btn)
        buttons.addStretch()
        input_layout.addLayout(buttons)
        top_layout.addWidget(input_group)

        # Run controls
        run_row = QHBoxLayout()
        run_row.addStretch()
        self.convert_btn = QPushButton("Convert")
        self.convert_btn.setMinimumWidth(120)
        self.stop_btn = QPushButton("Stop")
        self.stop_btn.setEnabled(False)
        run_row.addWidget(self.convert_btn)
        run_row.addWidget(self.stop_btn)
        top_layout.addLayout(run_row)

        splitter.addWidget(top)

        self.tabs = QTabWidget()
        self.results_panel = ResultsPanel()
        self.tabs.addTab(self.results_panel, "Results")
        self.log_panel = LogPanel()
        self.tabs.addTab(self.log_panel, "Log")
        splitter.addWidget(self.tabs)
        splitter.setSizes([300, 400])

        self.setCentralWidget(splitter)

    def _build_menubar(self):
        menubar = self.menuBar()

        file_menu = menubar.addMenu("File")
        add_files_action = QAction("Add Files...", self)
        add_files_action.setShortcut("Ctrl+O")
        add_files_action.triggered.connect(self._add_files)
        file_menu.addAction(add_files_action)

        add_folder_action = QAction("Add Folder...", self)
        add_folder_action.triggered.connect(self._add_folder)
        file_menu.addAction(add_folder_action)

        self.recent_menu = file_menu.addMenu("Recent")
        self._rebuild_recent_menu()

        file_menu.addSeparator()
        self.save_report_action = QAction("Save Report...", self)
        self.save_report_action.setEnabled(False)
        self.save_report_action.triggered.connect(self._save_report)
        file_menu.addAction(self.save_report_action)

        file_menu.addSeparator()
        exit_action = QAction("Exit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        tools_menu = menubar.addMenu("Tools")
        self.settings_action = QAction("Settings...", self)
        self.settings_action.triggered.connect(self._open_settings)
        tools_menu.addAction(self.settings_action)

        help_menu = menubar.addMenu("Help")
        about_action = QAction("About", self)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

    def _build_statusbar(self):
        """Build the bottom status bar with progress."""
        self.statusbar = QStatusBar()
        self.setStatusBar(self.statusbar)

        self.progress_bar = QProgressBar()
        self.progress_bar.setFixedWidth(300)
        self.progress_bar.setVisible(False)
        self.statusbar.addPermanentWidget(self.progress_bar)

        self.progress_label = QLabel("")
        self.statusbar.addWidget(self.progress_label)

    def _connect_signals(self):
        """Wire up signals between components."""
        self.add_files_btn.clicked.connect(self._add_files)
        self.add_folder_btn.clicked.connect(self._add_folder)
        self.remove_btn.clicked.connect(self._remove_selected)
        self.clear_btn.clicked.connect(self.input_list.clear)
        self.convert_btn.clicked.connect(self._start_conversion)
        self.stop_btn.clicked.connect(self._stop_conversion)
        self._direction_group.idClicked.connect(self._on_direction_changed)

        self.engine.progress.connect(self._on_progress)
        self.engine.file_started.connect(self._on_file_started)
        self.engine.file_done.connect(self._on_file_done)
        self.engine.setup_failed.connect(self._on_setup_failed)
        self.engine.finished.connect(self._on_finished)

        self.log_panel.attach(self._log_handler)
        logging.getLogger().addHandler(self._log_handler)

    # ── Inputs ──────────────────────────────────────────────────────

    def _input_paths(self) -> list:
        return [self.input_list.item(i).text() for i in range(self.input_list.count())]

    def _add_paths(self, paths):
        existing = set(self._input_paths())
        for path in paths:
            if path and path not in existing:
                self.input_list.addItem(path)
                existing.add(path)

    def _add_files(self):
        paths, _ = QFileDialog.getOpenFileNames(
            self, "Select Plugin Files", self._last_folder(),
            "Plugins (*.esp *.esm *.ESP *.ESM);;All files (*)")
        self._add_paths(paths)

    def _add_folder(self):
        folder = QFileDialog.getExistingDirectory(
            self, "Select Folder With Plugins", self._last_folder())
        if folder:
            self._add_paths([folder])

    def _remove_selected(self):
        for item in self.input_list.selectedItems():
            self.input_list.takeItem(self.input_list.row(item))

    def _last_folder(self) -> str:
        for target in self.settings.recent_targets:
            folder = target if os.path.isdir(target) else os.path.dirname(target)
            if os.path.isdir(folder):
                return folder
        return os.getcwd()

    def _rebuild_recent_menu(self):
        self.recent_menu.clear()
        for target in self.settings.recent_targets:
            action = QAction(target, self)
            action.triggered.connect(lambda _checked=False, t=target: self._add_paths([t]))
            self.recent_menu.addAction(action)
        self.recent_menu.setEnabled(bool(self.settings.recent_targets))

    # ── Direction ──────────────────────────────────────────────────

    def _direction(self) -> ConversionDirection:
        return ConversionDirection(self._direction_group.checkedId())

    def _set_direction(self, direction: ConversionDirection):
        button = self._direction_group.button(direction.value)
        if button is not None:
            button.setChecked(True)
        self.settings.direction = direction.value

    def _on_direction_changed(self, button_id: int):
        self.settings.direction = button_id

    # ── Conversion ─────────────────────────────────────────────────

    def _start_conversion(self):
        if self.engine.is_running:
            return
        targets = self._input_paths()
        if not targets:
            QMessageBox.information(self, "No Input", "Add at least one .ESP or .ESM file.")
            return

        files = collect_input_files(targets)
        if not files:
            QMessageBox.warning(self, "No Plugins Found",
                                "None of the selected inputs contain .ESP or .ESM files.")
            return

        direction = self._direction()
        log.info("Queued %d file(s) for %s", len(files), direction.tag)
        self.settings.remember_targets(targets)
        self._rebuild_recent_menu()
        self.settings.save()

        self.results_panel.load_queue(files)
        self.tabs.setCurrentWidget(self.results_panel)
        self.progress_bar.setRange(0, len(files))
        self.progress_bar.setValue(0)
        self.progress_bar.setVisible(True)
        self._set_running(True)
        self.engine.convert_batch(files, direction, self.settings)

    def _stop_conversion(self):
        self.engine.cancel()
        self.stop_btn.setEnabled(False)
        self.progress_label.setText("Stopping after the current file...")

    def _set_running(self, running: bool):
        self.convert_btn.setEnabled(not running)
        self.stop_btn.setEnabled(running)
        for widget in (self.add_files_btn, self.add_folder_btn, self.remove_btn,
                       self.clear_btn, self.bm_to_ab_radio, self.ab_to_bm_radio):
            widget.setEnabled(not running)
        self.settings_action.setEnabled(not running)

    def _on_progress(self, done: int, total: int, path: str):
        self.progress_bar.setValue(done)

    def _on_file_started(self, path: str):
        self.results_panel.mark_file_started(path)
        self.progress_label.setText(f"Converting: {os.path.basename(path)}")

    def _on_file_done(self, result):
        self.results_panel.mark_file_done(result)

    def _on_setup_failed(self, message: str):
        QMessageBox.critical(self, "Setup Error", message)

    def _on_finished(self, report):
        self._set_running(False)
        self.progress_bar.setVisible(False)
        self.results_panel.mark_batch_finished(report)
        self.save_report_action.setEnabled(report.total > 0)
        self.progress_label.setText("")
        self.statusbar.showMessage(f"Done: {report.summary()}", 10000)
        if any(r.status == ERROR for r in report.results):
            self.tabs.setCurrentWidget(self.log_panel)

    def _save_report(self):
        report = self.engine.report
        if report is None:
            return
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Report", os.path.join(self._last_folder(), "tes3_ab_report.json"),
            "JSON (*.json)")
        if not path:
            return
        try:
            report.save_report(path)
        except OSError as e:
            QMessageBox.critical(self, "Save Error", f"Failed to save report:\n{e}")
            return
        self.statusbar.showMessage(f"Report saved to {path}", 5000)

    # ── Settings ───────────────────────────────────────────────────

    def _open_settings(self):
        old_log_file = self.settings.log_file
        dlg = SettingsDialog(self.settings, parent=self)
        if dlg.exec():
            self._apply_dark_mode()
            logging.getLogger().setLevel(
                logging.WARNING if self.settings.silent else logging.INFO)
            self.settings.save()
            if self.settings.log_file != old_log_file:
                self.statusbar.showMessage(
                    "New log file location is used after restart", 5000)

    def _show_about(self):
        QMessageBox.about(
            self, "About",
            f"<b>{PROGRAM_NAME}</b> v{__version__}<br><br>"
            "Moves exterior positions in Morrowind plugins between the "
            "Bloodmoon and Anthology Bloodmoon Solstheim layouts.<br><br>"
            "Requires tes3conv: github.com/Greatness7/tes3conv"
        )

    # ── Dark mode ──────────────────────────────────────────────────

    def _apply_dark_mode(self):
        """Apply or remove dark stylesheet."""
        app = QApplication.instance()
        if self.settings.dark_mode:
            app.setStyleSheet(DARK_STYLESHEET)
        else:
            app.setStyleSheet("")

    # ── Window close cleanup ──────────────────────────────────────

    def closeEvent(self, event):
        """Stop the worker and persist settings."""
        if self.engine.is_running:
            self.engine.cancel()
            thread = self.engine._thread
            if thread is not None:
                thread.quit()
                thread.wait(3000)
        logging.getLogger().removeHandler(self._log_handler)
        self.settings.remember_targets(self._input_paths())
        self.settings.save()
        super().closeEvent(event)
