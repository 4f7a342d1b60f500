"""Settings dialog for tool paths and conversion options."""

import os

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout, QLineEdit,
    QPushButton, QLabel, QGroupBox, QCheckBox, QFileDialog,
)

from ..settings import ConverterSettings


class SettingsDialog(QDialog):
    """Dialog for configuring tes3conv, data files, logging and appearance."""

    def __init__(self, settings: ConverterSettings, parent=None):
        super().__init__(parent)
        self.settings = settings
        self.setWindowTitle("Settings")
        self.setMinimumSize(600, 380)
        self._build_ui()
        self._load_current()

    def _build_ui(self):
        layout = QVBoxLayout(self)

        # ── Tools & data ─────────────────────────────────────────────
        paths_group = QGroupBox("Tools and Data Files")
        paths_form = QFormLayout(paths_group)

        self.tes3conv_edit = self._path_row(
            paths_form, "tes3conv:", "Select tes3conv executable", "")
        self.tes3conv_edit.setToolTip(
            "Download the latest version from\n"
            "github.com/Greatness7/tes3conv/releases"
        )
        self.database_edit = self._path_row(
            paths_form, "Cell database:", "Select cell database",
            "SQLite database (*.db);;All files (*)")
        self.custom_edit = self._path_row(
            paths_form, "Custom coordinates:", "Select custom coordinates file",
            "Text files (*.txt);;All files (*)")
        self.custom_edit.setToolTip(
            "One x,y grid pair per line.\n"
            "Lines starting with // are comments."
        )
        self.log_edit = self._path_row(
            paths_form, "Log file:", "Select log file",
            "Log files (*.log);;All files (*)", save=True)

        layout.addWidget(paths_group)

        # ── Options ──────────────────────────────────────────────────
        opts_group = QGroupBox("Conversion Options")
        opts_form = QFormLayout(opts_group)

        self.backup_check = QCheckBox("Back up each file to <name>.bak before overwriting")
        opts_form.addRow(self.backup_check)

        self.silent_check = QCheckBox("Silent mode (log warnings and errors only)")
        opts_form.addRow(self.silent_check)

        layout.addWidget(opts_group)

        appear_group = QGroupBox("Appearance")
        appear_form = QFormLayout(appear_group)
        self.dark_mode_check = QCheckBox("Enable dark mode (Catppuccin theme)")
        appear_form.addRow(self.dark_mode_check)
        layout.addWidget(appear_group)

        self.status_label = QLabel("")
        self.status_label.setWordWrap(True)
        layout.addWidget(self.status_label)

        # ── Bottom buttons ─────────────────────────────────────────
        btn_row = QHBoxLayout()
        btn_row.addStretch()

        save_btn = QPushButton("Save")
        save_btn.clicked.connect(self._save)
        btn_row.addWidget(save_btn)

        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)
        btn_row.addWidget(cancel_btn)

        layout.addLayout(btn_row)

    def _path_row(self, form: QFormLayout, label: str, title: str,
                  file_filter: str, save: bool = False) -> QLineEdit:
        row = QHBoxLayout()
        edit = QLineEdit()
        edit.setMinimumWidth(350)
        row.addWidget(edit)
        browse_btn = QPushButton("Browse...")
        browse_btn.clicked.connect(
            lambda: self._browse(edit, title, file_filter, save))
        row.addWidget(browse_btn)
        form.addRow(label, row)
        return edit

    def _browse(self, edit: QLineEdit, title: str, file_filter: str, save: bool):
        start = edit.text().strip() or os.getcwd()
        if save:
            path, _ = QFileDialog.getSaveFileName(self, title, start, file_filter)
        else:
            path, _ = QFileDialog.getOpenFileName(self, title, start, file_filter)
        if path:
            edit.setText(path)

    def _load_current(self):
        """Populate fields from the current settings."""
        self.tes3conv_edit.setText(self.settings.tes3conv_path)
        self.database_edit.setText(self.settings.database_path)
        self.custom_edit.setText(self.settings.custom_coordinates_path)
        self.log_edit.setText(self.settings.log_file)
        self.backup_check.setChecked(self.settings.make_backups)
        self.silent_check.setChecked(self.settings.silent)
        self.dark_mode_check.setChecked(self.settings.dark_mode)
        self._check_paths()

    def _check_paths(self):
        missing = []
        if not os.path.isfile(self.tes3conv_edit.text().strip()):
            missing.append("tes3conv")
        if not os.path.isfile(self.database_edit.text().strip()):
            missing.append("cell database")
        if missing:
            self.status_label.setText(
                f"<span style='color:#f38ba8;'>Not found: {', '.join(missing)}</span>")
        else:
            self.status_label.setText("")

    # ── Save / Cancel ────────────────────────────────────────────────

    def _save(self):
        """Apply settings and close."""
        defaults = ConverterSettings()
        self.settings.tes3conv_path = self.tes3conv_edit.text().strip() or defaults.tes3conv_path
        self.settings.database_path = self.database_edit.text().strip() or defaults.database_path
        self.settings.custom_coordinates_path = (
            self.custom_edit.text().strip() or defaults.custom_coordinates_path)
        self.settings.log_file = self.log_edit.text().strip() or defaults.log_file
        self.settings.make_backups = self.backup_check.isChecked()
        self.settings.silent = self.silent_check.isChecked()
        self.settings.dark_mode = self.dark_mode_check.isChecked()
        self.accept()
