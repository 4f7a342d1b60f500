"""Persistent converter settings (_settings.json next to main.py)."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields

from .tes3conv import default_executable

log = logging.getLogger(__name__)

APP_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SETTINGS_FILE = os.path.join(APP_DIR, "_settings.json")

DATABASE_NAME = "tes3_ab_cell_x-y_data.db"
CUSTOM_COORDINATES_NAME = "tes3_ab_custom_cell_x-y_data.txt"
LOG_NAME = "tes3_ab.log"

MAX_RECENT_TARGETS = 10


def _default_tes3conv() -> str:
    return os.path.join(APP_DIR, os.path.basename(default_executable()))


@dataclass
class ConverterSettings:
    """User-configurable paths and switches."""
    tes3conv_path: str = field(default_factory=_default_tes3conv)
    database_path: str = os.path.join(APP_DIR, DATABASE_NAME)
    custom_coordinates_path: str = os.path.join(APP_DIR, CUSTOM_COORDINATES_NAME)
    log_file: str = os.path.join(APP_DIR, LOG_NAME)
    make_backups: bool = True
    silent: bool = False
    dark_mode: bool = True
    direction: int = 1          # ConversionDirection value
    recent_targets: list = field(default_factory=list)

    @classmethod
    def load(cls, path: str = SETTINGS_FILE) -> "ConverterSettings":
        """Load settings, falling back to defaults for anything missing."""
        settings = cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                cfg = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError, OSError):
            return settings  # No saved settings, use defaults
        if not isinstance(cfg, dict):
            return settings

        defaults = asdict(settings)
        for f_ in fields(cls):
            if f_.name not in cfg:
                continue
            value = cfg[f_.name]
            # Keep the default when a hand-edited file has the wrong type
            default = defaults[f_.name]
            if (not isinstance(value, type(default))
                    or (isinstance(value, bool) and not isinstance(default, bool))):
                log.warning("Ignoring setting %r with unexpected value %r", f_.name, value)
                continue
            setattr(settings, f_.name, value)
        if settings.direction not in (1, 2):
            settings.direction = 1
        return settings

    def save(self, path: str = SETTINGS_FILE):
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(asdict(self), f, ensure_ascii=False, indent=2)
        except OSError as e:
            log.warning("Could not save settings to %s: %s", path, e)

    def remember_targets(self, targets):
        """Move *targets* to the front of the recent list."""
        recent = [t for t in self.recent_targets if t not in targets]
        self.recent_targets = (list(targets) + recent)[:MAX_RECENT_TARGETS]
