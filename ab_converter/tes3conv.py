"""Wrapper around the external tes3conv plugin <-> JSON converter.

tes3conv (github.com/Greatness7/tes3conv) picks the conversion from the
file extensions: ``tes3conv in.esp out.json`` decodes, ``tes3conv
in.json out.esp`` encodes.
"""

import logging
import os
import subprocess
import sys

from .errors import SetupError, Tes3ConvError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300  # seconds; large masters take a while


def default_executable() -> str:
    if sys.platform == "win32":
        return "tes3conv.exe"
    return "./tes3conv"


class Tes3Conv:
    """Runs tes3conv for one conversion at a time."""

    def __init__(self, executable: str = "", timeout: float = DEFAULT_TIMEOUT):
        self.executable = executable or default_executable()
        self.timeout = timeout

    def check_available(self):
        """Raise SetupError when the executable is not on disk."""
        if not os.path.isfile(self.executable):
            raise SetupError(
                f"tes3conv not found at '{self.executable}'. Download the latest "
                "version from github.com/Greatness7/tes3conv/releases and set "
                "its path in Settings."
            )
        log.info("tes3conv found...")

    def to_json(self, plugin_path: str, json_path: str):
        """Decode a plugin/master into JSON."""
        self._run(plugin_path, json_path)
        log.info("Conversion to .JSON successful: %s", json_path)

    def to_plugin(self, json_path: str, plugin_path: str):
        """Encode JSON back into a plugin/master."""
        self._run(json_path, plugin_path)
        log.info("Conversion to .ESP|ESM successful: %s", plugin_path)

    def _run(self, source: str, destination: str):
        kwargs = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
        try:
            result = subprocess.run(
                [self.executable, source, destination],
                capture_output=True, text=True, timeout=self.timeout,
                **kwargs,
            )
        except subprocess.TimeoutExpired as e:
            raise Tes3ConvError(
                f"tes3conv timed out after {self.timeout}s converting '{source}'"
            ) from e
        except (FileNotFoundError, OSError) as e:
            raise Tes3ConvError(f"failed to run tes3conv: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise Tes3ConvError(
                f"tes3conv failed converting '{source}' -> '{destination}' "
                f"(exit code {result.returncode}){': ' + detail if detail else ''}"
            )
