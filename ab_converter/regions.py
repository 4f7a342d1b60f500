"""Cell membership: reference database, user overrides and the validity check."""

import logging
import os
import re
import sqlite3
from pathlib import Path

from .errors import RegionLookupError, SetupError
from .grid import ConversionDirection, get_grid_offset, shift_cell

log = logging.getLogger(__name__)

REFERENCE_TABLE = "tes3_ab_cell_x-y_data"

# One "x,y" pair per line, whitespace allowed around the comma
_COORDINATE_LINE_RE = re.compile(r'^(-?\d+)\s*,\s*(-?\d+)$')


class CellLookup:
    """Anything that can answer whether a grid cell belongs to a set."""

    def contains(self, grid_x: int, grid_y: int) -> bool:
        raise NotImplementedError


class ReferenceRegion(CellLookup):
    """Read-only view of the reference cell database.

    Cells are stored in Bloodmoon grid space only.
    """

    _QUERY = (f"SELECT BM_Grid_X, BM_Grid_Y FROM [{REFERENCE_TABLE}] "
              "WHERE BM_Grid_X = ? AND BM_Grid_Y = ?")

    def __init__(self, db_path: str):
        self.db_path = db_path
        if not os.path.isfile(db_path):
            raise SetupError(f"database file '{db_path}' not found")
        uri = Path(os.path.abspath(db_path)).as_uri() + "?mode=ro"
        try:
            self._conn = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise SetupError(f"failed to open database '{db_path}': {e}") from e

    def contains(self, grid_x: int, grid_y: int) -> bool:
        try:
            row = self._conn.execute(self._QUERY, (grid_x, grid_y)).fetchone()
        except (sqlite3.Error, OverflowError) as e:
            # OverflowError: the cell does not fit an SQLite INTEGER
            raise RegionLookupError(f"reference query failed: {e}") from e
        return row is not None

    def close(self):
        self._conn.close()


class CustomCoordinates(CellLookup):
    """User-supplied cells treated as part of the region."""

    def __init__(self, cells=()):
        self._cells = set(cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self):
        return iter(self._cells)

    def contains(self, grid_x: int, grid_y: int) -> bool:
        return (grid_x, grid_y) in self._cells


def parse_custom_coordinates(lines) -> CustomCoordinates:
    """Build an override set from text lines.

    Blank lines and ``//`` comments are ignored; anything else that is not
    an ``x,y`` integer pair is logged and skipped.
    """
    cells = set()
    header_logged = False
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("//"):
            continue
        if not header_logged:
            log.info("Loading custom grid coordinates:")
            header_logged = True
        m = _COORDINATE_LINE_RE.match(line)
        if not m:
            log.warning("WARNING - invalid coordinate format: %s", line)
            continue
        x, y = int(m.group(1)), int(m.group(2))
        cells.add((x, y))
        log.info("- Coordinate: %d,%d", x, y)
    return CustomCoordinates(cells)


def load_custom_coordinates(path: str) -> CustomCoordinates:
    """Load the override file; a missing file yields an empty set."""
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return parse_custom_coordinates(f)
    except FileNotFoundError:
        log.warning("WARNING - custom grid coordinates file '%s' not found, "
                    "no custom coordinates loaded", path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning("WARNING - failed to read custom grid coordinates file '%s': %s",
                    path, e)
    return CustomCoordinates()


def is_coordinate_valid(grid_x: int, grid_y: int, direction: ConversionDirection,
                        reference: CellLookup, overrides: CellLookup) -> bool:
    """Check whether a grid cell lies in the region that must be moved.

    The reference database is keyed in Bloodmoon space, so for AB -> BM the
    probe is first shifted back into that space. Overrides are matched on
    the cell exactly as given. A failing database lookup counts as "not in
    region".
    """
    probe_x, probe_y = grid_x, grid_y
    if direction is ConversionDirection.AB_TO_BM:
        probe_x, probe_y = shift_cell(grid_x, grid_y, get_grid_offset(direction))

    try:
        if reference.contains(probe_x, probe_y):
            return True
    except RegionLookupError as e:
        log.error("Error checking grid (%d, %d) in database: %s", probe_x, probe_y, e)
        return False

    return overrides.contains(grid_x, grid_y)
