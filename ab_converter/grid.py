"""World-grid geometry: cell size, conversion directions and offsets.

Bloodmoon and Anthology Bloodmoon place Solstheim at different exterior
cells. The two layouts differ by a constant cell offset, so every position
inside the affected region moves by whole cells while keeping its position
inside the cell.
"""

import math
from dataclasses import dataclass
from enum import Enum

CELL_SIZE = 8192.0  # Exterior cell edge length in world units


class ConversionDirection(Enum):
    """Which way a plugin is converted."""
    BM_TO_AB = 1   # Bloodmoon -> Anthology Bloodmoon
    AB_TO_BM = 2   # Anthology Bloodmoon -> Bloodmoon

    @property
    def tag(self) -> str:
        """Short label written into converted headers and logs."""
        return "BM->AB" if self is ConversionDirection.BM_TO_AB else "AB->BM"

    @property
    def label(self) -> str:
        if self is ConversionDirection.BM_TO_AB:
            return "Bloodmoon -> Anthology Bloodmoon"
        return "Anthology Bloodmoon -> Bloodmoon"

    @property
    def inverse(self) -> "ConversionDirection":
        if self is ConversionDirection.BM_TO_AB:
            return ConversionDirection.AB_TO_BM
        return ConversionDirection.BM_TO_AB


@dataclass(frozen=True)
class GridOffset:
    """Whole-cell shift applied to grid coordinates."""
    x: int
    y: int

    def __neg__(self) -> "GridOffset":
        return GridOffset(-self.x, -self.y)


_FORWARD_OFFSET = GridOffset(7, 6)


def get_grid_offset(direction: ConversionDirection) -> GridOffset:
    """Return the cell offset for a conversion direction.

    The reverse offset is always the negation of the forward one.
    """
    if direction is ConversionDirection.BM_TO_AB:
        return _FORWARD_OFFSET
    return -_FORWARD_OFFSET


def cell_of(x: float, y: float) -> tuple[int, int]:
    """Return the grid cell containing world position (x, y)."""
    return math.floor(x / CELL_SIZE), math.floor(y / CELL_SIZE)


def shift_cell(grid_x: int, grid_y: int, offset: GridOffset) -> tuple[int, int]:
    return grid_x + offset.x, grid_y + offset.y


def translate_coordinate(x: float, y: float, grid_x: int, grid_y: int,
                         offset: GridOffset) -> tuple[float, float]:
    """Move (x, y) from cell (grid_x, grid_y) to the offset cell.

    Only the cell changes: the remainder of the position inside its cell is
    carried over unchanged.
    """
    new_grid_x, new_grid_y = shift_cell(grid_x, grid_y, offset)
    new_x = (new_grid_x * CELL_SIZE) + (x - (grid_x * CELL_SIZE))
    new_y = (new_grid_y * CELL_SIZE) + (y - (grid_y * CELL_SIZE))
    return new_x, new_y
