"""Document scanner: walks decoded plugin records and moves positional data.

A decoded plugin (tes3conv JSON) is a list of record dicts, each with a
``type`` key. Only a handful of record types carry positions:

- Cell / Landscape / PathGrid: ``grid`` pair, at top level or under ``data``
- Cell: temporary references (moved with the cell) and interior-door
  destinations
- Npc: travel service destinations
- Script / DialogueInfo: positional commands inside script text

Everything else is left alone.
"""

import logging
from dataclasses import dataclass, field

from .commands import rewrite_commands
from .grid import (
    CELL_SIZE, ConversionDirection, GridOffset, cell_of, get_grid_offset,
    shift_cell, translate_coordinate,
)
from .regions import CellLookup, is_coordinate_valid

log = logging.getLogger(__name__)

GRID_RECORD_TYPES = ("Cell", "Landscape", "PathGrid")


@dataclass
class TranslationContext:
    """Shared, read-only inputs for one batch run."""
    reference: CellLookup
    overrides: CellLookup
    direction: ConversionDirection

    @property
    def offset(self) -> GridOffset:
        return get_grid_offset(self.direction)

    def is_valid(self, grid_x: int, grid_y: int) -> bool:
        return is_coordinate_valid(grid_x, grid_y, self.direction,
                                   self.reference, self.overrides)


@dataclass
class ReplacementState:
    """What one scan of one document changed."""
    any_changed: bool = False
    updated_scripts: list = field(default_factory=list)  # unique, in scan order

    def mark_changed(self):
        self.any_changed = True

    def add_script(self, script_id: str):
        if script_id not in self.updated_scripts:
            self.updated_scripts.append(script_id)


class DocumentScanner:
    """Applies the grid shift to every positional field of a document."""

    def __init__(self, context: TranslationContext):
        self.context = context

    def scan(self, document: list) -> ReplacementState:
        """Translate *document* in place and report what changed."""
        state = ReplacementState()
        for record in document:
            if not isinstance(record, dict):
                continue
            record_type = record.get("type")
            if record_type in GRID_RECORD_TYPES:
                self._process_grid(record, record_type, state)
            if record_type == "Cell":
                self._process_interior_doors(record, state)
            elif record_type == "Npc":
                self._process_npc_travel(record, state)
            elif record_type == "Script":
                self._process_script(record, state)
            elif record_type == "DialogueInfo":
                self._process_dialogue(record, state)
        return state

    # ── Grid records ──────────────────────────────────────────────────

    @staticmethod
    def _find_grid(record: dict):
        """Return the mutable grid list of a record, or None."""
        grid = record.get("grid")
        if isinstance(grid, list) and len(grid) >= 2:
            return grid
        data = record.get("data")
        if isinstance(data, dict):
            grid = data.get("grid")
            if isinstance(grid, list) and len(grid) >= 2:
                return grid
        return None

    def _process_grid(self, record: dict, record_type: str, state: ReplacementState):
        grid = self._find_grid(record)
        if grid is None:
            log.warning("WARNING - grid key is missing for type: %s", record_type)
            return

        try:
            grid_x, grid_y = int(grid[0]), int(grid[1])
        except (TypeError, ValueError):
            log.warning("WARNING - unsupported grid value %r for type: %s", grid, record_type)
            return

        if not self.context.is_valid(grid_x, grid_y):
            return

        new_x, new_y = shift_cell(grid_x, grid_y, self.context.offset)
        log.info("Updating grid coordinates for (%s): (%d, %d) -> (%d, %d)",
                 record_type, grid_x, grid_y, new_x, new_y)
        grid[0] = new_x
        grid[1] = new_y
        state.mark_changed()

        if record_type == "Cell":
            self._process_cell_references(record, state)

    def _process_cell_references(self, cell: dict, state: ReplacementState):
        """Move temporary references along with their cell.

        Not checked against the region: the cell itself was just moved.
        """
        references = cell.get("references")
        if not isinstance(references, list):
            log.info("References key is missing or is not an array in cell %r",
                     cell.get("id", ""))
            return

        offset = self.context.offset
        for reference in references:
            if not isinstance(reference, dict):
                continue
            if reference.get("deleted"):
                continue
            translation = reference.get("translation")
            if ("temporary" not in reference
                    or not isinstance(translation, list) or len(translation) < 2):
                log.info("No valid temporary or translation array found in reference: %s",
                         reference.get("id", "Unknown ID"))
                continue
            try:
                x, y = float(translation[0]), float(translation[1])
            except (TypeError, ValueError):
                log.warning("WARNING - non-numeric translation %r in reference: %s",
                            translation, reference.get("id", "Unknown ID"))
                continue

            translation[0] = x + offset.x * CELL_SIZE
            translation[1] = y + offset.y * CELL_SIZE
            state.mark_changed()
            log.info("Processing: %s | (%f, %f) -> (%f, %f)",
                     reference.get("id", "Unknown ID"), x, y,
                     translation[0], translation[1])

    # ── Structured destinations ───────────────────────────────────────

    def _translate_point(self, point: list, what: str, state: ReplacementState) -> bool:
        """Validate and translate an [x, y, ...] world position in place."""
        try:
            x, y = float(point[0]), float(point[1])
        except (IndexError, TypeError, ValueError):
            log.warning("WARNING - unsupported %s translation: %r", what, point)
            return False

        grid_x, grid_y = cell_of(x, y)
        if not self.context.is_valid(grid_x, grid_y):
            return False

        offset = self.context.offset
        new_x, new_y = translate_coordinate(x, y, grid_x, grid_y, offset)
        new_grid_x, new_grid_y = shift_cell(grid_x, grid_y, offset)
        log.info("Found: %s translation -> grid (%d, %d) | coordinates (%f, %f)",
                 what, grid_x, grid_y, x, y)
        log.info("Calculating: new destination -> grid (%d, %d) | coordinates (%f, %f)",
                 new_grid_x, new_grid_y, new_x, new_y)
        point[0] = new_x
        point[1] = new_y
        state.mark_changed()
        return True

    def _process_interior_doors(self, cell: dict, state: ReplacementState):
        """Move where interior doors lead; the doors themselves stay put."""
        data = cell.get("data")
        flags = data.get("flags") if isinstance(data, dict) else None
        if not flags:
            return
        if not isinstance(flags, str):
            log.warning("WARNING - unsupported cell flags %r in cell %r",
                        flags, cell.get("id", ""))
            return
        if "IS_INTERIOR" not in flags:
            return
        references = cell.get("references")
        if not isinstance(references, list):
            return
        for reference in references:
            if not isinstance(reference, dict):
                continue
            destination = reference.get("destination")
            if not isinstance(reference.get("translation"), list):
                continue
            if not isinstance(destination, dict):
                continue
            target = destination.get("translation")
            if isinstance(target, list):
                self._translate_point(target, "Interior Door", state)

    def _process_npc_travel(self, npc: dict, state: ReplacementState):
        destinations = npc.get("travel_destinations")
        if not isinstance(destinations, list):
            return
        for destination in destinations:
            if not isinstance(destination, dict):
                continue
            target = destination.get("translation")
            if isinstance(target, list):
                self._translate_point(target, "NPC 'Travel Service'", state)

    # ── Script text ───────────────────────────────────────────────────

    def _process_script(self, script: dict, state: ReplacementState):
        text = script.get("text")
        if not isinstance(text, str):
            return
        new_text, count = rewrite_commands(text, self.context, "Script")
        if count:
            script["text"] = new_text
            state.mark_changed()
            state.add_script(script.get("id", "Unknown"))

    def _process_dialogue(self, info: dict, state: ReplacementState):
        # Dialogue results are rewritten but not reported by id
        text = info.get("script_text")
        if not isinstance(text, str):
            return
        new_text, count = rewrite_commands(text, self.context, "Dialogue")
        if count:
            info["script_text"] = new_text
            state.mark_changed()


def log_updated_scripts(state: ReplacementState):
    """Log the ids of scripts whose text was rewritten."""
    if not state.updated_scripts:
        log.info("No scripts were updated...")
        return
    log.info("Updated scripts list:")
    for script_id in state.updated_scripts:
        log.info("- Script ID: %s", script_id)
