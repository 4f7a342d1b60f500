"""Rewriting of positional commands embedded in script text.

Compiled scripts (Script records) and dialogue results (DialogueInfo
records) carry positions as plain command text, e.g.::

    "guard"->AiEscort player, 0, 14200.5, -3100, 512
    PositionCell 2000 3000 128 90 "Raven Rock"
    PlaceItemCell "misc_bowl", "Fort Frostmoth", 1024, 2048, 64, 0

Each command keyword has one rule describing its operand list. A rule
finds every occurrence of its command, checks the spatial operands against
the region and, when they are in it, re-emits the command with translated
coordinates. Everything outside the matched commands is left untouched.
"""

import logging
import math
import re
from dataclasses import dataclass, field

from .errors import CommandParseError
from .grid import cell_of, shift_cell, translate_coordinate

log = logging.getLogger(__name__)

# Operand kinds
ID = "id"              # actor/object/cell id, quoted or bare; copied verbatim
INT = "int"            # duration or reset flag; copied verbatim
COORD = "coord"        # x, y, z; rewritten with 3 decimals
ROTATION = "rotation"  # z rotation; rewritten with 0 decimals

_OPERAND_RE = {
    ID: r'(?:"[^"]+"|[^\s,"]+)',
    INT: r'\d+',
    COORD: r'-?\d+(?:\.\d+)?',
    ROTATION: r'-?\d+(?:\.\d+)?',
}
# Arguments are separated by a comma, blanks, or both, on the same line.
# An empty separator would let one number be split into two operands.
_SEPARATOR = r'(?:[ \t]*,[ \t]*|[ \t]+)'


def _parse_number(raw: str, name: str, label: str, source: str) -> float:
    """Parse a numeric operand; digit runs too long for a float are rejected."""
    value = float(raw)
    if not math.isfinite(value):
        raise CommandParseError(
            f"{source} '{label}': {name} operand {raw[:32]!r} is out of range")
    return value


@dataclass(frozen=True)
class CommandRule:
    """Operand grammar of one positional command."""
    keyword: str
    label: str                 # Human-readable name used in logs
    operands: tuple            # ((name, kind), ...) always present
    optional: tuple = ()       # trailing operands that may be omitted
    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        parts = [rf'\b(?P<keyword>{self.keyword})\b']
        for name, kind in self.operands:
            parts.append(f'{_SEPARATOR}(?P<{name}>{_OPERAND_RE[kind]})')
        if self.optional:
            tail = "".join(f'{_SEPARATOR}(?P<{name}>{_OPERAND_RE[kind]})'
                           for name, kind in self.optional)
            parts.append(f'(?:{tail})?')
        object.__setattr__(self, "pattern",
                           re.compile("".join(parts), re.IGNORECASE))

    def rewrite(self, text: str, context, source: str) -> tuple[str, int]:
        """Rewrite every in-region occurrence of this command in *text*.

        Returns the new text and the number of commands rewritten.
        """
        count = 0

        def replace(m):
            nonlocal count
            new_command = self._rewrite_match(m, context, source)
            if new_command is None:
                return m.group(0)
            count += 1
            return new_command

        return self.pattern.sub(replace, text), count

    def _rewrite_match(self, m: re.Match, context, source: str):
        x, y, z = (_parse_number(m.group(name), name, self.label, source)
                   for name in ("x", "y", "z"))

        grid_x, grid_y = cell_of(x, y)
        if not context.is_valid(grid_x, grid_y):
            return None

        offset = context.offset
        new_x, new_y = translate_coordinate(x, y, grid_x, grid_y, offset)
        new_grid_x, new_grid_y = shift_cell(grid_x, grid_y, offset)
        log.info("Found: %s '%s' translation -> grid (%d, %d) | coordinates (%f, %f)",
                 source, self.label, grid_x, grid_y, x, y)
        log.info("Calculating: new destination -> grid (%d, %d) | coordinates (%f, %f)",
                 new_grid_x, new_grid_y, new_x, new_y)

        coords = {"x": new_x, "y": new_y, "z": z}
        pieces = [m.group("keyword")]
        for name, kind in self.operands + self.optional:
            raw = m.group(name)
            if raw is None:
                continue  # optional operand absent in the source
            if kind == COORD:
                pieces.append(f"{coords[name]:.3f}")
            elif kind == ROTATION:
                rotation = _parse_number(raw, name, self.label, source)
                pieces.append(f"{rotation:.0f}")
            else:
                pieces.append(raw)
        return ", ".join(pieces)


_XYZ = (("x", COORD), ("y", COORD), ("z", COORD))
_RESET = (("reset", INT),)

COMMAND_RULES = (
    CommandRule("AiEscort", "AI Escort",
                (("actor", ID), ("duration", INT)) + _XYZ, _RESET),
    CommandRule("AiEscortCell", "AI Escort Cell",
                (("actor", ID), ("cell", ID), ("duration", INT)) + _XYZ, _RESET),
    CommandRule("AiFollow", "AI Follow",
                (("actor", ID), ("duration", INT)) + _XYZ, _RESET),
    CommandRule("AiFollowCell", "AI Follow Cell",
                (("actor", ID), ("cell", ID), ("duration", INT)) + _XYZ, _RESET),
    CommandRule("AiTravel", "AI Travel", _XYZ, _RESET),
    CommandRule("Position", "Position", _XYZ + (("rotation", ROTATION),)),
    CommandRule("PositionCell", "PositionCell",
                _XYZ + (("rotation", ROTATION), ("cell", ID))),
    CommandRule("PlaceItem", "PlaceItem",
                (("object", ID),) + _XYZ + (("rotation", ROTATION),)),
    CommandRule("PlaceItemCell", "PlaceItemCell",
                (("object", ID), ("cell", ID)) + _XYZ + (("rotation", ROTATION),)),
)


def rewrite_commands(text: str, context, source: str) -> tuple[str, int]:
    """Apply every command rule to *text*.

    Args:
        text: Script or dialogue result text.
        context: Object providing ``is_valid(grid_x, grid_y)`` and ``offset``.
        source: "Script" or "Dialogue", used in log messages.

    Returns:
        (new_text, number_of_commands_rewritten)
    """
    total = 0
    for rule in COMMAND_RULES:
        text, count = rule.rewrite(text, context, source)
        total += count
    return text, total
