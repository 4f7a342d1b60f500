"""Header checks: parent master order and the "already converted" tag."""

import logging

from .errors import DependencyOrderError, HeaderError
from .grid import ConversionDirection

log = logging.getLogger(__name__)

MORROWIND = "morrowind.esm"
TRIBUNAL = "tribunal.esm"
BLOODMOON = "bloodmoon.esm"

MAX_DESCRIPTION_LENGTH = 256


def find_header(document: list) -> dict:
    """Return the Header record of a decoded plugin."""
    for record in document:
        if isinstance(record, dict) and record.get("type") == "Header":
            return record
    raise HeaderError("missing 'Header' record")


def _master_positions(masters: list) -> dict:
    positions = {}
    for index, entry in enumerate(masters):
        # Each entry is [file_name, file_size]
        if isinstance(entry, list) and entry and isinstance(entry[0], str):
            name = entry[0].lower()
            if name in (MORROWIND, TRIBUNAL, BLOODMOON):
                positions.setdefault(name, index)
    return positions


def check_dependency_order(document: list) -> str:
    """Validate the parent masters of a plugin.

    Returns "M+T+B" or "M+B" describing the accepted layout.

    Raises:
        HeaderError: no Header record or no masters list.
        DependencyOrderError: Morrowind.esm missing or masters out of order.
    """
    header = find_header(document)
    masters = header.get("masters")
    if not isinstance(masters, list):
        raise HeaderError("missing 'masters' key in Header")

    positions = _master_positions(masters)
    mw = positions.get(MORROWIND)
    tr = positions.get(TRIBUNAL)
    bm = positions.get(BLOODMOON)

    if mw is None:
        raise DependencyOrderError("Morrowind.esm dependency not found")

    if tr is not None and bm is not None:
        if mw < tr < bm:
            log.info("Valid order of Parent Master files found: M+T+B")
            return "M+T+B"
        raise DependencyOrderError("invalid order of Parent Master files "
                                   "(expected Morrowind, Tribunal, Bloodmoon)")

    if bm is not None and mw < bm:
        log.info("Valid order of Parent Master files found: M+B")
        return "M+B"

    if bm is not None:
        raise DependencyOrderError("Bloodmoon.esm must follow Morrowind.esm")
    if tr is not None:
        raise DependencyOrderError("Tribunal.esm found without Bloodmoon.esm")
    raise DependencyOrderError("Bloodmoon.esm dependency not found")


def _tag_text(direction: ConversionDirection) -> str:
    return f"[{direction.tag}]"


def find_conversion_tag(document: list):
    """Return the direction a document was already converted in, or None."""
    try:
        header = find_header(document)
    except HeaderError:
        return None
    description = header.get("description")
    if not isinstance(description, str):
        return None
    for direction in ConversionDirection:
        if _tag_text(direction) in description:
            return direction
    return None


def add_conversion_tag(document: list, direction: ConversionDirection):
    """Prefix the Header description with the conversion tag."""
    header = find_header(document)
    description = header.get("description")
    if description is None:
        description = ""
    elif not isinstance(description, str):
        raise HeaderError("Header 'description' is not a string")

    tagged = f"{_tag_text(direction)} {description}".rstrip()
    header["description"] = tagged[:MAX_DESCRIPTION_LENGTH]
    log.info("Conversion tag %s added to header description", _tag_text(direction))
