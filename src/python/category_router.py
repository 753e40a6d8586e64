"""Category routing — picks the accumulating symbol library for a component."""

import re

from models import LibraryCategory

LIBRARY_PREFIX = "LCSC"

# Project-local library for EasyEDA community components, which have no catalog category
COMMUNITY_LIBRARY = "EasyEDA"
COMMUNITY_LIBRARY_DESCRIPTION = "EasyEDA Community Component Library"

# Reference designator prefixes (exact match, case-insensitive)
_PREFIX_CATEGORIES = {
    "R": LibraryCategory.RESISTORS,
    "C": LibraryCategory.CAPACITORS,
    "L": LibraryCategory.INDUCTORS,
    "FB": LibraryCategory.INDUCTORS,    # ferrite beads
    "D": LibraryCategory.DIODES,
    "LED": LibraryCategory.DIODES,
    "Q": LibraryCategory.TRANSISTORS,
    "U": LibraryCategory.ICS,
    "IC": LibraryCategory.ICS,
    "J": LibraryCategory.CONNECTORS,
    "P": LibraryCategory.CONNECTORS,
    "CN": LibraryCategory.CONNECTORS,
    "K": LibraryCategory.MISC,          # relays
    "Y": LibraryCategory.MISC,          # crystals
    "X": LibraryCategory.MISC,          # crystals / oscillators
    "F": LibraryCategory.MISC,          # fuses
    "SW": LibraryCategory.MISC,
}

# Keywords matched as substrings of the catalog category, then the description
# (checked in order)
_KEYWORDS = [
    ("resistor", LibraryCategory.RESISTORS),
    ("capacitor", LibraryCategory.CAPACITORS),
    ("inductor", LibraryCategory.INDUCTORS),
    ("ferrite bead", LibraryCategory.INDUCTORS),
    ("diode", LibraryCategory.DIODES),
    ("led", LibraryCategory.DIODES),
    ("transistor", LibraryCategory.TRANSISTORS),
    ("mosfet", LibraryCategory.TRANSISTORS),
    ("bjt", LibraryCategory.TRANSISTORS),
    ("jfet", LibraryCategory.TRANSISTORS),
    ("ic", LibraryCategory.ICS),
    ("mcu", LibraryCategory.ICS),
    ("microcontroller", LibraryCategory.ICS),
    ("op amp", LibraryCategory.ICS),
    ("opamp", LibraryCategory.ICS),
    ("voltage regulator", LibraryCategory.ICS),
    ("ldo", LibraryCategory.ICS),
    ("dc-dc", LibraryCategory.ICS),
    ("adc", LibraryCategory.ICS),
    ("dac", LibraryCategory.ICS),
    ("sensor", LibraryCategory.ICS),
    ("driver", LibraryCategory.ICS),
    ("connector", LibraryCategory.CONNECTORS),
    ("header", LibraryCategory.CONNECTORS),
    ("socket", LibraryCategory.CONNECTORS),
    ("terminal", LibraryCategory.CONNECTORS),
    ("relay", LibraryCategory.MISC),
    ("crystal", LibraryCategory.MISC),
    ("oscillator", LibraryCategory.MISC),
    ("fuse", LibraryCategory.MISC),
    ("switch", LibraryCategory.MISC),
    ("button", LibraryCategory.MISC),
]


def _match_keywords(text: str | None) -> LibraryCategory | None:
    if not text:
        return None
    text_lower = text.lower()
    for keyword, category in _KEYWORDS:
        if keyword in text_lower:
            return category
    return None


def route(prefix: str | None, category: str | None = None,
          description: str | None = None) -> LibraryCategory:
    """Pick the library bucket for a component.

    Strategy: designator prefix first, then keywords in the catalog category,
    then keywords in the description. Falls back to MISC; never fails.
    """
    normalized = (prefix or "").strip().rstrip("?").upper()
    if normalized in _PREFIX_CATEGORIES:
        return _PREFIX_CATEGORIES[normalized]

    for text in (category, description):
        matched = _match_keywords(text)
        if matched is not None:
            return matched

    return LibraryCategory.MISC


def all_categories() -> list[LibraryCategory]:
    return list(LibraryCategory)


def library_name(category: LibraryCategory) -> str:
    """Library name for a category, e.g. "LCSC-Resistors"."""
    return f"{LIBRARY_PREFIX}-{category.value}"


def library_filename(category: LibraryCategory) -> str:
    return f"{library_name(category)}.kicad_sym"


def footprint_library_name() -> str:
    return LIBRARY_PREFIX


def footprint_dir_name(library: str = LIBRARY_PREFIX) -> str:
    return f"{library}.pretty"


def models_dir_name(library: str = LIBRARY_PREFIX) -> str:
    return f"{library}.3dshapes"


def community_library_filename() -> str:
    return f"{COMMUNITY_LIBRARY}.kicad_sym"


def symbol_reference(category: LibraryCategory, symbol_name: str) -> str:
    return f"{library_name(category)}:{symbol_name}"


def footprint_reference(footprint_name: str) -> str:
    return f"{LIBRARY_PREFIX}:{footprint_name}"


def community_reference(name: str) -> str:
    """Symbol and footprint reference for a community component, e.g. "EasyEDA:NE555"."""
    return f"{COMMUNITY_LIBRARY}:{name}"


def parse_library_name(name: str) -> LibraryCategory | None:
    """Reverse of library_name(); None for anything that is not one of ours."""
    match = re.fullmatch(rf"{re.escape(LIBRARY_PREFIX)}-(\w+)", name)
    if not match:
        return None
    for category in LibraryCategory:
        if category.value == match.group(1):
            return category
    return None
