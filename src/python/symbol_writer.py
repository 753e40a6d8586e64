"""Symbol serializer — builds kiutils symbols for a parsed component and emits .kicad_sym text."""

import math
import re

from kiutils.items.common import Effects, Fill, Font, Position, Property, Stroke
from kiutils.items.syitems import SyCircle, SyPolyLine, SyRect
from kiutils.symbol import Symbol, SymbolLib, SymbolPin

from errors import LibraryFormatError
from models import (
    ParsedComponent, Pin, PinType, SymbolEllipse, SymbolPolyline, SymbolRect,
)
from units import normalize_point, round_pos, round_size, to_mm

# Format revision matching the tokens kiutils writes; newer KiCad upgrades it on load
KICAD_FORMAT_VERSION = "20211014"
GENERATOR = "lcscbridge"

PIN_LENGTH = 2.54
PIN_NAME_OFFSET = 1.016
TEXT_SIZE = 1.27
BODY_PADDING = 2.54
BODY_MIN_SIZE = 5.08
STROKE_WIDTH = 0.254
ELLIPSE_SEGMENTS = 32

_RESERVED_PROPERTIES = {"Reference", "Value", "Footprint", "Datasheet", "Description",
                        "LCSC", "Product Page", "Manufacturer"}

_TOKEN = re.compile(r'"(?:[^"\\]|\\.)*"|[()]|[^\s()"]+')


def sanitize_name(name: str) -> str:
    """Library key for a symbol: anything outside [A-Za-z0-9_-] becomes "_"."""
    return re.sub(r"[^a-zA-Z0-9_-]", "_", name or "")


def sanitize_pin_name(name: str) -> str:
    if not name:
        return "~"
    return name.replace('"', "'").replace("\\", "")


def sanitize_text(value) -> str:
    """Free text for a quoted KiCad string.

    kiutils escapes double quotes itself; backslashes and line breaks are
    handled here.
    """
    text = str(value if value is not None else "")
    return text.replace("\\", "\\\\").replace("\r", " ").replace("\n", " ")


def symbol_name(component: ParsedComponent) -> str:
    return sanitize_name(component.info.name)


def map_pin_type(pin_type: PinType | str | None) -> str:
    """KiCad electrical type token for a pin type or raw EasyEDA code."""
    if isinstance(pin_type, PinType):
        return pin_type.value
    return PinType.from_code(pin_type).value


def pin_orientation(x: float, y: float) -> int:
    """Pin angle in degrees from its normalized position relative to the origin.

    Pins are assumed to point toward the body center: a pin further out
    horizontally than vertically is horizontal, otherwise vertical, and the
    sign of the displacement picks the inward direction.
    """
    if abs(x) > abs(y):
        return 180 if x > 0 else 0
    return 270 if y > 0 else 90


def datasheet_url(component: ParsedComponent) -> str:
    """PDF from enrichment, else the catalog datasheet link, else "~"."""
    info = component.info
    if info.datasheet_pdf:
        return info.datasheet_pdf
    if info.lcsc_id:
        return f"https://www.lcsc.com/datasheet/{info.lcsc_id}.pdf"
    return "~"


def _effects(hidden: bool = False) -> Effects:
    return Effects(font=Font(height=TEXT_SIZE, width=TEXT_SIZE), hide=hidden)


def _pin_positions(component: ParsedComponent) -> list[tuple[Pin, float, float]]:
    sym = component.symbol
    return [(pin, *normalize_point(pin.x, pin.y, sym.origin_x, sym.origin_y))
            for pin in sym.pins]


def body_bounds(component: ParsedComponent) -> tuple[float, float, float, float]:
    """Synthesized body rectangle (min_x, min_y, max_x, max_y) in millimetres.

    Bounding box of the normalized pin positions grown by one grid unit on
    each side, never smaller than BODY_MIN_SIZE in either direction.
    """
    positions = _pin_positions(component)
    if not positions:
        half = BODY_MIN_SIZE / 2
        return -half, -half, half, half

    xs = [x for _pin, x, _y in positions]
    ys = [y for _pin, _x, y in positions]
    min_x, max_x = min(xs) - BODY_PADDING, max(xs) + BODY_PADDING
    min_y, max_y = min(ys) - BODY_PADDING, max(ys) + BODY_PADDING

    if max_x - min_x < BODY_MIN_SIZE:
        center = (min_x + max_x) / 2
        min_x, max_x = center - BODY_MIN_SIZE / 2, center + BODY_MIN_SIZE / 2
    if max_y - min_y < BODY_MIN_SIZE:
        center = (min_y + max_y) / 2
        min_y, max_y = center - BODY_MIN_SIZE / 2, center + BODY_MIN_SIZE / 2
    return min_x, min_y, max_x, max_y


def _position(x: float, y: float, angle=None) -> Position:
    return Position(X=round_pos(x), Y=round_pos(y), angle=angle)


def _stroke() -> Stroke:
    return Stroke(width=round_size(STROKE_WIDTH), type="default")


def _rectangle(x1: float, y1: float, x2: float, y2: float, fill: str = "background") -> SyRect:
    return SyRect(start=_position(x1, y1), end=_position(x2, y2),
                  stroke=_stroke(), fill=Fill(type=fill))


def _polyline(points: list[tuple[float, float]]) -> SyPolyLine:
    return SyPolyLine(points=[_position(x, y) for x, y in points],
                      stroke=_stroke(), fill=Fill(type="none"))


def _graphic(shape, origin_x: float, origin_y: float):
    if isinstance(shape, SymbolRect):
        x1, y1 = normalize_point(shape.x, shape.y, origin_x, origin_y)
        x2, y2 = normalize_point(shape.x + shape.width, shape.y + shape.height,
                                 origin_x, origin_y)
        return _rectangle(x1, y1, x2, y2, fill="none")

    if isinstance(shape, SymbolEllipse):
        cx, cy = normalize_point(shape.cx, shape.cy, origin_x, origin_y)
        if math.isclose(shape.rx, shape.ry):
            return SyCircle(center=_position(cx, cy), radius=round_size(to_mm(shape.rx)),
                            stroke=_stroke(), fill=Fill(type="none"))
        # KiCad symbols have no ellipse primitive
        rx, ry = to_mm(shape.rx), to_mm(shape.ry)
        points = [(cx + rx * math.cos(2 * math.pi * i / ELLIPSE_SEGMENTS),
                   cy + ry * math.sin(2 * math.pi * i / ELLIPSE_SEGMENTS))
                  for i in range(ELLIPSE_SEGMENTS + 1)]
        return _polyline(points)

    if isinstance(shape, SymbolPolyline):
        points = [normalize_point(x, y, origin_x, origin_y) for x, y in shape.points]
        if shape.closed and points[0] != points[-1]:
            points.append(points[0])
        return _polyline(points)

    return None


def _pin(pin: Pin, x: float, y: float) -> SymbolPin:
    return SymbolPin(
        electricalType=map_pin_type(pin.electrical_type),
        graphicalStyle="line",
        position=_position(x, y, pin_orientation(x, y)),
        length=round_size(PIN_LENGTH),
        name=sanitize_pin_name(pin.name),
        nameEffects=_effects(),
        number=sanitize_text(pin.number),
        numberEffects=_effects(),
    )


def _properties(component: ParsedComponent, footprint_ref: str | None,
                min_y: float, max_y: float) -> list[Property]:
    info = component.info
    fields = [
        ("Reference", info.prefix or "U", max_y + TEXT_SIZE, False),
        ("Value", symbol_name(component), min_y - TEXT_SIZE, False),
        ("Footprint", footprint_ref or "", min_y - 3 * TEXT_SIZE, True),
        ("Datasheet", datasheet_url(component), min_y - 5 * TEXT_SIZE, True),
        ("Description", info.description or info.name, min_y - 7 * TEXT_SIZE, True),
    ]
    if info.lcsc_id:
        fields.append(("LCSC", info.lcsc_id, min_y - 9 * TEXT_SIZE, True))
    if info.datasheet:
        fields.append(("Product Page", info.datasheet, min_y - 11 * TEXT_SIZE, True))
    if info.manufacturer:
        fields.append(("Manufacturer", info.manufacturer, min_y - 13 * TEXT_SIZE, True))
    for key, value in info.attributes.items():
        if key not in _RESERVED_PROPERTIES:
            fields.append((key, value, 0, True))

    return [
        Property(key=sanitize_text(key), value=sanitize_text(value), id=index,
                 position=_position(0, y, 0), effects=_effects(hidden))
        for index, (key, value, y, hidden) in enumerate(fields)
    ]


def build_symbol(component: ParsedComponent, footprint_ref: str | None = None,
                 library_name: str | None = None) -> Symbol:
    """kiutils Symbol for `component`: a `_0_1` drawing unit and a `_1_1` pin unit.

    With `library_name` the top-level id is qualified as "LIB:NAME"; the
    unit sub-symbols always use the bare name.
    """
    sym = component.symbol
    name = symbol_name(component)
    min_x, min_y, max_x, max_y = body_bounds(component)

    drawing = Symbol(entryName=name, unitId=0, styleId=1)
    if sym.graphics:
        for shape in sym.graphics:
            item = _graphic(shape, sym.origin_x, sym.origin_y)
            if item is not None:
                drawing.graphicItems.append(item)
    else:
        drawing.graphicItems.append(_rectangle(min_x, max_y, max_x, min_y))

    pins = Symbol(entryName=name, unitId=1, styleId=1,
                  pins=[_pin(pin, x, y) for pin, x, y in _pin_positions(component)])

    return Symbol(
        libraryNickname=library_name,
        entryName=name,
        pinNames=True,
        pinNamesOffset=round_size(PIN_NAME_OFFSET),
        inBom=True,
        onBoard=True,
        properties=_properties(component, footprint_ref, min_y, max_y),
        units=[drawing, pins],
    )


def symbol_entry(component: ParsedComponent, footprint_ref: str | None = None,
                 library_name: str | None = None) -> str:
    """One `(symbol ...)` block without the library wrapper."""
    return build_symbol(component, footprint_ref, library_name).to_sexpr()


def serialize_symbol(component: ParsedComponent, library_name: str | None = None,
                     footprint_ref: str | None = None) -> str:
    """Complete single-symbol library text for `component`."""
    lib = SymbolLib(version=KICAD_FORMAT_VERSION, generator=GENERATOR,
                    symbols=[build_symbol(component, footprint_ref, library_name)])
    return lib.to_sexpr()


def top_level_symbol_names(library_text: str) -> list[str]:
    """Names of the symbols directly inside `(kicad_symbol_lib ...)`.

    Unit sub-symbols ("NAME_1_1") sit one level deeper and are not listed.
    Library nicknames are stripped. Works on truncated text.
    """
    names = []
    depth = 0
    tokens = _TOKEN.findall(library_text)
    for index, token in enumerate(tokens):
        if token == "(":
            depth += 1
            if (depth == 2 and tokens[index + 1:index + 2] == ["symbol"]
                    and index + 2 < len(tokens) and tokens[index + 2].startswith('"')):
                symbol_id = tokens[index + 2][1:-1]
                names.append(symbol_id.rsplit(":", 1)[-1])
        elif token == ")":
            depth -= 1
    return names


def symbol_exists_in_library(library_text: str, name: str) -> bool:
    """Name-presence scan of library text (no full parse).

    Matches both bare and library-qualified top-level ids.
    """
    return sanitize_name(name) in top_level_symbol_names(library_text)


def append_to_library(library_text: str, entry: str) -> str:
    """Insert `entry` before the closing parenthesis of `library_text`."""
    trimmed = library_text.rstrip()
    if not trimmed.endswith(")"):
        raise LibraryFormatError("symbol library is missing its closing parenthesis")
    body = trimmed[:-1]
    if not body.endswith("\n"):
        body += "\n"
    return body + entry + ")\n"
