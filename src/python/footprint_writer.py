"""Footprint serializer — builds kiutils footprints or picks a stock footprint reference."""

import math
import re

from kiutils.footprint import DrillDefinition, Footprint, Model, PadOptions
from kiutils.footprint import Pad as KicadPad
from kiutils.items.common import Effects, Font, Position
from kiutils.items.fpitems import FpArc, FpCircle, FpLine, FpRect, FpText
from kiutils.items.gritems import GrPoly

from models import Arc, FootprintResult, Pad, PadShape, ParsedComponent
from symbol_writer import GENERATOR, KICAD_FORMAT_VERSION, sanitize_text
from units import normalize_point, round_pos, round_size, to_mm

# kiutils stamps the current time by default
FIXED_TEDIT = "0"

COURTYARD_MARGIN = 0.25
COURTYARD_STROKE = 0.05
ROUNDRECT_RRATIO = 0.25
CUSTOM_PAD_ANCHOR = 0.1

SMD_LAYERS = ("F.Cu", "F.Paste", "F.Mask")
SMD_BACK_LAYERS = ("B.Cu", "B.Paste", "B.Mask")
THT_LAYERS = ("*.Cu", "*.Mask")

# EasyEDA layer id -> KiCad layer (copper ids are only used for pads)
LAYER_MAP = {
    1: "F.Cu",
    2: "B.Cu",
    3: "F.SilkS",
    4: "B.SilkS",
    5: "F.Paste",
    6: "B.Paste",
    7: "F.Mask",
    8: "B.Mask",
    10: "Edge.Cuts",
    12: "Cmts.User",
    13: "F.Fab",
    14: "B.Fab",
    15: "Dwgs.User",
    101: "F.Fab",
}
_COPPER_LAYERS = {1, 2}

_CHIP_SIZES = {
    "0201": "0603",
    "0402": "1005",
    "0603": "1608",
    "0805": "2012",
    "1206": "3216",
    "1210": "3225",
    "2010": "5025",
    "2512": "6332",
}

# designator prefix -> (KiCad library, footprint name prefix)
_CHIP_LIBRARIES = {
    "R": ("Resistor_SMD", "R"),
    "C": ("Capacitor_SMD", "C"),
    "L": ("Inductor_SMD", "L"),
    "FB": ("Inductor_SMD", "L"),
    "D": ("Diode_SMD", "D"),
    "LED": ("LED_SMD", "LED"),
}

# (package pattern, KiCad reference), checked in order
_PACKAGE_PATTERNS = [
    (r"^SOT-?23-5(?:[^0-9]|$)", "Package_TO_SOT_SMD:SOT-23-5"),
    (r"^SOT-?23-6(?:[^0-9]|$)", "Package_TO_SOT_SMD:SOT-23-6"),
    (r"^SOT-?23(?:-3)?(?:[^0-9]|$)", "Package_TO_SOT_SMD:SOT-23"),
    (r"^SOT-?223(?:[^0-9]|$)", "Package_TO_SOT_SMD:SOT-223-3_TabPin2"),
    (r"^SOIC-?8(?:[^0-9]|$)", "Package_SO:SOIC-8_3.9x4.9mm_P1.27mm"),
    (r"^SOIC-?14(?:[^0-9]|$)", "Package_SO:SOIC-14_3.9x8.7mm_P1.27mm"),
    (r"^SOIC-?16(?:[^0-9]|$)", "Package_SO:SOIC-16_3.9x9.9mm_P1.27mm"),
    (r"^SOD-?123(?:[^0-9F]|$)", "Diode_SMD:D_SOD-123"),
    (r"^SOD-?323(?:[^0-9F]|$)", "Diode_SMD:D_SOD-323"),
    (r"^SMA(?:[^A-Z0-9]|$)", "Diode_SMD:D_SMA"),
    (r"^SMB(?:[^A-Z0-9]|$)", "Diode_SMD:D_SMB"),
    (r"^SMC(?:[^A-Z0-9]|$)", "Diode_SMD:D_SMC"),
]


def sanitize_footprint_name(name: str) -> str:
    """Like symbol names but "." is allowed (e.g. "SOIC-8_3.9x4.9mm")."""
    return re.sub(r"[^a-zA-Z0-9_.-]", "_", name or "")


def footprint_name(component: ParsedComponent) -> str:
    """File stem / footprint id: sanitized package plus catalog id."""
    package = component.footprint.name or component.info.package or "Unknown"
    name = sanitize_footprint_name(package)
    if component.info.lcsc_id:
        name = f"{name}_{component.info.lcsc_id}"
    return name


def match_standard_footprint(package: str | None, prefix: str | None) -> str | None:
    """Map a package label to a stock KiCad footprint reference, if one fits.

    Chip sizes (0402, 0603, ...) are only mapped for passive/diode prefixes;
    named outlines (SOT-23, SOIC-8, SOD-123, SMA, ...) for any prefix.
    """
    if not package:
        return None
    label = package.strip().upper()
    normalized_prefix = (prefix or "").strip().rstrip("?").upper()
    if label.startswith("LED"):
        normalized_prefix = "LED"

    chip = re.search(r"(?:^|[^0-9])(0201|0402|0603|0805|1206|1210|2010|2512)(?:[^0-9]|$)", label)
    if chip and normalized_prefix in _CHIP_LIBRARIES:
        library, fp_prefix = _CHIP_LIBRARIES[normalized_prefix]
        size = chip.group(1)
        return f"{library}:{fp_prefix}_{size}_{_CHIP_SIZES[size]}Metric"

    for pattern, reference in _PACKAGE_PATTERNS:
        if re.search(pattern, label):
            return reference
    return None


def _angle(rotation: float) -> float:
    """Normalize to (-180, 180]."""
    rotation = rotation % 360
    return rotation - 360 if rotation > 180 else rotation


def _point(component: ParsedComponent, x: float, y: float) -> tuple[float, float]:
    fp = component.footprint
    return normalize_point(x, y, fp.origin_x, fp.origin_y, flip_y=False)


def _position(x: float, y: float, angle=None) -> Position:
    return Position(X=round_pos(x), Y=round_pos(y), angle=angle)


def _pad_extents(component: ParsedComponent, pad: Pad) -> tuple[float, float, float, float]:
    if pad.shape is PadShape.POLYGON and pad.points:
        points = [_point(component, x, y) for x, y in pad.points]
        xs = [x for x, _y in points]
        ys = [y for _x, y in points]
        return min(xs), min(ys), max(xs), max(ys)

    x, y = _point(component, pad.x, pad.y)
    hw, hh = to_mm(pad.width) / 2, to_mm(pad.height) / 2
    if round(_angle(pad.rotation)) % 180 == 90:
        hw, hh = hh, hw
    return x - hw, y - hh, x + hw, y + hh


def courtyard_bounds(component: ParsedComponent) -> tuple[float, float, float, float] | None:
    """Pad-extent bounding box grown by COURTYARD_MARGIN; None without pads."""
    pads = component.footprint.pads
    if not pads:
        return None
    extents = [_pad_extents(component, pad) for pad in pads]
    return (min(e[0] for e in extents) - COURTYARD_MARGIN,
            min(e[1] for e in extents) - COURTYARD_MARGIN,
            max(e[2] for e in extents) + COURTYARD_MARGIN,
            max(e[3] for e in extents) + COURTYARD_MARGIN)


def _pad(component: ParsedComponent, pad: Pad) -> KicadPad:
    if pad.is_through_hole:
        layers = THT_LAYERS
    elif pad.layer == 2:
        layers = SMD_BACK_LAYERS
    else:
        layers = SMD_LAYERS
    x, y = _point(component, pad.x, pad.y)

    result = KicadPad(
        number=sanitize_text(pad.number),
        type="thru_hole" if pad.is_through_hole else "smd",
        shape=pad.shape.value,
        layers=list(layers),
    )
    if pad.is_through_hole:
        result.drill = DrillDefinition(diameter=round_size(to_mm(pad.drill_radius * 2)))

    if pad.shape is PadShape.POLYGON:
        # Outline points are absolute; primitives are relative to the anchor
        anchor = CUSTOM_PAD_ANCHOR
        if pad.width > 0 and pad.height > 0:
            anchor = min(to_mm(pad.width), to_mm(pad.height), anchor)
        outline = [_point(component, ox, oy) for ox, oy in pad.points]
        result.position = _position(x, y)
        result.size = Position(X=round_size(anchor), Y=round_size(anchor))
        result.customPadOptions = PadOptions(clearance="outline", anchor="circle")
        result.customPadPrimitives = [GrPoly(
            coordinates=[_position(px - x, py - y) for px, py in outline],
            width=0, fill="yes",
        )]
        return result

    angle = _angle(pad.rotation)
    result.position = _position(x, y, round_pos(angle) if angle else None)
    result.size = Position(X=round_size(to_mm(pad.width)), Y=round_size(to_mm(pad.height)))
    if pad.shape is PadShape.ROUNDRECT:
        result.roundrectRatio = round_size(ROUNDRECT_RRATIO)
    return result


def _graphic_layer(layer: int) -> str | None:
    if layer in _COPPER_LAYERS:
        return None
    return LAYER_MAP.get(layer)


def arc_midpoint(arc: Arc) -> tuple[float, float]:
    """Point halfway along an SVG endpoint-form arc, in source units.

    Follows the SVG endpoint-to-center conversion; the radius is scaled up
    when it is too small to span the chord.
    """
    (x1, y1), (x2, y2) = arc.start, arc.end
    dx, dy = (x1 - x2) / 2, (y1 - y2) / 2
    chord_sq = dx * dx + dy * dy
    if chord_sq == 0:
        return x1, y1

    r = max(arc.radius, math.sqrt(chord_sq))
    sign = 1 if arc.large_arc != arc.sweep else -1
    coef = sign * math.sqrt(max(0.0, (r * r - chord_sq) / chord_sq))
    cx = coef * dy + (x1 + x2) / 2
    cy = -coef * dx + (y1 + y2) / 2

    theta1 = math.atan2(y1 - cy, x1 - cx)
    theta2 = math.atan2(y2 - cy, x2 - cx)
    delta = theta2 - theta1
    if arc.sweep and delta < 0:
        delta += 2 * math.pi
    elif not arc.sweep and delta > 0:
        delta -= 2 * math.pi
    mid = theta1 + delta / 2
    return cx + r * math.cos(mid), cy + r * math.sin(mid)


def _graphics(component: ParsedComponent) -> list:
    fp = component.footprint
    items = []

    for track in fp.tracks:
        layer = _graphic_layer(track.layer)
        if layer is None:
            continue
        points = [_point(component, x, y) for x, y in track.points]
        for (sx, sy), (ex, ey) in zip(points, points[1:]):
            items.append(FpLine(start=_position(sx, sy), end=_position(ex, ey), layer=layer,
                                width=round_size(to_mm(track.stroke_width))))

    for circle in fp.circles:
        layer = _graphic_layer(circle.layer)
        if layer is None:
            continue
        cx, cy = _point(component, circle.cx, circle.cy)
        items.append(FpCircle(center=_position(cx, cy),
                              end=_position(cx + to_mm(circle.radius), cy), layer=layer,
                              width=round_size(to_mm(circle.stroke_width)), fill="none"))

    for rect in fp.rects:
        layer = _graphic_layer(rect.layer)
        if layer is None:
            continue
        sx, sy = _point(component, rect.x, rect.y)
        ex, ey = _point(component, rect.x + rect.width, rect.y + rect.height)
        items.append(FpRect(start=_position(sx, sy), end=_position(ex, ey), layer=layer,
                            width=round_size(to_mm(rect.stroke_width)), fill="none"))

    for arc in fp.arcs:
        layer = _graphic_layer(arc.layer)
        if layer is None:
            continue
        items.append(FpArc(start=_position(*_point(component, *arc.start)),
                           mid=_position(*_point(component, *arc_midpoint(arc))),
                           end=_position(*_point(component, *arc.end)),
                           layer=layer, width=round_size(to_mm(arc.stroke_width))))
    return items


def _holes(component: ParsedComponent) -> list[KicadPad]:
    pads = []
    for hole in component.footprint.holes:
        x, y = _point(component, hole.x, hole.y)
        diameter = round_size(to_mm(hole.radius * 2))
        pads.append(KicadPad(number="", type="np_thru_hole", shape="circle",
                             position=_position(x, y), size=Position(X=diameter, Y=diameter),
                             drill=DrillDefinition(diameter=diameter), layers=list(THT_LAYERS)))
    return pads


def _text(kind: str, text: str, x: float, y: float, layer: str, size: float = 1,
          thickness: float = 0.15) -> FpText:
    return FpText(type=kind, text=sanitize_text(text), position=_position(x, y), layer=layer,
                  effects=Effects(font=Font(height=size, width=size, thickness=thickness)))


def build_footprint(component: ParsedComponent, library_name: str | None = None,
                    model_path: str | None = None, name: str | None = None) -> Footprint:
    """kiutils Footprint for `component`.

    With `library_name` the footprint id is qualified as "LIB:NAME". `name`
    replaces the default package-plus-catalog-id name.
    A component with no pads still builds; it simply has no courtyard.
    """
    info = component.info
    fp = component.footprint
    tags = info.category or fp.name
    bounds = courtyard_bounds(component)
    top, bottom = (bounds[1], bounds[3]) if bounds else (-1.0, 1.0)

    footprint = Footprint(
        libraryNickname=library_name,
        entryName=name or footprint_name(component),
        version=KICAD_FORMAT_VERSION,
        generator=GENERATOR,
        layer="F.Cu",
        tedit=FIXED_TEDIT,
        description=sanitize_text(info.description or info.name),
        tags=sanitize_text(tags) if tags else None,
    )
    footprint.attributes.type = fp.type.value
    if info.lcsc_id:
        footprint.properties["LCSC"] = info.lcsc_id
    if info.manufacturer:
        footprint.properties["Manufacturer"] = sanitize_text(info.manufacturer)

    footprint.graphicItems.append(_text("reference", "REF**", 0, top - 1, "F.SilkS"))
    footprint.graphicItems.append(_text("value", info.name, 0, bottom + 1, "F.Fab"))
    footprint.graphicItems.extend(_graphics(component))
    footprint.graphicItems.append(_text("user", "${REFERENCE}", 0, 0, "F.Fab",
                                        size=0.5, thickness=0.08))
    if bounds:
        min_x, min_y, max_x, max_y = bounds
        footprint.graphicItems.append(FpRect(
            start=_position(min_x, min_y), end=_position(max_x, max_y),
            layer="F.CrtYd", width=COURTYARD_STROKE, fill="none",
        ))

    footprint.pads = [_pad(component, pad) for pad in fp.pads] + _holes(component)
    if model_path:
        footprint.models.append(Model(path=model_path))
    return footprint


def serialize_footprint(component: ParsedComponent, library_name: str | None = None,
                        model_path: str | None = None, name: str | None = None) -> str:
    """Complete .kicad_mod text for `component`."""
    return build_footprint(component, library_name, model_path, name).to_sexpr()


def resolve_footprint(component: ParsedComponent, use_standard: bool = False,
                      model_path: str | None = None) -> FootprintResult:
    """Stock KiCad footprint reference when requested and matched, else generated text."""
    if use_standard:
        package = component.info.package or component.footprint.name
        reference = match_standard_footprint(package, component.info.prefix)
        if reference:
            return FootprintResult(kind="reference", name=reference.split(":", 1)[1],
                                   reference=reference)

    return FootprintResult(
        kind="generated",
        name=footprint_name(component),
        content=serialize_footprint(component, model_path=model_path),
    )
