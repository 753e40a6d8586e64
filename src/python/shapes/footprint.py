"""Decoders for PCB (footprint) shape records."""

import json
import re

from models import (
    Arc, Circle, Hole, Model3D, Pad, PadShape, Rect, SolidRegion, Text,
    Track, Unrecognized, Via,
)
from shapes.base import (
    ShapeDecodeError, field_at, integer, num, parse_points,
    require_fields, split_fields,
)

_NUMBER = r"(-?\d+(?:\.\d*)?(?:[eE][-+]?\d+)?|-?\.\d+)"
_SEP = r"[\s,]*"
_ARC_PATH = re.compile(
    r"M" + _SEP + _NUMBER + _SEP + _NUMBER + _SEP
    + r"A" + _SEP + _NUMBER + _SEP + _NUMBER + _SEP + _NUMBER + _SEP
    + r"([01])" + _SEP + r"([01])" + _SEP + _NUMBER + _SEP + _NUMBER
)


def decode_pad(raw: str) -> Pad:
    """Decode a `PAD` record.

    shape at 1, center at 2-3, size at 4-5, layer at 6, number at 8,
    hole radius at 9, polygon outline at 10, rotation at 11.
    """
    fields = split_fields(raw)
    require_fields(fields, 9, "PAD")

    shape = PadShape.from_source(fields[1])
    width, height = num(fields, 4), num(fields, 5)
    points = []
    if shape is PadShape.POLYGON:
        points = parse_points(field_at(fields, 10))
        if len(points) < 3:
            raise ShapeDecodeError("polygon pad needs at least three outline points")
    elif width <= 0 or height <= 0:
        raise ShapeDecodeError(f"pad size {width}x{height} is not positive")

    drill = num(fields, 9)
    return Pad(
        number=fields[8].strip(),
        shape=shape,
        x=num(fields, 2),
        y=num(fields, 3),
        width=width,
        height=height,
        layer=integer(fields, 6, default=1),
        drill_radius=drill if drill > 0 else None,
        points=points,
        rotation=num(fields, 11),
    )


def decode_track(raw: str) -> Track:
    fields = split_fields(raw)
    require_fields(fields, 5, "TRACK")
    points = parse_points(fields[4])
    if len(points) < 2:
        raise ShapeDecodeError("track needs at least two points")
    return Track(stroke_width=num(fields, 1), layer=integer(fields, 2), points=points)


def decode_hole(raw: str) -> Hole:
    fields = split_fields(raw)
    require_fields(fields, 4, "HOLE")
    radius = num(fields, 3)
    if radius <= 0:
        raise ShapeDecodeError("hole radius is not positive")
    return Hole(x=num(fields, 1), y=num(fields, 2), radius=radius)


def decode_circle(raw: str) -> Circle:
    fields = split_fields(raw)
    require_fields(fields, 6, "CIRCLE")
    radius = num(fields, 3)
    if radius <= 0:
        raise ShapeDecodeError("circle radius is not positive")
    return Circle(
        cx=num(fields, 1),
        cy=num(fields, 2),
        radius=radius,
        stroke_width=num(fields, 4),
        layer=integer(fields, 5),
    )


def decode_arc(raw: str) -> Arc:
    fields = split_fields(raw)
    require_fields(fields, 5, "ARC")
    match = _ARC_PATH.search(fields[4])
    if not match:
        raise ShapeDecodeError(f"unsupported arc path {fields[4]!r}")
    x1, y1, rx, ry, _rot, large, sweep, x2, y2 = match.groups()
    radius = max(abs(float(rx)), abs(float(ry)))
    if radius <= 0:
        raise ShapeDecodeError("arc radius is not positive")
    return Arc(
        stroke_width=num(fields, 1),
        layer=integer(fields, 2),
        start=(float(x1), float(y1)),
        end=(float(x2), float(y2)),
        radius=radius,
        large_arc=large == "1",
        sweep=sweep == "1",
    )


def decode_rect(raw: str) -> Rect:
    fields = split_fields(raw)
    require_fields(fields, 8, "RECT")
    width, height = num(fields, 3), num(fields, 4)
    if width <= 0 or height <= 0:
        raise ShapeDecodeError("rectangle has no area")
    return Rect(
        x=num(fields, 1),
        y=num(fields, 2),
        width=width,
        height=height,
        stroke_width=num(fields, 5),
        layer=integer(fields, 7),
    )


def decode_via(raw: str) -> Via:
    fields = split_fields(raw)
    require_fields(fields, 6, "VIA")
    return Via(
        x=num(fields, 1),
        y=num(fields, 2),
        diameter=num(fields, 3),
        drill_radius=num(fields, 5),
    )


def decode_text(raw: str) -> Text:
    fields = split_fields(raw)
    require_fields(fields, 11, "TEXT")
    return Text(
        kind=fields[1].strip(),
        x=num(fields, 2),
        y=num(fields, 3),
        stroke_width=num(fields, 4),
        rotation=num(fields, 5),
        layer=integer(fields, 7),
        font_size=num(fields, 9),
        text=fields[10],
        displayed=field_at(fields, 12, "none").strip().lower() != "none",
    )


def decode_solid_region(raw: str) -> SolidRegion:
    fields = split_fields(raw)
    require_fields(fields, 4, "SOLIDREGION")
    return SolidRegion(
        layer=integer(fields, 1),
        path=fields[3],
        kind=field_at(fields, 4).strip(),
    )


def decode_svg_node(raw: str) -> Model3D | Unrecognized:
    """Decode an `SVGNODE` record carrying a JSON payload.

    Only nodes whose attrs carry a uuid describe a 3D model; anything else
    is kept as an unrecognized entity.
    """
    _tag, _, payload = raw.partition("~")
    node = json.loads(payload)
    attrs = node.get("attrs") if isinstance(node, dict) else None
    if isinstance(attrs, dict) and attrs.get("uuid"):
        return Model3D(name=str(attrs.get("title") or attrs["uuid"]), uuid=str(attrs["uuid"]))
    return Unrecognized(tag="SVGNODE", raw=raw)
