"""Decoders for schematic (symbol) shape records."""

from models import Pin, PinType, SymbolEllipse, SymbolPolyline, SymbolRect
from shapes.base import (
    SUBRECORD_SEP, ShapeDecodeError, field_at, num, parse_points,
    require_fields, split_fields,
)


def decode_pin(raw: str) -> Pin:
    """Decode a `P` record.

    The record is a list of sub-records joined by "^^". The first holds the
    pin settings (type at 2, number at 3, position at 4-5, rotation at 6);
    the display name sits at field 4 of the fourth sub-record.
    """
    segments = raw.split(SUBRECORD_SEP)
    settings = split_fields(segments[0])
    require_fields(settings, 6, "P")

    number = settings[3].strip()
    if not number:
        raise ShapeDecodeError("pin has no number")

    name = ""
    if len(segments) > 3:
        name = field_at(split_fields(segments[3]), 4).strip()

    return Pin(
        number=number,
        name=name,
        electrical_type=PinType.from_code(settings[2]),
        x=num(settings, 4),
        y=num(settings, 5),
        rotation=num(settings, 6),
    )


def decode_rect(raw: str) -> SymbolRect:
    fields = split_fields(raw)
    require_fields(fields, 7, "R")
    width, height = num(fields, 5), num(fields, 6)
    if width <= 0 or height <= 0:
        raise ShapeDecodeError("symbol rectangle has no area")
    return SymbolRect(x=num(fields, 1), y=num(fields, 2), width=width, height=height)


def decode_ellipse(raw: str) -> SymbolEllipse:
    fields = split_fields(raw)
    require_fields(fields, 5, "E")
    rx, ry = num(fields, 3), num(fields, 4)
    if rx <= 0 or ry <= 0:
        raise ShapeDecodeError("ellipse has no radius")
    return SymbolEllipse(cx=num(fields, 1), cy=num(fields, 2), rx=rx, ry=ry)


def _decode_poly(raw: str, closed: bool) -> SymbolPolyline:
    fields = split_fields(raw)
    require_fields(fields, 2, fields[0])
    points = parse_points(fields[1])
    if len(points) < 2:
        raise ShapeDecodeError("polyline needs at least two points")
    return SymbolPolyline(points=points, closed=closed)


def decode_polyline(raw: str) -> SymbolPolyline:
    return _decode_poly(raw, closed=False)


def decode_polygon(raw: str) -> SymbolPolyline:
    return _decode_poly(raw, closed=True)
