"""Field helpers shared by the symbol and footprint shape decoders."""

import math

FIELD_SEP = "~"
SUBRECORD_SEP = "^^"


class ShapeDecodeError(ValueError):
    """Raised by a decoder when a record cannot produce an entity."""


def split_fields(raw: str) -> list[str]:
    return raw.split(FIELD_SEP)


def record_tag(raw: str) -> str:
    return raw.split(FIELD_SEP, 1)[0].strip()


def field_at(fields: list[str], index: int, default: str = "") -> str:
    if index < len(fields):
        return fields[index]
    return default


def num(fields: list[str], index: int) -> float:
    """Numeric field at `index`. Missing, non-numeric and non-finite values read as 0."""
    try:
        value = float(field_at(fields, index).strip())
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def integer(fields: list[str], index: int, default: int = 0) -> int:
    text = field_at(fields, index).strip()
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return default


def parse_points(text: str) -> list[tuple[float, float]]:
    """Parse a flat "x1 y1 x2 y2 ..." list (spaces or commas) into coordinate pairs.

    A trailing odd value is ignored. Non-numeric values read as 0.
    """
    values = []
    for token in text.replace(",", " ").split():
        try:
            value = float(token)
        except ValueError:
            value = 0.0
        values.append(value if math.isfinite(value) else 0.0)
    return [(values[i], values[i + 1]) for i in range(0, len(values) - 1, 2)]


def require_fields(fields: list[str], count: int, tag: str):
    if len(fields) < count:
        raise ShapeDecodeError(
            f"{tag} record has {len(fields)} fields, expected at least {count}"
        )
