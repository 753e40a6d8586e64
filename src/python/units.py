"""Coordinate normalization from EasyEDA source units to millimetres."""

# EasyEDA drawings use 10 mil units.
EE_TO_MM = 0.254

POSITION_PRECISION = 3
SIZE_PRECISION = 4


def to_mm(length: float) -> float:
    """Convert a length (size, radius, stroke) to millimetres."""
    return length * EE_TO_MM


def normalize(value: float, origin: float, axis: str, flip_y: bool = True) -> float:
    """Translate `value` relative to `origin` and convert to millimetres.

    The source vertical axis grows downward, so "y" is negated for
    schematic output. KiCad boards also grow downward; footprint output
    passes flip_y=False.
    """
    if axis == "x":
        return (value - origin) * EE_TO_MM
    if axis == "y":
        delta = (value - origin) * EE_TO_MM
        return -delta if flip_y else delta
    raise ValueError(f"Unknown axis: {axis!r}")


def normalize_point(x: float, y: float, origin_x: float, origin_y: float,
                    flip_y: bool = True) -> tuple[float, float]:
    return normalize(x, origin_x, "x"), normalize(y, origin_y, "y", flip_y)


def _fmt(value: float, places: int) -> str:
    text = f"{round(value, places):.{places}f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def fmt_pos(value: float) -> str:
    return _fmt(value, POSITION_PRECISION)


def fmt_size(value: float) -> str:
    return _fmt(value, SIZE_PRECISION)


def _number(text: str) -> int | float:
    # kiutils prints values with str(); integral values print without ".0"
    return float(text) if "." in text else int(text)


def round_pos(value: float) -> int | float:
    """Position value rounded for emission, e.g. 5.0 -> 5 and -0.0001 -> 0."""
    return _number(fmt_pos(value))


def round_size(value: float) -> int | float:
    return _number(fmt_size(value))
