"""Shape decoders — each turns one raw EasyEDA record into a typed entity."""

import logging
from dataclasses import dataclass, field
from typing import Callable

from models import SkippedRecord, Unrecognized
from shapes import footprint, symbol
from shapes.base import record_tag

logger = logging.getLogger(__name__)

Decoder = Callable[[str], object]

SYMBOL_DECODERS: dict[str, Decoder] = {
    "P": symbol.decode_pin,
    "R": symbol.decode_rect,
    "E": symbol.decode_ellipse,
    "PL": symbol.decode_polyline,
    "PG": symbol.decode_polygon,
}

FOOTPRINT_DECODERS: dict[str, Decoder] = {
    "PAD": footprint.decode_pad,
    "TRACK": footprint.decode_track,
    "HOLE": footprint.decode_hole,
    "CIRCLE": footprint.decode_circle,
    "ARC": footprint.decode_arc,
    "RECT": footprint.decode_rect,
    "VIA": footprint.decode_via,
    "TEXT": footprint.decode_text,
    "SOLIDREGION": footprint.decode_solid_region,
    "SVGNODE": footprint.decode_svg_node,
}


@dataclass
class ShapeParseResult:
    entities: list = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)

    def of_type(self, cls) -> list:
        return [e for e in self.entities if isinstance(e, cls)]


def parse_records(records, decoders: dict[str, Decoder]) -> ShapeParseResult:
    """Decode every record with the decoder registered for its tag.

    A record whose decoder fails is recorded as skipped and parsing continues.
    Records with an unknown tag become `Unrecognized` entities.
    """
    result = ShapeParseResult()
    for raw in records or []:
        if not isinstance(raw, str) or not raw.strip():
            continue
        tag = record_tag(raw)
        decoder = decoders.get(tag)
        if decoder is None:
            logger.debug("No decoder for %s record", tag)
            result.entities.append(Unrecognized(tag=tag, raw=raw))
            continue
        try:
            result.entities.append(decoder(raw))
        except (ValueError, IndexError, TypeError, KeyError) as e:
            logger.debug("Skipping %s record: %s", tag, e)
            result.skipped.append(SkippedRecord(raw=raw, reason=f"{tag}: {e}"))
    return result

