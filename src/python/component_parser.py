"""Assemble a ParsedComponent from an EasyEDA component payload."""

import logging

from easyeda_api import is_lcsc_id
from models import (
    Arc, Circle, ComponentInfo, FootprintData, FootprintType, Hole, Model3D,
    Pad, ParsedComponent, Pin, PinType, Rect, SolidRegion, SymbolData,
    SymbolEllipse, SymbolPolyline, SymbolRect, Text, Track, Unrecognized,
    ValidationSummary, Via,
)
from shapes import FOOTPRINT_DECODERS, SYMBOL_DECODERS, parse_records
from shapes.base import record_tag

logger = logging.getLogger(__name__)

_SKIPPED_BOM_KEYS = {"Manufacturer", "JLCPCB Part Class"}


def _float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _clean_prefix(prefix) -> str:
    text = str(prefix or "").strip().rstrip("?").strip()
    return text or "U"


def _bom_attributes(c_para: dict) -> dict[str, str]:
    """Collect BOM_* fields, dropping the ones carried elsewhere."""
    attributes = {}
    for key, value in c_para.items():
        if not key.startswith("BOM_") or not isinstance(value, str) or not value:
            continue
        clean_key = key[len("BOM_"):]
        if clean_key not in _SKIPPED_BOM_KEYS:
            attributes[clean_key] = value
    return attributes


def _parse_symbol(data_str: dict) -> SymbolData:
    head = data_str.get("head") or {}
    records = data_str.get("shape") or []
    parsed = parse_records(records, SYMBOL_DECODERS)
    return SymbolData(
        pins=parsed.of_type(Pin),
        graphics=[e for e in parsed.entities
                  if isinstance(e, (SymbolRect, SymbolEllipse, SymbolPolyline))],
        shapes=[r for r in records if isinstance(r, str) and record_tag(r) != "P"],
        origin_x=_float(head.get("x")),
        origin_y=_float(head.get("y")),
        skipped=parsed.skipped,
    )


def _parse_footprint(package_detail: dict, smt: bool) -> tuple[FootprintData, Model3D | None]:
    data_str = package_detail.get("dataStr") or {}
    head = data_str.get("head") or {}
    c_para = head.get("c_para") or {}
    title = package_detail.get("title") or ""
    parsed = parse_records(data_str.get("shape") or [], FOOTPRINT_DECODERS)

    models = parsed.of_type(Model3D)
    footprint = FootprintData(
        name=c_para.get("package") or title or "Unknown",
        type=FootprintType.SMD if smt and "-TH_" not in title else FootprintType.THT,
        pads=parsed.of_type(Pad),
        tracks=parsed.of_type(Track),
        holes=parsed.of_type(Hole),
        circles=parsed.of_type(Circle),
        arcs=parsed.of_type(Arc),
        rects=parsed.of_type(Rect),
        texts=parsed.of_type(Text),
        vias=parsed.of_type(Via),
        regions=parsed.of_type(SolidRegion),
        unrecognized=parsed.of_type(Unrecognized),
        origin_x=_float(head.get("x")),
        origin_y=_float(head.get("y")),
        skipped=parsed.skipped,
    )
    return footprint, (models[0] if models else None)


def parse_component(result: dict, component_id: str) -> ParsedComponent:
    """Build the canonical component from the upstream `result` object.

    `component_id` is the requested LCSC id or community uuid; only an LCSC
    id is used as the catalog id fallback.
    """
    data_str = result.get("dataStr") or {}
    c_para = (data_str.get("head") or {}).get("c_para") or {}
    package_detail = result.get("packageDetail") or {}
    fp_c_para = ((package_detail.get("dataStr") or {}).get("head") or {}).get("c_para") or {}
    lcsc = result.get("lcsc") or {}

    name = str(c_para.get("name") or "").strip() or component_id
    info = ComponentInfo(
        name=name,
        prefix=_clean_prefix(c_para.get("pre")),
        package=c_para.get("package") or fp_c_para.get("package"),
        manufacturer=c_para.get("BOM_Manufacturer") or c_para.get("Manufacturer"),
        datasheet=lcsc.get("url") or None,
        lcsc_id=lcsc.get("number") or (component_id if is_lcsc_id(component_id) else None),
        description=result.get("title") or name,
        category=result.get("category") or None,
        attributes=_bom_attributes(c_para),
    )

    symbol = _parse_symbol(data_str)
    footprint, model3d = _parse_footprint(package_detail, bool(result.get("SMT")))

    component = ParsedComponent(info=info, symbol=symbol, footprint=footprint, model3d=model3d)
    if component.skipped_records:
        logger.debug("%s: skipped %d malformed shape records",
                     component_id, len(component.skipped_records))
    return component


def validate_component(component: ParsedComponent) -> ValidationSummary:
    """Informational symbol/footprint cross-check; never blocks an install."""
    pins = component.symbol.pins
    pads = component.footprint.pads
    return ValidationSummary(
        pin_count=len(pins),
        pad_count=len(pads),
        pin_pad_count_match=len(pins) == len(pads),
        has_power_pins=any(p.electrical_type in (PinType.POWER_IN, PinType.POWER_OUT)
                           for p in pins),
        has_ground_pins=any("gnd" in p.name.lower() or "vss" in p.name.lower()
                            for p in pins),
    )


def merge_enrichment(component: ParsedComponent, details: dict | None) -> ParsedComponent:
    """Merge the secondary metadata lookup into `component.info`.

    `details` keys: datasheet_pdf, description, attributes. Missing or empty
    values leave the existing info untouched.
    """
    if not details:
        return component
    info = component.info
    if details.get("datasheet_pdf"):
        info.datasheet_pdf = details["datasheet_pdf"]
    description = details.get("description")
    if description and description not in (info.name, details.get("name")):
        info.description = description
    for key, value in (details.get("attributes") or {}).items():
        if value:
            info.attributes[str(key)] = str(value)
    return component
