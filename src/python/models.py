"""Data models for the LCSCBridge conversion pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PinType(Enum):
    UNSPECIFIED = "unspecified"
    INPUT = "input"
    OUTPUT = "output"
    BIDIRECTIONAL = "bidirectional"
    POWER_IN = "power_in"
    POWER_OUT = "power_out"
    OPEN_COLLECTOR = "open_collector"
    OPEN_EMITTER = "open_emitter"
    PASSIVE = "passive"
    NO_CONNECT = "no_connect"

    @classmethod
    def from_code(cls, code: str | None) -> "PinType":
        """Map an EasyEDA electrical type code ("0".."9") to a PinType.

        Unknown codes degrade to UNSPECIFIED.
        """
        return _PIN_TYPE_CODES.get((code or "").strip(), cls.UNSPECIFIED)


_PIN_TYPE_CODES = {
    "0": PinType.UNSPECIFIED,
    "1": PinType.INPUT,
    "2": PinType.OUTPUT,
    "3": PinType.BIDIRECTIONAL,
    "4": PinType.POWER_IN,
    "5": PinType.POWER_OUT,
    "6": PinType.OPEN_COLLECTOR,
    "7": PinType.OPEN_EMITTER,
    "8": PinType.PASSIVE,
    "9": PinType.NO_CONNECT,
}


class PadShape(Enum):
    RECT = "rect"
    CIRCLE = "circle"
    OVAL = "oval"
    ROUNDRECT = "roundrect"
    POLYGON = "custom"

    @classmethod
    def from_source(cls, shape: str | None) -> "PadShape":
        return _PAD_SHAPES.get((shape or "").strip().upper(), cls.RECT)


_PAD_SHAPES = {
    "RECT": PadShape.RECT,
    "ELLIPSE": PadShape.CIRCLE,
    "CIRCLE": PadShape.CIRCLE,
    "OVAL": PadShape.OVAL,
    "ROUNDRECT": PadShape.ROUNDRECT,
    "POLYGON": PadShape.POLYGON,
}


class FootprintType(Enum):
    SMD = "smd"
    THT = "through_hole"


class LibraryCategory(Enum):
    RESISTORS = "Resistors"
    CAPACITORS = "Capacitors"
    INDUCTORS = "Inductors"
    DIODES = "Diodes"
    TRANSISTORS = "Transistors"
    ICS = "ICs"
    CONNECTORS = "Connectors"
    MISC = "Misc"


@dataclass
class ComponentInfo:
    name: str
    prefix: str = "U"
    package: Optional[str] = None
    manufacturer: Optional[str] = None
    datasheet: Optional[str] = None
    datasheet_pdf: Optional[str] = None
    lcsc_id: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    attributes: dict[str, str] = field(default_factory=dict)


# ── Symbol entities (source units, relative to nothing until serialized) ────

@dataclass
class Pin:
    number: str
    name: str
    electrical_type: PinType
    x: float
    y: float
    rotation: float = 0.0


@dataclass
class SymbolRect:
    x: float
    y: float
    width: float
    height: float


@dataclass
class SymbolEllipse:
    cx: float
    cy: float
    rx: float
    ry: float


@dataclass
class SymbolPolyline:
    points: list[tuple[float, float]]
    closed: bool = False


# ── Footprint entities ──────────────────────────────────────────────────────

@dataclass
class Pad:
    number: str
    shape: PadShape
    x: float
    y: float
    width: float
    height: float
    layer: int = 1
    drill_radius: Optional[float] = None
    points: list[tuple[float, float]] = field(default_factory=list)
    rotation: float = 0.0

    @property
    def is_through_hole(self) -> bool:
        return self.drill_radius is not None and self.drill_radius > 0


@dataclass
class Track:
    stroke_width: float
    layer: int
    points: list[tuple[float, float]]


@dataclass
class Hole:
    x: float
    y: float
    radius: float


@dataclass
class Circle:
    cx: float
    cy: float
    radius: float
    stroke_width: float
    layer: int


@dataclass
class Arc:
    stroke_width: float
    layer: int
    start: tuple[float, float]
    end: tuple[float, float]
    radius: float
    large_arc: bool
    sweep: bool


@dataclass
class Rect:
    x: float
    y: float
    width: float
    height: float
    stroke_width: float
    layer: int


@dataclass
class Via:
    x: float
    y: float
    diameter: float
    drill_radius: float


@dataclass
class Text:
    kind: str
    x: float
    y: float
    stroke_width: float
    rotation: float
    layer: int
    font_size: float
    text: str
    displayed: bool


@dataclass
class SolidRegion:
    layer: int
    path: str
    kind: str = ""


@dataclass
class Model3D:
    name: str
    uuid: str


@dataclass
class Unrecognized:
    """A record whose tag has no decoder. Kept verbatim."""
    tag: str
    raw: str


@dataclass
class SkippedRecord:
    """A record whose decoder failed; it never reaches the serializers."""
    raw: str
    reason: str


# ── Aggregates ──────────────────────────────────────────────────────────────

@dataclass
class SymbolData:
    pins: list[Pin] = field(default_factory=list)
    graphics: list = field(default_factory=list)
    shapes: list[str] = field(default_factory=list)
    origin_x: float = 0.0
    origin_y: float = 0.0
    skipped: list[SkippedRecord] = field(default_factory=list)


@dataclass
class FootprintData:
    name: str = "Unknown"
    type: FootprintType = FootprintType.SMD
    pads: list[Pad] = field(default_factory=list)
    tracks: list[Track] = field(default_factory=list)
    holes: list[Hole] = field(default_factory=list)
    circles: list[Circle] = field(default_factory=list)
    arcs: list[Arc] = field(default_factory=list)
    rects: list[Rect] = field(default_factory=list)
    texts: list[Text] = field(default_factory=list)
    vias: list[Via] = field(default_factory=list)
    regions: list[SolidRegion] = field(default_factory=list)
    unrecognized: list[Unrecognized] = field(default_factory=list)
    origin_x: float = 0.0
    origin_y: float = 0.0
    skipped: list[SkippedRecord] = field(default_factory=list)


@dataclass
class ParsedComponent:
    """Canonical in-memory form of one catalog component."""
    info: ComponentInfo
    symbol: SymbolData = field(default_factory=SymbolData)
    footprint: FootprintData = field(default_factory=FootprintData)
    model3d: Optional[Model3D] = None

    @property
    def skipped_records(self) -> list[SkippedRecord]:
        return self.symbol.skipped + self.footprint.skipped


# ── Results ─────────────────────────────────────────────────────────────────

@dataclass
class FootprintResult:
    """Either a reference to a stock KiCad footprint or generated content."""
    kind: str  # "reference" or "generated"
    name: str
    reference: Optional[str] = None
    content: Optional[str] = None


@dataclass
class LibraryPaths:
    """Where accumulated libraries live (project-local or global)."""
    root: str
    symbols_dir: str
    footprint_dir: str
    models_dir: str
    project_dir: Optional[str] = None


@dataclass
class TableResult:
    path: str
    action: str  # "created", "appended", "exists"


@dataclass
class ValidationSummary:
    """Informational cross-check of symbol vs footprint. Never a gate."""
    pin_count: int
    pad_count: int
    pin_pad_count_match: bool
    has_power_pins: bool
    has_ground_pins: bool

    def to_dict(self) -> dict:
        return {
            "pin_count": self.pin_count,
            "pad_count": self.pad_count,
            "pin_pad_count_match": self.pin_pad_count_match,
            "has_power_pins": self.has_power_pins,
            "has_ground_pins": self.has_ground_pins,
        }


@dataclass
class ProcessingResult:
    """Result of installing a component through the full pipeline."""
    status: str  # "success", "error"
    lcsc_id: Optional[str] = None
    source: Optional[str] = None  # "lcsc", "easyeda_community"
    category: Optional[str] = None
    symbol_name: Optional[str] = None
    symbol_ref: Optional[str] = None
    symbol_action: Optional[str] = None
    footprint_ref: Optional[str] = None
    footprint_type: Optional[str] = None
    files: dict[str, str] = field(default_factory=dict)
    tables: dict[str, str] = field(default_factory=dict)
    validation: Optional[ValidationSummary] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "lcsc_id": self.lcsc_id,
            "source": self.source,
            "category": self.category,
            "symbol_name": self.symbol_name,
            "symbol_ref": self.symbol_ref,
            "symbol_action": self.symbol_action,
            "footprint_ref": self.footprint_ref,
            "footprint_type": self.footprint_type,
            "files": self.files,
            "tables": self.tables,
            "validation": self.validation.to_dict() if self.validation else None,
            "error": self.error,
            "warnings": self.warnings,
        }
