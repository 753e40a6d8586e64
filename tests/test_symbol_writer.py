"""Tests for the KiCad symbol serializer."""

import pytest
from kiutils.symbol import SymbolLib

from component_parser import parse_component
from errors import LibraryFormatError
from models import ComponentInfo, ParsedComponent, Pin, PinType, SymbolData, SymbolEllipse
from symbol_writer import (
    append_to_library, body_bounds, map_pin_type, pin_orientation, sanitize_name,
    sanitize_pin_name, serialize_symbol, symbol_entry, symbol_exists_in_library,
    top_level_symbol_names,
)


@pytest.fixture
def resistor(resistor_result):
    return parse_component(resistor_result, "C25804")


class TestNames:
    def test_sanitize_name(self):
        assert sanitize_name("LM358 DR/T") == "LM358_DR_T"
        assert sanitize_name("AMS1117-3.3") == "AMS1117-3_3"

    def test_sanitize_pin_name(self):
        assert sanitize_pin_name("") == "~"
        assert sanitize_pin_name('A"B\\') == "A'B"

    def test_map_pin_type(self):
        assert map_pin_type(PinType.POWER_IN) == "power_in"
        assert map_pin_type("8") == "passive"
        assert map_pin_type("x") == "unspecified"
        assert map_pin_type(None) == "unspecified"


class TestGeometry:
    @pytest.mark.parametrize("x,y,expected", [
        (-5, 0, 0),
        (5, 0, 180),
        (0, 5, 270),
        (0, -5, 90),
        (1, 1, 270),
    ])
    def test_pin_orientation(self, x, y, expected):
        assert pin_orientation(x, y) == expected

    def test_body_bounds_grow_around_pins(self, resistor):
        assert body_bounds(resistor) == pytest.approx((-5.08, -2.54, 5.08, 2.54))

    def test_body_bounds_without_pins(self):
        component = ParsedComponent(info=ComponentInfo(name="Blank"))
        assert body_bounds(component) == pytest.approx((-2.54, -2.54, 2.54, 2.54))


class TestSerializeSymbol:
    def test_library_wrapper(self, resistor):
        text = serialize_symbol(resistor)
        assert text.startswith("(kicad_symbol_lib (version 20211014) (generator lcscbridge)\n")
        assert text.rstrip().endswith(")")
        assert text.count("(") == text.count(")")

    def test_pins(self, resistor):
        text = serialize_symbol(resistor)
        assert "(pin passive line (at -2.54 0 0) (length 2.54)" in text
        assert "(pin passive line (at 2.54 0 180) (length 2.54)" in text
        assert '(number "1"' in text
        assert '(name "~"' in text

    def test_units(self, resistor):
        text = serialize_symbol(resistor)
        assert '(symbol "10k_0_1"' in text
        assert '(symbol "10k_1_1"' in text

    def test_library_name_qualifies_top_level_id(self, resistor):
        text = serialize_symbol(resistor, library_name="LCSC-Resistors")
        assert '(symbol "LCSC-Resistors:10k"' in text
        assert '(symbol "10k_0_1"' in text

    def test_graphics_drawn_instead_of_synthesized_body(self, resistor):
        text = serialize_symbol(resistor)
        assert "(rectangle (start -1.27 0.508) (end 1.27 -0.508)" in text
        assert "(fill (type background))" not in text

    def test_synthesized_body_without_graphics(self):
        component = ParsedComponent(info=ComponentInfo(name="Blank"))
        text = serialize_symbol(component)
        assert "(rectangle (start -2.54 2.54) (end 2.54 -2.54)" in text
        assert "(fill (type background))" in text

    def test_properties(self, resistor):
        text = serialize_symbol(resistor, footprint_ref="LCSC:R0603_C25804")
        assert '(property "Reference" "R"' in text
        assert '(property "Value" "10k"' in text
        assert '(property "Footprint" "LCSC:R0603_C25804"' in text
        assert '(property "Datasheet" "https://www.lcsc.com/datasheet/C25804.pdf"' in text
        assert '(property "Product Page" "https://lcsc.com/product-detail/C25804.html"' in text
        assert '(property "LCSC" "C25804"' in text
        assert '(property "Supplier Part" "C25804"' in text

    def test_datasheet_pdf_preferred(self, resistor):
        resistor.info.datasheet_pdf = "https://example.com/ds.pdf"
        assert '(property "Datasheet" "https://example.com/ds.pdf"' in serialize_symbol(resistor)

    def test_datasheet_without_catalog_id(self):
        component = ParsedComponent(info=ComponentInfo(name="Blank"))
        text = serialize_symbol(component)
        assert '(property "Datasheet" "~"' in text
        assert "Product Page" not in text

    def test_description_falls_back_to_name(self):
        component = ParsedComponent(info=ComponentInfo(name="Blank"))
        assert '(property "Description" "Blank"' in serialize_symbol(component)

    def test_quotes_escaped(self, resistor):
        resistor.info.description = 'Resistor 1/4" lead'
        assert r'"Resistor 1/4\" lead"' in serialize_symbol(resistor)

    def test_ellipse_becomes_polyline(self):
        component = ParsedComponent(
            info=ComponentInfo(name="E"),
            symbol=SymbolData(graphics=[SymbolEllipse(cx=0, cy=0, rx=2, ry=3)]),
        )
        text = serialize_symbol(component)
        assert "(polyline" in text
        assert "(circle" not in text

    def test_round_ellipse_is_circle(self):
        component = ParsedComponent(
            info=ComponentInfo(name="E"),
            symbol=SymbolData(graphics=[SymbolEllipse(cx=0, cy=0, rx=2, ry=2)]),
        )
        assert "(circle (center 0 0) (radius 0.508)" in serialize_symbol(component)

    def test_deterministic(self, resistor_result):
        a = serialize_symbol(parse_component(resistor_result, "C25804"))
        b = serialize_symbol(parse_component(resistor_result, "C25804"))
        assert a == b

    def test_origin_translation_invariance(self, payload_factory):
        a = serialize_symbol(parse_component(payload_factory(), "C25804"))
        b = serialize_symbol(parse_component(payload_factory(dx=1000, dy=-500), "C25804"))
        assert a == b

    def test_loads_with_kiutils(self, resistor, tmp_path):
        path = tmp_path / "test.kicad_sym"
        path.write_text(serialize_symbol(resistor, footprint_ref="LCSC:R0603_C25804"))
        lib = SymbolLib.from_file(str(path))
        assert len(lib.symbols) == 1
        sym = lib.symbols[0]
        assert sym.entryName == "10k"
        props = {p.key: p.value for p in sym.properties}
        assert props["LCSC"] == "C25804"
        assert props["Footprint"] == "LCSC:R0603_C25804"
        pins = [pin for unit in sym.units for pin in unit.pins]
        assert sorted(pin.number for pin in pins) == ["1", "2"]

    def test_pin_names_survive_kiutils(self, ic_result, tmp_path):
        path = tmp_path / "ic.kicad_sym"
        path.write_text(serialize_symbol(parse_component(ic_result, "C6186")))
        sym = SymbolLib.from_file(str(path)).symbols[0]
        pins = {pin.number: pin for unit in sym.units for pin in unit.pins}
        assert {n: p.name for n, p in pins.items()} == {
            "1": "GND", "2": "VOUT", "3": "VIN", "4": "TAB",
        }
        assert pins["1"].electricalType == "power_in"
        assert pins["2"].electricalType == "power_out"

    def test_units_and_visibility_survive_kiutils(self, resistor, tmp_path):
        path = tmp_path / "r.kicad_sym"
        path.write_text(serialize_symbol(resistor))
        sym = SymbolLib.from_file(str(path)).symbols[0]
        assert [unit.libId for unit in sym.units] == ["10k_0_1", "10k_1_1"]
        assert len(sym.units[0].graphicItems) == 1
        assert sym.units[1].graphicItems == []
        hidden = {p.key: p.effects.hide for p in sym.properties}
        assert hidden["Reference"] is False
        assert hidden["Value"] is False
        assert hidden["Datasheet"] is True
        assert hidden["LCSC"] is True
        assert sorted(p.id for p in sym.properties) == list(range(len(sym.properties)))


class TestLibraryText:
    def test_exists_bare_and_qualified(self, resistor):
        bare = serialize_symbol(resistor)
        qualified = serialize_symbol(resistor, library_name="LCSC-Resistors")
        assert symbol_exists_in_library(bare, "10k")
        assert symbol_exists_in_library(qualified, "10k")
        assert not symbol_exists_in_library(bare, "10")
        assert not symbol_exists_in_library(bare, "10k2")

    def test_append(self, resistor):
        other = ParsedComponent(
            info=ComponentInfo(name="22k"),
            symbol=SymbolData(pins=[Pin("1", "", PinType.PASSIVE, -10, 0)]),
        )
        text = append_to_library(serialize_symbol(resistor), symbol_entry(other))
        assert symbol_exists_in_library(text, "10k")
        assert symbol_exists_in_library(text, "22k")
        assert text.count("(") == text.count(")")

    def test_append_to_truncated_library(self, resistor):
        truncated = '(kicad_symbol_lib (version 20231120) (symbol "10k"'
        with pytest.raises(LibraryFormatError):
            append_to_library(truncated, symbol_entry(resistor))

    def test_unit_ids_are_not_symbols(self, resistor):
        text = serialize_symbol(resistor)
        assert not symbol_exists_in_library(text, "10k_0_1")
        assert not symbol_exists_in_library(text, "10k_1_1")

    def test_top_level_names(self, resistor, ic_result):
        text = append_to_library(serialize_symbol(resistor, library_name="LCSC-Misc"),
                                 symbol_entry(parse_component(ic_result, "C6186")))
        assert top_level_symbol_names(text) == ["10k", "AMS1117-3_3"]

    def test_names_in_truncated_text(self):
        truncated = '(kicad_symbol_lib (version 20211014)\n  (symbol "22k" (in_bom yes)\n    (symbol "22k_0_1"'
        assert top_level_symbol_names(truncated) == ["22k"]

    def test_quoted_parentheses_do_not_shift_depth(self):
        text = ('(kicad_symbol_lib (version 20211014)\n'
                '  (symbol "A" (property "Description" "(x))) (symbol \\"B\\"")\n'
                '    (symbol "A_1_1"))\n'
                '  (symbol "C")\n)\n')
        assert top_level_symbol_names(text) == ["A", "C"]
