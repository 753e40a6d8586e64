"""Tests for the library injector module."""

import os
import pytest

from component_parser import parse_component
from errors import LibraryFormatError
from library_injector import (
    accumulate_symbol, add_library_to_table, ensure_fp_lib_table, footprint_filename,
    ensure_library_dirs, ensure_sym_lib_table, get_default_library_root,
    global_library_paths, library_table_has_entry, list_library_symbols,
    project_library_paths, table_uri, write_3d_model, write_footprint,
)
from models import ComponentInfo, ParsedComponent


@pytest.fixture
def resistor(resistor_result):
    return parse_component(resistor_result, "C25804")


class TestLibraryPaths:
    def test_project_paths(self, tmp_project):
        paths = project_library_paths(str(tmp_project))
        assert paths.project_dir == str(tmp_project)
        assert paths.symbols_dir == os.path.join(str(tmp_project), "libraries", "symbols")
        assert paths.footprint_dir.endswith(os.path.join("footprints", "LCSC.pretty"))
        assert paths.models_dir.endswith(os.path.join("3dmodels", "LCSC.3dshapes"))

    def test_community_project_paths(self, tmp_project):
        paths = project_library_paths(str(tmp_project), "EasyEDA")
        assert paths.symbols_dir == os.path.join(str(tmp_project), "libraries", "symbols")
        assert paths.footprint_dir.endswith(os.path.join("footprints", "EasyEDA.pretty"))
        assert paths.models_dir.endswith(os.path.join("3dmodels", "EasyEDA.3dshapes"))

    def test_global_paths(self, tmp_path):
        paths = global_library_paths(str(tmp_path / "root"))
        assert paths.project_dir is None
        assert paths.symbols_dir == os.path.join(str(tmp_path / "root"), "symbols")

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LCSCBRIDGE_LIBRARY_ROOT", str(tmp_path / "custom"))
        assert get_default_library_root() == str(tmp_path / "custom")

    def test_default_root_is_namespaced(self, monkeypatch):
        monkeypatch.delenv("LCSCBRIDGE_LIBRARY_ROOT", raising=False)
        assert os.path.basename(get_default_library_root()) == "lcscbridge"


class TestEnsureLibraryDirs:
    def test_creates_dirs(self, tmp_path):
        paths = global_library_paths(str(tmp_path / "lcscbridge"))
        ensure_library_dirs(paths)
        assert os.path.isdir(paths.symbols_dir)
        assert os.path.isdir(paths.footprint_dir)
        assert os.path.isdir(paths.models_dir)

    def test_idempotent(self, tmp_path):
        paths = global_library_paths(str(tmp_path / "lcscbridge"))
        ensure_library_dirs(paths)
        ensure_library_dirs(paths)
        assert os.path.isdir(paths.symbols_dir)


class TestAccumulateSymbol:
    def test_created_then_exists(self, tmp_path, resistor):
        lib_path = str(tmp_path / "LCSC-Resistors.kicad_sym")

        assert accumulate_symbol(lib_path, resistor) == ("created", "10k")
        first = open(lib_path).read()

        assert accumulate_symbol(lib_path, resistor) == ("exists", "10k")
        assert open(lib_path).read() == first

    def test_appends_new_symbol(self, tmp_path, resistor, payload_factory):
        lib_path = str(tmp_path / "LCSC-Resistors.kicad_sym")
        accumulate_symbol(lib_path, resistor)

        other = parse_component(payload_factory(lcsc_number="C25744"), "C25744")
        other.info.name = "10k 0402"
        assert accumulate_symbol(lib_path, other) == ("appended", "10k_0402")

        content = open(lib_path).read()
        assert content.count("(kicad_symbol_lib") == 1
        assert '(symbol "10k"' in content
        assert '(symbol "10k_0402"' in content

    def test_footprint_ref_recorded(self, tmp_path, resistor):
        lib_path = str(tmp_path / "LCSC-Resistors.kicad_sym")
        accumulate_symbol(lib_path, resistor, footprint_ref="LCSC:R0603_C25804")
        assert '(property "Footprint" "LCSC:R0603_C25804"' in open(lib_path).read()

    def test_corrupt_library(self, tmp_path, resistor):
        lib_path = tmp_path / "LCSC-Resistors.kicad_sym"
        lib_path.write_text('(kicad_symbol_lib (version 20231120)\n  (symbol "22k"')
        with pytest.raises(LibraryFormatError):
            accumulate_symbol(str(lib_path), resistor)

    def test_unit_name_is_not_an_existing_symbol(self, tmp_path):
        lib_path = str(tmp_path / "LCSC-Misc.kicad_sym")
        accumulate_symbol(lib_path, ParsedComponent(info=ComponentInfo(name="X")))

        assert '(symbol "X_1_1"' in open(lib_path).read()
        unit_named = ParsedComponent(info=ComponentInfo(name="X_1_1"))
        assert accumulate_symbol(lib_path, unit_named) == ("appended", "X_1_1")
        assert open(lib_path).read().count('(symbol "X_1_1"') == 2

    def test_list_library_symbols(self, tmp_path, resistor, ic_result):
        lib_path = str(tmp_path / "LCSC-Misc.kicad_sym")
        accumulate_symbol(lib_path, resistor, footprint_ref="LCSC:R0603_C25804")
        accumulate_symbol(lib_path, parse_component(ic_result, "C6186"))

        symbols = list_library_symbols(lib_path)
        assert [s["name"] for s in symbols] == ["10k", "AMS1117-3_3"]
        assert symbols[0]["lcsc_id"] == "C25804"
        assert symbols[0]["footprint"] == "LCSC:R0603_C25804"
        assert symbols[1]["reference"] == "U"

    def test_list_missing_library(self, tmp_path):
        assert list_library_symbols(str(tmp_path / "missing.kicad_sym")) == []


class TestFootprintFiles:
    def test_footprint_filename(self, resistor):
        assert footprint_filename(resistor) == "R0603_C25804.kicad_mod"

    def test_write_footprint(self, tmp_path):
        path = write_footprint(str(tmp_path / "LCSC.pretty"), "R0603_C25804", "(footprint)\n")
        assert path.endswith("R0603_C25804.kicad_mod")
        assert open(path).read() == "(footprint)\n"

    def test_overwrites(self, tmp_path):
        write_footprint(str(tmp_path), "X", "(footprint a)\n")
        path = write_footprint(str(tmp_path), "X.kicad_mod", "(footprint b)\n")
        assert open(path).read() == "(footprint b)\n"

    def test_write_3d_model(self, tmp_path):
        path = write_3d_model(str(tmp_path / "LCSC.3dshapes"), "C25804", b"ISO-10303-21;")
        assert os.path.basename(path) == "C25804.step"
        assert open(path, "rb").read() == b"ISO-10303-21;"


class TestTableUri:
    def test_inside_project(self, tmp_project):
        path = os.path.join(str(tmp_project), "libraries", "symbols", "LCSC-ICs.kicad_sym")
        assert table_uri(path, str(tmp_project)) == "${KIPRJMOD}/libraries/symbols/LCSC-ICs.kicad_sym"

    def test_outside_project(self, tmp_path, tmp_project):
        path = str(tmp_path / "elsewhere" / "LCSC-ICs.kicad_sym")
        assert table_uri(path, str(tmp_project)) == path.replace(os.sep, "/")

    def test_global(self, tmp_path):
        path = str(tmp_path / "LCSC-ICs.kicad_sym")
        assert table_uri(path) == path.replace(os.sep, "/")


class TestAddLibraryToTable:
    def test_new_table(self):
        content = add_library_to_table("", "LCSC-ICs", "/x.kicad_sym", "sym", "d")
        assert content.startswith("(sym_lib_table\n  (version 7)\n")
        assert '(lib (name "LCSC-ICs")(type "KiCad")(uri "/x.kicad_sym")(options "")(descr "d"))' in content

    def test_missing_closing_paren(self):
        with pytest.raises(LibraryFormatError):
            add_library_to_table('(fp_lib_table\n  (lib (name "x")(uri "/x', "LCSC", "/x", "fp")

    def test_has_entry(self):
        content = add_library_to_table("", "LCSC-ICs", "/x.kicad_sym", "sym")
        assert library_table_has_entry(content, "LCSC-ICs")
        assert not library_table_has_entry(content, "LCSC-IC")


class TestSymLibTable:
    def test_creates_new_table(self, tmp_path):
        config_dir = str(tmp_path / "config")
        lib_path = str(tmp_path / "lib" / "LCSC-ICs.kicad_sym")

        result = ensure_sym_lib_table(config_dir, "LCSC-ICs", lib_path)

        table_path = os.path.join(config_dir, "sym-lib-table")
        assert result.action == "created"
        assert result.path == table_path
        content = open(table_path).read()
        assert '(name "LCSC-ICs")' in content
        assert '(type "KiCad")' in content

    def test_appends_to_existing(self, tmp_path):
        config_dir = str(tmp_path / "config")
        os.makedirs(config_dir)

        # Create pre-existing table
        table_path = os.path.join(config_dir, "sym-lib-table")
        with open(table_path, 'w') as f:
            f.write('(sym_lib_table\n  (lib (name "other")(type "KiCad")(uri "/other.kicad_sym")(options "")(descr ""))\n)\n')

        result = ensure_sym_lib_table(config_dir, "LCSC-ICs", "/lib/LCSC-ICs.kicad_sym")

        assert result.action == "appended"
        content = open(table_path).read()
        assert '(name "other")' in content
        assert '(name "LCSC-ICs")' in content
        assert content.rstrip().endswith(")")

    def test_idempotent(self, tmp_path):
        config_dir = str(tmp_path / "config")

        ensure_sym_lib_table(config_dir, "LCSC-ICs", "/lib/LCSC-ICs.kicad_sym")
        result = ensure_sym_lib_table(config_dir, "LCSC-ICs", "/lib/LCSC-ICs.kicad_sym")

        assert result.action == "exists"
        content = open(os.path.join(config_dir, "sym-lib-table")).read()
        assert content.count('(name "LCSC-ICs")') == 1

    def test_project_relative_uri(self, tmp_project):
        lib_path = os.path.join(str(tmp_project), "libraries", "symbols", "LCSC-ICs.kicad_sym")
        ensure_sym_lib_table(str(tmp_project), "LCSC-ICs", lib_path, str(tmp_project))
        content = open(os.path.join(str(tmp_project), "sym-lib-table")).read()
        assert '(uri "${KIPRJMOD}/libraries/symbols/LCSC-ICs.kicad_sym")' in content

    def test_description(self, tmp_path):
        config_dir = str(tmp_path / "config")
        ensure_sym_lib_table(config_dir, "LCSC-ICs", "/lib/LCSC-ICs.kicad_sym")
        ensure_sym_lib_table(config_dir, "EasyEDA", "/lib/EasyEDA.kicad_sym",
                             descr="EasyEDA Community Component Library")
        content = open(os.path.join(config_dir, "sym-lib-table")).read()
        assert '(descr "LCSC LCSC-ICs symbols")' in content
        assert '(descr "EasyEDA Community Component Library")' in content


class TestFpLibTable:
    def test_creates_new_table(self, tmp_path):
        config_dir = str(tmp_path / "config")
        fp_dir = str(tmp_path / "lib" / "LCSC.pretty")

        result = ensure_fp_lib_table(config_dir, "LCSC", fp_dir)

        table_path = os.path.join(config_dir, "fp-lib-table")
        assert result.action == "created"
        content = open(table_path).read()
        assert content.startswith("(fp_lib_table")
        assert '(name "LCSC")' in content
        assert 'LCSC.pretty' in content

    def test_idempotent(self, tmp_path):
        config_dir = str(tmp_path / "config")
        ensure_fp_lib_table(config_dir, "LCSC", "/lib/LCSC.pretty")
        assert ensure_fp_lib_table(config_dir, "LCSC", "/lib/LCSC.pretty").action == "exists"


class TestEmptyComponent:
    def test_accumulates_symbol_without_pins(self, tmp_path):
        lib_path = str(tmp_path / "LCSC-Misc.kicad_sym")
        component = ParsedComponent(info=ComponentInfo(name="Blank"))
        assert accumulate_symbol(lib_path, component) == ("created", "Blank")
        assert list_library_symbols(lib_path)[0]["name"] == "Blank"
