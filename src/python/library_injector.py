"""Library injector — accumulates symbols and registers libraries in KiCad lib-tables."""

import logging
import os
import re
import sys

from kiutils.symbol import SymbolLib

from category_router import LIBRARY_PREFIX, footprint_dir_name, models_dir_name
from errors import LibraryFormatError
from footprint_writer import footprint_name
from models import LibraryPaths, ParsedComponent, TableResult
from symbol_writer import (
    append_to_library, serialize_symbol, symbol_entry, symbol_exists_in_library,
    symbol_name,
)

logger = logging.getLogger(__name__)

LIBRARY_ROOT_ENV = "LCSCBRIDGE_LIBRARY_ROOT"
NAMESPACE = "lcscbridge"
LIB_TABLE_VERSION = 7


def get_kicad_config_dir(version: str = "9.0") -> str:
    """Get the KiCad configuration directory for the given version."""
    if sys.platform == "darwin":
        base = os.path.expanduser("~/Library/Preferences/kicad")
    elif sys.platform == "win32":
        base = os.path.join(os.environ.get("APPDATA", ""), "kicad")
    else:  # Linux
        base = os.path.expanduser("~/.config/kicad")
    return os.path.join(base, version)


def get_default_library_root(version: str = "9.0") -> str:
    """Global library root: $LCSCBRIDGE_LIBRARY_ROOT or KiCad's 3rd-party directory."""
    override = os.environ.get(LIBRARY_ROOT_ENV)
    if override:
        return os.path.expanduser(override)
    if sys.platform.startswith("linux"):
        base = os.path.expanduser(f"~/.local/share/kicad/{version}/3rdparty")
    else:
        base = os.path.expanduser(f"~/Documents/KiCad/{version}/3rdparty")
    return os.path.join(base, NAMESPACE)


def global_library_paths(root: str | None = None) -> LibraryPaths:
    root = root or get_default_library_root()
    return LibraryPaths(
        root=root,
        symbols_dir=os.path.join(root, "symbols"),
        footprint_dir=os.path.join(root, "footprints", footprint_dir_name()),
        models_dir=os.path.join(root, "3dmodels", models_dir_name()),
    )


def project_library_paths(project_dir: str, library: str = LIBRARY_PREFIX) -> LibraryPaths:
    """Project-local layout under <project>/libraries.

    `library` names the footprint and 3D model directories; community
    components use COMMUNITY_LIBRARY.
    """
    project_dir = os.path.abspath(project_dir)
    root = os.path.join(project_dir, "libraries")
    return LibraryPaths(
        root=root,
        symbols_dir=os.path.join(root, "symbols"),
        footprint_dir=os.path.join(root, "footprints", footprint_dir_name(library)),
        models_dir=os.path.join(root, "3dmodels", models_dir_name(library)),
        project_dir=project_dir,
    )


def ensure_library_dirs(paths: LibraryPaths) -> None:
    """Create the library directory structure if it doesn't exist."""
    os.makedirs(paths.symbols_dir, exist_ok=True)
    os.makedirs(paths.footprint_dir, exist_ok=True)
    os.makedirs(paths.models_dir, exist_ok=True)


def _read_text(path: str) -> str:
    """Read a text file, or return an empty string if missing."""
    if os.path.exists(path):
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    return ""


def _write_text(path: str, content: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)


# ── Symbol accumulation ─────────────────────────────────────────────────────

def accumulate_symbol(lib_path: str, component: ParsedComponent,
                      footprint_ref: str | None = None) -> tuple[str, str]:
    """Add `component` to the accumulating library at `lib_path`.

    Returns (action, symbol name) where action is "created" (file was
    absent), "appended" (name not found in the file) or "exists" (file left
    untouched). Callers must serialize writes to one library file.
    """
    name = symbol_name(component)

    if not os.path.exists(lib_path):
        _write_text(lib_path, serialize_symbol(component, footprint_ref=footprint_ref))
        logger.info("Created %s with %s", lib_path, name)
        return "created", name

    content = _read_text(lib_path)
    if symbol_exists_in_library(content, name):
        logger.debug("%s already in %s", name, lib_path)
        return "exists", name

    _write_text(lib_path, append_to_library(content, symbol_entry(component, footprint_ref)))
    logger.info("Appended %s to %s", name, lib_path)
    return "appended", name


def list_library_symbols(lib_path: str) -> list[dict]:
    """Read an accumulated library back and summarize each symbol."""
    if not os.path.exists(lib_path):
        return []
    lib = SymbolLib.from_file(lib_path)
    symbols = []
    for sym in lib.symbols:
        props = {p.key: p.value for p in sym.properties}
        symbols.append({
            "name": sym.entryName,
            "reference": props.get("Reference"),
            "lcsc_id": props.get("LCSC"),
            "footprint": props.get("Footprint"),
            "description": props.get("Description"),
        })
    return symbols


# ── Footprints and 3D models ────────────────────────────────────────────────

def footprint_filename(component: ParsedComponent) -> str:
    return f"{footprint_name(component)}.kicad_mod"


def write_footprint(footprint_dir: str, name: str, content: str) -> str:
    """Write one footprint file; footprints are never accumulated into a shared file."""
    filename = name if name.endswith(".kicad_mod") else f"{name}.kicad_mod"
    path = os.path.join(footprint_dir, filename)
    _write_text(path, content)
    return path


def write_3d_model(models_dir: str, stem: str, data: bytes) -> str:
    os.makedirs(models_dir, exist_ok=True)
    path = os.path.join(models_dir, f"{stem}.step")
    with open(path, 'wb') as f:
        f.write(data)
    return path


def model_reference(path: str, paths: LibraryPaths) -> str:
    """Path a footprint should use for its 3D model."""
    return table_uri(path, paths.project_dir)


# ── Library tables ──────────────────────────────────────────────────────────

def library_table_has_entry(content: str, lib_name: str) -> bool:
    """Check if a lib-table already contains an entry for the given library."""
    return re.search(rf'\(name\s+"{re.escape(lib_name)}"\)', content) is not None


def _table_entry(lib_name: str, uri: str, descr: str) -> str:
    return f'  (lib (name "{lib_name}")(type "KiCad")(uri "{uri}")(options "")(descr "{descr}"))\n'


def add_library_to_table(content: str, lib_name: str, uri: str, kind: str,
                         descr: str = "") -> str:
    """Return table text with an entry for `lib_name` added.

    `kind` is "sym" or "fp". Empty content produces a new table.
    """
    entry = _table_entry(lib_name, uri, descr)
    if not content.strip():
        return f"({kind}_lib_table\n  (version {LIB_TABLE_VERSION})\n{entry})\n"

    content = content.rstrip()
    if not content.endswith(')'):
        raise LibraryFormatError(f"{kind}-lib-table is missing its closing parenthesis")
    body = content[:-1]
    if not body.endswith("\n"):
        body += "\n"
    return body + entry + ")\n"


def table_uri(path: str, project_dir: str | None = None) -> str:
    """Paths inside the project become ${KIPRJMOD}-relative; others stay absolute."""
    path = os.path.abspath(path)
    if project_dir:
        project_dir = os.path.abspath(project_dir)
        if os.path.commonpath([path, project_dir]) == project_dir:
            rel = os.path.relpath(path, project_dir).replace(os.sep, "/")
            return f"${{KIPRJMOD}}/{rel}"
    return path.replace(os.sep, "/")


def _ensure_table(table_path: str, kind: str, lib_name: str, uri: str,
                  descr: str) -> TableResult:
    content = _read_text(table_path)
    if not content.strip():
        _write_text(table_path, add_library_to_table("", lib_name, uri, kind, descr))
        return TableResult(path=table_path, action="created")

    if library_table_has_entry(content, lib_name):
        return TableResult(path=table_path, action="exists")

    _write_text(table_path, add_library_to_table(content, lib_name, uri, kind, descr))
    return TableResult(path=table_path, action="appended")


def ensure_sym_lib_table(table_dir: str, lib_name: str, lib_path: str,
                         project_dir: str | None = None,
                         descr: str | None = None) -> TableResult:
    """Ensure `lib_name` is registered in `table_dir`/sym-lib-table."""
    return _ensure_table(
        os.path.join(table_dir, "sym-lib-table"), "sym", lib_name,
        table_uri(lib_path, project_dir), descr or f"LCSC {lib_name} symbols",
    )


def ensure_fp_lib_table(table_dir: str, lib_name: str, lib_path: str,
                        project_dir: str | None = None,
                        descr: str | None = None) -> TableResult:
    """Ensure `lib_name` is registered in `table_dir`/fp-lib-table."""
    return _ensure_table(
        os.path.join(table_dir, "fp-lib-table"), "fp", lib_name,
        table_uri(lib_path, project_dir), descr or "LCSC footprints",
    )
