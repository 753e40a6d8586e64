"""LCSCBridge — CLI and JSON-RPC server for importing LCSC/EasyEDA parts into KiCad."""

import argparse
import json
import logging
import os
import sys

import requests

import easyeda_api
from category_router import (
    COMMUNITY_LIBRARY, COMMUNITY_LIBRARY_DESCRIPTION, all_categories, community_library_filename,
    community_reference, footprint_library_name, footprint_reference, library_filename,
    library_name, parse_library_name, route, symbol_reference,
)
from component_parser import merge_enrichment, parse_component, validate_component
from errors import LcscBridgeError, MissingContextError
from footprint_writer import resolve_footprint, serialize_footprint
from library_injector import (
    accumulate_symbol, ensure_fp_lib_table, ensure_library_dirs,
    ensure_sym_lib_table, footprint_filename, get_kicad_config_dir, global_library_paths,
    list_library_symbols, model_reference, project_library_paths,
    write_3d_model, write_footprint,
)
from models import FootprintResult, LibraryPaths, ParsedComponent, ProcessingResult
from symbol_writer import serialize_symbol, symbol_name

logger = logging.getLogger(__name__)


def _error_message(e: Exception) -> str:
    if isinstance(e, LcscBridgeError):
        return str(e)
    if isinstance(e, requests.RequestException):
        return f"network: {e}"
    if isinstance(e, OSError):
        return f"filesystem: {e}"
    return f"{type(e).__name__}: {e}"


def resolve_paths(project_dir: str | None = None,
                  library_root: str | None = None) -> LibraryPaths:
    if project_dir:
        return project_library_paths(project_dir)
    return global_library_paths(library_root)


def fetch_parsed_component(component_id: str) -> ParsedComponent:
    """Fetch, parse and (for LCSC ids) enrich one component."""
    result = easyeda_api.fetch_component(component_id)
    component = parse_component(result, component_id)

    if easyeda_api.is_lcsc_id(component_id):
        try:
            merge_enrichment(component, easyeda_api.fetch_details(component_id))
        except Exception as e:
            logger.info("Skipping enrichment for %s: %s", component_id, e)
    return component


def _community_footprint(component: ParsedComponent,
                         model_path: str | None = None) -> FootprintResult:
    """Community parts always get a generated footprint named after the symbol."""
    name = symbol_name(component)
    return FootprintResult(
        kind="generated",
        name=name,
        content=serialize_footprint(component, model_path=model_path, name=name),
    )


def install_component(component_id: str, project_dir: str | None = None,
                      library_root: str | None = None, include_3d: bool | None = None,
                      use_standard_footprints: bool = False,
                      config_dir: str | None = None) -> ProcessingResult:
    """Install a component through the full pipeline.

    Steps: fetch -> enrich -> parse -> route -> 3D model -> footprint ->
           accumulate symbol -> register lib tables -> validation summary

    LCSC ids go to the category libraries, project-local or global.
    EasyEDA community uuids go to the project's EasyEDA library, and
    `include_3d` defaults to on for them.
    """
    warnings = []
    component_id = (component_id or "").strip()

    try:
        community = not easyeda_api.is_lcsc_id(component_id)
        if community and not project_dir:
            raise MissingContextError(
                f"{component_id or '<empty id>'} is not an LCSC id; "
                "EasyEDA community components need a project directory"
            )
        if include_3d is None:
            include_3d = community

        component = fetch_parsed_component(component_id)
        info = component.info
        name = symbol_name(component)

        # 1. Route to a library
        if community:
            category = None
            paths = project_library_paths(project_dir, COMMUNITY_LIBRARY)
            sym_lib_name = fp_lib_name = COMMUNITY_LIBRARY
            lib_path = os.path.join(paths.symbols_dir, community_library_filename())
            table_descr = COMMUNITY_LIBRARY_DESCRIPTION
        else:
            category = route(info.prefix, info.category, info.description)
            paths = resolve_paths(project_dir, library_root)
            sym_lib_name = library_name(category)
            fp_lib_name = footprint_library_name()
            lib_path = os.path.join(paths.symbols_dir, library_filename(category))
            table_descr = None
        ensure_library_dirs(paths)
        files = {}

        # 2. 3D model (optional)
        model_ref = None
        if include_3d:
            if component.model3d is None:
                warnings.append("No 3D model available")
            else:
                data = easyeda_api.fetch_3d_model(component.model3d.uuid)
                if data:
                    stem = name if community else (info.lcsc_id or component_id)
                    model_path = write_3d_model(paths.models_dir, stem, data)
                    files["model"] = model_path
                    model_ref = model_reference(model_path, paths)
                else:
                    logger.warning("%s: 3D model download failed", component_id)
                    warnings.append("3D model download failed")

        # 3. Footprint: stock reference or generated file
        if community:
            footprint = _community_footprint(component, model_ref)
        else:
            footprint = resolve_footprint(component, use_standard_footprints, model_ref)
        if footprint.kind == "reference":
            footprint_ref = footprint.reference
        else:
            filename = f"{footprint.name}.kicad_mod" if community else footprint_filename(component)
            files["footprint"] = write_footprint(paths.footprint_dir, filename, footprint.content)
            if community:
                footprint_ref = community_reference(footprint.name)
            else:
                footprint_ref = footprint_reference(footprint.name)
            if not component.footprint.pads:
                logger.warning("%s: generated footprint has no pads", component_id)
                warnings.append("Generated footprint has no pads")

        # 4. Accumulate symbol
        symbol_action, name = accumulate_symbol(lib_path, component, footprint_ref)
        files["symbol_library"] = lib_path

        # 5. Register library tables
        table_dir = paths.project_dir or config_dir or get_kicad_config_dir()
        sym_table = ensure_sym_lib_table(table_dir, sym_lib_name, lib_path,
                                         paths.project_dir, table_descr)
        fp_table = ensure_fp_lib_table(table_dir, fp_lib_name, paths.footprint_dir,
                                       paths.project_dir, table_descr)

        skipped = component.skipped_records
        if skipped:
            warnings.append(f"Skipped {len(skipped)} malformed shape records")

        return ProcessingResult(
            status="success",
            lcsc_id=info.lcsc_id,
            source="easyeda_community" if community else "lcsc",
            category=category.value if category else None,
            symbol_name=name,
            symbol_ref=community_reference(name) if community else symbol_reference(category, name),
            symbol_action=symbol_action,
            footprint_ref=footprint_ref,
            footprint_type=footprint.kind,
            files=files,
            tables={"sym": sym_table.action, "fp": fp_table.action},
            validation=validate_component(component),
            warnings=warnings,
        )

    except Exception as e:
        logger.debug("Install of %s failed", component_id, exc_info=True)
        return ProcessingResult(
            status="error",
            lcsc_id=component_id or None,
            error=_error_message(e),
            warnings=warnings,
        )


def convert_component(component_id: str, use_standard_footprints: bool = False
                      ) -> tuple[ParsedComponent, str, FootprintResult]:
    """Symbol text and footprint result for a component, without touching disk."""
    component = fetch_parsed_component(component_id)
    if not easyeda_api.is_lcsc_id(component_id):
        footprint = _community_footprint(component)
        footprint_ref = community_reference(footprint.name)
        symbol = serialize_symbol(component, COMMUNITY_LIBRARY, footprint_ref)
        return component, symbol, footprint

    category = route(component.info.prefix, component.info.category,
                     component.info.description)
    footprint = resolve_footprint(component, use_standard_footprints)
    if footprint.kind == "reference":
        footprint_ref = footprint.reference
    else:
        footprint_ref = footprint_reference(footprint.name)
    symbol = serialize_symbol(component, library_name(category), footprint_ref)
    return component, symbol, footprint


def list_installed(project_dir: str | None = None, library_root: str | None = None,
                   category: str | None = None) -> list[dict]:
    """Every symbol in the accumulated libraries, optionally for one category."""
    paths = resolve_paths(project_dir, library_root)
    if not os.path.isdir(paths.symbols_dir):
        return []

    installed = []
    for filename in sorted(os.listdir(paths.symbols_dir)):
        library, ext = os.path.splitext(filename)
        if ext != ".kicad_sym":
            continue
        lib_category = parse_library_name(library)
        if lib_category is None and library != COMMUNITY_LIBRARY:
            continue
        if category and (lib_category is None or lib_category.value != category):
            continue
        for entry in list_library_symbols(os.path.join(paths.symbols_dir, filename)):
            entry["library"] = library
            entry["category"] = lib_category.value if lib_category else None
            installed.append(entry)
    return installed


# ── JSON-RPC Server ──────────────────────────────────────────────────────────

def _jsonrpc_response(id, result=None, error=None):
    resp = {"jsonrpc": "2.0", "id": id}
    if error is not None:
        resp["error"] = {"code": -32000, "message": str(error)}
    else:
        resp["result"] = result
    return resp


def handle_jsonrpc(request: dict) -> dict:
    """Handle a single JSON-RPC request."""
    req_id = request.get("id")
    method = request.get("method", "")
    params = request.get("params") or {}

    try:
        if method == "ping":
            return _jsonrpc_response(req_id, "pong")

        elif method == "install":
            result = install_component(
                params["id"],
                project_dir=params.get("project_path"),
                library_root=params.get("library_root"),
                include_3d=params.get("include_3d"),
                use_standard_footprints=params.get("standard_footprints", False),
                config_dir=params.get("config_dir"),
            )
            return _jsonrpc_response(req_id, result.to_dict())

        elif method == "get_symbol":
            component, symbol, _footprint = convert_component(params["id"])
            return _jsonrpc_response(req_id, {
                "name": component.info.name,
                "content": symbol,
                "validation": validate_component(component).to_dict(),
            })

        elif method == "get_footprint":
            _component, _symbol, footprint = convert_component(
                params["id"], params.get("standard_footprints", False))
            return _jsonrpc_response(req_id, {
                "type": footprint.kind,
                "name": footprint.name,
                "reference": footprint.reference,
                "content": footprint.content,
            })

        elif method == "list_installed":
            return _jsonrpc_response(req_id, list_installed(
                project_dir=params.get("project_path"),
                library_root=params.get("library_root"),
                category=params.get("category"),
            ))

        else:
            return _jsonrpc_response(req_id, error=f"Unknown method: {method}")

    except Exception as e:
        return _jsonrpc_response(req_id, error=_error_message(e))


def serve():
    """Run JSON-RPC server on stdin/stdout."""
    print("LCSCBridge sidecar ready", file=sys.stderr, flush=True)
    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        try:
            request = json.loads(line)
            response = handle_jsonrpc(request)
        except json.JSONDecodeError as e:
            response = _jsonrpc_response(None, error=f"Invalid JSON: {e}")
        sys.stdout.write(json.dumps(response) + "\n")
        sys.stdout.flush()


# ── CLI ──────────────────────────────────────────────────────────────────────

def _write_or_print(content: str, output: str | None) -> None:
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(content)
        print(f"Wrote {output}")
    else:
        sys.stdout.write(content)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="LCSCBridge — convert LCSC/EasyEDA parts into KiCad libraries"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # install command
    inst = subparsers.add_parser("install", help="Install a component into the libraries")
    inst.add_argument("id", help="LCSC id (C2040) or EasyEDA community uuid")
    inst.add_argument("--project", help="KiCad project directory (project-local libraries)")
    inst.add_argument("--library-root", help="Global library root directory")
    inst.add_argument("--include-3d", action=argparse.BooleanOptionalAction, default=None,
                      help="Download the STEP model (default: on for community parts)")
    inst.add_argument("--standard-footprints", action="store_true",
                      help="Reference stock KiCad footprints when the package matches")
    inst.add_argument("--config-dir", help="KiCad config directory holding global lib-tables")
    inst.add_argument("--json", action="store_true", help="Print the result as JSON")

    # symbol / footprint commands
    sym = subparsers.add_parser("symbol", help="Print the converted symbol library")
    sym.add_argument("id")
    sym.add_argument("-o", "--output", help="Write to file instead of stdout")

    fp = subparsers.add_parser("footprint", help="Print the converted footprint")
    fp.add_argument("id")
    fp.add_argument("--standard-footprints", action="store_true")
    fp.add_argument("-o", "--output", help="Write to file instead of stdout")

    # list command
    lst = subparsers.add_parser("list", help="List installed symbols")
    lst.add_argument("--project", help="KiCad project directory")
    lst.add_argument("--library-root", help="Global library root directory")
    lst.add_argument("--category", choices=[c.value for c in all_categories()],
                     help="Only list one category library")

    # serve command
    subparsers.add_parser("serve", help="Run JSON-RPC server on stdin/stdout")

    args = parser.parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "install":
        result = install_component(
            args.id,
            project_dir=args.project,
            library_root=args.library_root,
            include_3d=args.include_3d,
            use_standard_footprints=args.standard_footprints,
            config_dir=args.config_dir,
        )
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            print(f"Status: {result.status}")
            if result.symbol_ref:
                print(f"Symbol: {result.symbol_ref} ({result.symbol_action})")
            if result.footprint_ref:
                print(f"Footprint: {result.footprint_ref} ({result.footprint_type})")
            if result.validation:
                v = result.validation
                print(f"Pins: {v.pin_count}  Pads: {v.pad_count}"
                      f"{'' if v.pin_pad_count_match else '  (mismatch)'}")
            for w in result.warnings:
                print(f"Warning: {w}")
            if result.error:
                print(f"Error: {result.error}")
        if result.status == "error":
            sys.exit(1)

    elif args.command in ("symbol", "footprint"):
        try:
            if args.command == "symbol":
                _component, content, _footprint = convert_component(args.id)
            else:
                _component, _symbol, footprint = convert_component(
                    args.id, args.standard_footprints)
                content = footprint.content or f"{footprint.reference}\n"
        except Exception as e:
            print(f"Error: {_error_message(e)}", file=sys.stderr)
            sys.exit(1)
        _write_or_print(content, args.output)

    elif args.command == "list":
        for entry in list_installed(args.project, args.library_root, args.category):
            print(f"{entry['library']}:{entry['name']}\t{entry.get('lcsc_id') or ''}"
                  f"\t{entry.get('footprint') or ''}")

    elif args.command == "serve":
        serve()

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
