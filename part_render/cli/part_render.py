"""
Command line interface: analyze or compile a fragment, or list project components.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from part_render.core.code_scanner import CodeScanner
from part_render.core.component_detector import ComponentDetector
from part_render.core.config import PartRenderConfig, load_config
from part_render.core.dependency_resolver import DependencyResolver
from part_render.core.errors import FragmentParseError
from part_render.core.import_synthesizer import render_import
from part_render.core.partial_renderer import PartialRenderer


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to configuration YAML file (default: partrender.config.yaml)")
    parser.add_argument("--project-root", help="Project directory to resolve against (overrides config)")
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format.")
    parser.add_argument("--log-level", help="Logging level (overrides config)")


def _add_fragment_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("fragment", nargs="?", default="-",
                        help="File containing the fragment, or '-' to read stdin (default).")
    parser.add_argument("--file-path",
                        help="Project-relative path the fragment pretends to live at (for relative imports).")


def _resolve_config(args: argparse.Namespace) -> PartRenderConfig:
    cli_overrides: Dict[str, Any] = {}
    if getattr(args, "project_root", None):
        cli_overrides["project_root"] = str(Path(args.project_root).resolve())
    if getattr(args, "log_level", None):
        cli_overrides["log_level"] = args.log_level
    if getattr(args, "bundler", None):
        cli_overrides["bundler"] = args.bundler
    if getattr(args, "ai", False):
        cli_overrides["enable_ai"] = True
    config = load_config(config_path=getattr(args, "config", None), cli_args=cli_overrides)
    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO), stream=sys.stderr)
    return config


def _read_fragment(args: argparse.Namespace, project_root: Path) -> Tuple[str, Optional[str]]:
    if args.fragment == "-":
        return sys.stdin.read(), args.file_path
    path = Path(args.fragment).resolve()
    file_path = args.file_path
    # a fragment outside the project is compiled as if it sat at the project root
    if file_path is None and path.is_relative_to(project_root):
        file_path = str(path)
    return path.read_text(encoding="utf-8"), file_path


def _emit(data: Dict[str, Any], args: argparse.Namespace, text: str) -> None:
    if args.format == "json":
        print(json.dumps(data, indent=2, default=str))
    else:
        print(text)


def _run_analyze(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    code, file_path = _read_fragment(args, config.resolved_root())
    resolver = DependencyResolver(config.resolved_root())
    try:
        context = resolver.analyze_dependencies(code, file_path)
    except FragmentParseError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    data = {
        "imports": [render_import(info) for info in context.imports],
        "used_identifiers": sorted(context.used_identifiers),
        "declared_identifiers": sorted(context.declared_identifiers),
        "missing_identifiers": sorted(context.missing_identifiers),
        "resolved_modules": context.resolved_modules,
        "unresolved_modules": context.unresolved_modules,
    }
    lines = [f"Imports: {len(context.imports)}"]
    lines.extend(f"  {statement}" for statement in data["imports"])
    lines.append(f"Missing identifiers: {', '.join(data['missing_identifiers']) or '(none)'}")
    for module, resolved in context.resolved_modules.items():
        lines.append(f"  {module} -> {resolved}")
    for module in context.unresolved_modules:
        lines.append(f"  {module} -> (unresolved)")
    _emit(data, args, "\n".join(lines))
    return 0


def _run_compile(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    code, file_path = _read_fragment(args, config.resolved_root())
    mock_props = json.loads(args.mock_props) if args.mock_props else None
    wrap_component = False if args.no_wrap else None

    renderer = PartialRenderer(config)
    result = asyncio.run(renderer.render_partial(code, file_path, mock_props=mock_props, wrap_component=wrap_component))

    for warning in result.warnings:
        print(f"⚠️  {warning}", file=sys.stderr)
    if not result.success:
        if args.format == "json":
            _emit({"success": False, "error": result.error, "warnings": result.warnings}, args, "")
        print(f"❌ Compilation failed: {result.error}", file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(result.code, encoding="utf-8")
        print(f"✅ Wrote {args.output}", file=sys.stderr)
    data = {
        "success": True,
        "code": result.code,
        "warnings": result.warnings,
        "suggested_imports": [render_import(info) for info in result.suggested_imports],
        "unresolved_identifiers": result.unresolved_identifiers,
        "ai_applied": result.ai_applied,
    }
    if not args.output or args.format == "json":
        _emit(data, args, result.code)
    return 0


def _run_components(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    scanner = CodeScanner(config.resolved_root(), config.ignored_patterns, config.source_extensions)
    catalog = ComponentDetector().build(scanner.scan_project())
    needle = (args.filter or "").lower()
    components = [c for c in catalog.components if not needle or needle in c.name.lower()]

    lines = []
    for component in components:
        marker = " (default)" if component.is_default_export else ""
        lines.append(f"{component.name}{marker}  {component.file_path}:{component.line}")
        for prop in component.props:
            optional = "" if prop.required else "?"
            default = f" = {prop.default_value}" if prop.default_value is not None else ""
            lines.append(f"    {prop.name}{optional}: {prop.semantic_type}{default}")
    if not components:
        lines.append("No components found.")
    _emit({"components": [asdict(c) for c in components], "total": len(components)}, args, "\n".join(lines))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="part-render CLI: complete partial UI fragments using a project's own components."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Report imports and missing identifiers of a fragment")
    _add_fragment_args(analyze)
    _add_common_flags(analyze)
    analyze.set_defaults(func=_run_analyze)

    compile_cmd = subparsers.add_parser("compile", help="Assemble a fragment into a compilable module")
    _add_fragment_args(compile_cmd)
    _add_common_flags(compile_cmd)
    compile_cmd.add_argument("--mock-props", help="JSON object passed to the component by the preview wrapper.")
    compile_cmd.add_argument("--no-wrap", action="store_true", help="Never append the preview wrapper.")
    compile_cmd.add_argument("--bundler", choices=["none", "esbuild"], help="Bundler to run (overrides config).")
    compile_cmd.add_argument("--ai", action="store_true", help="Try language-model completion first.")
    compile_cmd.add_argument("--output", help="Write the compiled module to a file.")
    compile_cmd.set_defaults(func=_run_compile)

    components = subparsers.add_parser("components", help="List UI components found in the project")
    _add_common_flags(components)
    components.add_argument("--filter", help="Case-insensitive substring filter on component names.")
    components.set_defaults(func=_run_components)

    return parser


def main():
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except Exception as e:
        print(f"\n❌ An unexpected error occurred: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
