from mcp.server.fastmcp import FastMCP
import logging
import sys
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from part_render.core.errors import FragmentParseError
from part_render.core.import_synthesizer import render_import
from part_render.core.models import ImportInfo, ImportSpecifier
from part_render.mcp_server.workspace import Workspace


class MCPError(Exception):
    """Custom MCP error with code and hint."""

    def __init__(self, code: int, message: str, hint: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = {"hint": hint} if hint else {}


class PingResponse(BaseModel):
    status: str
    echoed: str
    workspace_ready: bool = False
    indexed_components: Optional[int] = None


class AnalysisResponse(BaseModel):
    imports: List[dict]
    used_identifiers: List[str]
    declared_identifiers: List[str]
    missing_identifiers: List[str]
    resolved_modules: Dict[str, str]
    unresolved_modules: List[str]


class CompileResponse(BaseModel):
    success: bool
    code: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = []
    suggested_imports: List[str] = []
    unresolved_identifiers: List[str] = []
    suggestions: List[str] = []
    ai_applied: bool = False


class ComponentsResponse(BaseModel):
    components: List[dict]
    total: int


class RefreshResponse(BaseModel):
    components: int
    exports: int
    built_at: str


logger = logging.getLogger("part_render.mcp")
logger.addHandler(logging.StreamHandler(sys.stderr))
logger.setLevel(logging.INFO)


@dataclass
class AppContext:
    workspace: Optional[Workspace] = None


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    config = getattr(server, "config", None)
    workspace = None
    if config is not None:
        workspace = Workspace(config)
        server.workspace = workspace
        await workspace.start()
        logger.info(f"Server started for {workspace.project_root}")
    else:
        logger.warning("No config provided to server, skipping workspace setup")

    try:
        yield AppContext(workspace=workspace)
    finally:
        logger.info("Server shutdown")
        if workspace is not None:
            workspace.shutdown()


server = FastMCP("PartRenderMCP", lifespan=lifespan)


def _require_workspace() -> Workspace:
    workspace = getattr(server, "workspace", None)
    if workspace is None or not workspace.is_ready:
        raise MCPError(5001, "Workspace not initialized", "Start the server with a valid --config or project root")
    return workspace


def _parse_import(raw: Dict[str, Any]) -> ImportInfo:
    try:
        specifiers = [
            ImportSpecifier(
                name=spec["name"],
                alias=spec.get("alias"),
                is_default=bool(spec.get("is_default", False)),
                is_namespace=bool(spec.get("is_namespace", False)),
                type_only=bool(spec.get("type_only", False)),
            )
            for spec in raw.get("specifiers", [])
        ]
        return ImportInfo(module=raw["module"], specifiers=specifiers, type_only=bool(raw.get("type_only", False)))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MCPError(4002, f"Invalid import entry: {raw}", "Expected {module, specifiers: [{name, alias?, is_default?, is_namespace?}]}") from e


def _import_to_dict(info: ImportInfo) -> Dict[str, Any]:
    data = asdict(info)
    data.pop("span", None)
    return data


@server.tool(name="ping")
async def ping_tool(message: str = Field(description="Message to echo")) -> PingResponse:
    """
    Simple ping tool to echo a message and report workspace status.
    """
    workspace = getattr(server, "workspace", None)
    ready = workspace is not None and workspace.is_ready
    return PingResponse(
        status="ok",
        echoed=message,
        workspace_ready=ready,
        indexed_components=len(workspace.renderer.catalog.components) if ready else None,
    )


@server.tool(name="analyze_fragment")
async def analyze_fragment(code: str = Field(description="Fragment source (TS/TSX/JS/JSX)"),
                           file_path: str = Field(default="", description="Optional project-relative path of the fragment")
                           ) -> AnalysisResponse:
    """
    Report the imports, used, declared and missing identifiers of a fragment.
    """
    workspace = _require_workspace()
    try:
        context = workspace.renderer.compiler.analyze(code, file_path or None)
    except FragmentParseError as e:
        raise MCPError(4001, str(e), "Fix the syntax error and try again") from e

    return AnalysisResponse(
        imports=[_import_to_dict(info) for info in context.imports],
        used_identifiers=sorted(context.used_identifiers),
        declared_identifiers=sorted(context.declared_identifiers),
        missing_identifiers=sorted(context.missing_identifiers),
        resolved_modules=context.resolved_modules,
        unresolved_modules=context.unresolved_modules,
    )


@server.tool(name="compile_fragment")
async def compile_fragment(code: str = Field(description="Fragment source (TS/TSX/JS/JSX)"),
                           file_path: str = Field(default="", description="Optional project-relative path of the fragment"),
                           mock_props: dict = Field(default={}, description="Props passed to the component by the preview wrapper"),
                           additional_imports: list[dict] = Field(default=[], description="Extra imports: {module, specifiers: [{name, alias, is_default, is_namespace}]}"),
                           wrap_component: Optional[bool] = Field(default=None, description="Override the configured wrapping behaviour")
                           ) -> CompileResponse:
    """
    Complete a fragment with inferred imports and hand it to the configured bundler.
    """
    workspace = _require_workspace()
    extra = [_parse_import(raw) for raw in additional_imports]
    result = await workspace.renderer.render_partial(
        code,
        file_path or None,
        mock_props=mock_props or None,
        additional_imports=extra,
        wrap_component=wrap_component,
    )
    return CompileResponse(
        success=result.success,
        code=result.code,
        error=result.error,
        warnings=result.warnings,
        suggested_imports=[render_import(info) for info in result.suggested_imports],
        unresolved_identifiers=result.unresolved_identifiers,
        suggestions=result.suggestions,
        ai_applied=result.ai_applied,
    )


@server.tool(name="list_components")
async def list_components(name_filter: str = Field(default="", description="Case-insensitive substring filter on component names"),
                          include_props: bool = Field(default=True, description="Include prop schemas")
                          ) -> ComponentsResponse:
    """
    List the UI components found in the project.
    """
    workspace = _require_workspace()
    needle = name_filter.lower()
    components = []
    for component in workspace.renderer.catalog.components:
        if needle and needle not in component.name.lower():
            continue
        data = component.to_dict()
        if not include_props:
            data.pop("props")
        components.append(data)
    return ComponentsResponse(components=components, total=len(components))


@server.tool(name="refresh_catalog")
async def refresh_catalog() -> RefreshResponse:
    """
    Rescan the project and rebuild the component catalog.
    """
    workspace = _require_workspace()
    catalog = await workspace.renderer.refresh()
    return RefreshResponse(
        components=len(catalog.components),
        exports=len(catalog.exports),
        built_at=catalog.built_at.isoformat(),
    )
