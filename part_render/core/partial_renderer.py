"""
High-level entry point: scan a project once, then compile fragments against it.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..ai.code_completer import CodeCompleter, CompletionRequest
from .code_scanner import CodeScanner
from .component_detector import ComponentDetector
from .config import PartRenderConfig
from .errors import FragmentParseError
from .models import CodeContext, CompilationResult, ImportInfo, ProjectCatalog
from .smart_compiler import CompileOptions, SmartCompiler

logger = logging.getLogger("part_render.compiler")

FRAMEWORK_PACKAGES = {
    "react": "react",
    "vue": "vue",
    "@angular/core": "angular",
    "svelte": "svelte",
    "next": "next",
    "gatsby": "gatsby",
}


@dataclass
class PartialRenderResult:
    success: bool
    code: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    used_imports: List[str] = field(default_factory=list)
    suggested_imports: List[ImportInfo] = field(default_factory=list)
    unresolved_identifiers: List[str] = field(default_factory=list)
    ai_applied: bool = False

    @classmethod
    def from_compilation(cls, result: CompilationResult, **extra: Any) -> "PartialRenderResult":
        return cls(
            success=result.success,
            code=result.code,
            error=result.error,
            warnings=list(result.warnings),
            suggested_imports=list(result.suggested_imports),
            unresolved_identifiers=list(result.unresolved_identifiers),
            **extra,
        )


class PartialRenderer:
    """Owns the project snapshot, the compiler and the optional code completer."""

    def __init__(self, config: PartRenderConfig, completer=None):
        self.config = config
        self.project_root = config.resolved_root()
        self.scanner = CodeScanner(
            self.project_root,
            ignored_patterns=config.ignored_patterns,
            source_extensions=config.source_extensions,
        )
        self.detector = ComponentDetector()
        self.code_context: Optional[CodeContext] = None
        self.compiler: Optional[SmartCompiler] = None
        self.completer = completer
        if self.completer is None and config.enable_ai:
            self.completer = CodeCompleter(config.llm_settings())
        self.confidence_threshold = float(config.llm_settings()["confidence_threshold"])
        self._refresh_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self.compiler is not None

    @property
    def catalog(self) -> ProjectCatalog:
        return self.compiler.catalog if self.compiler is not None else ProjectCatalog()

    def _snapshot(self):
        context = self.scanner.scan_project()
        return context, self.detector.build(context)

    async def initialize(self) -> None:
        logger.info(f"Initializing PartialRenderer for {self.project_root}")
        async with self._refresh_lock:
            context, catalog = await asyncio.to_thread(self._snapshot)
            self.code_context = context
            self.compiler = SmartCompiler(
                self.project_root, context, config=self.config, catalog=catalog, detector=self.detector
            )
        logger.info(f"PartialRenderer ready: {len(catalog.components)} components indexed")

    async def refresh(self) -> ProjectCatalog:
        """Rescan the project and swap in the new snapshot."""
        if self.compiler is None:
            await self.initialize()
            return self.catalog
        async with self._refresh_lock:
            context, catalog = await asyncio.to_thread(self._snapshot)
            self.compiler.update_context(context, catalog)
            self.code_context = context
        logger.info(f"Catalog refreshed: {len(catalog.components)} components")
        return catalog

    async def render_partial(
        self,
        code: str,
        file_path: Optional[str] = None,
        mock_props: Optional[Dict[str, Any]] = None,
        additional_imports: Optional[List[ImportInfo]] = None,
        wrap_component: Optional[bool] = None,
    ) -> PartialRenderResult:
        if self.compiler is None:
            await self.initialize()

        final_code = code
        suggestions: List[str] = []
        ai_applied = False
        used_imports: List[str] = []

        try:
            dependencies = await asyncio.to_thread(self.compiler.analyze, code, file_path)
            used_imports = [info.module for info in dependencies.imports]
            if self.completer is not None and dependencies.missing_identifiers:
                logger.info(f"Using AI to complete {len(dependencies.missing_identifiers)} missing identifiers")
                completion = await self.completer.complete_partial_code(
                    CompletionRequest(code=code, dependencies=dependencies, project_context=self.project_context())
                )
                if completion.confidence > self.confidence_threshold:
                    logger.info(f"AI completion accepted with confidence {completion.confidence:.2f}")
                    final_code = completion.completed_code
                    suggestions = completion.suggestions
                    ai_applied = True
                else:
                    logger.debug(f"AI completion rejected with confidence {completion.confidence:.2f}")
        except FragmentParseError:
            # The compiler reports the parse error as a failed result
            pass

        options = CompileOptions(
            code=final_code,
            file_path=file_path,
            mock_props=mock_props,
            additional_imports=list(additional_imports or []),
            wrap_component=wrap_component,
        )
        result = await asyncio.to_thread(self.compiler.compile, options)
        return PartialRenderResult.from_compilation(
            result, suggestions=suggestions, used_imports=used_imports, ai_applied=ai_applied
        )

    async def render_multiple(self, snippets: List[Dict[str, Any]]) -> Dict[str, PartialRenderResult]:
        """Render `{name, code, file_path?}` snippets one after another, keyed by name."""
        results: Dict[str, PartialRenderResult] = {}
        for snippet in snippets:
            logger.info(f"Rendering {snippet['name']}")
            results[snippet["name"]] = await self.render_partial(snippet["code"], snippet.get("file_path"))
        return results

    def detect_frameworks(self) -> List[str]:
        dependencies = self.code_context.dependencies if self.code_context else {}
        return [name for package, name in FRAMEWORK_PACKAGES.items() if package in dependencies]

    def project_summary(self) -> Dict[str, Any]:
        context = self.code_context or CodeContext()
        return {
            "file_count": len(context.project_files),
            "dependencies": list(context.dependencies)[:10],
            "has_typescript": context.ts_config is not None,
            "frameworks": self.detect_frameworks(),
            "components": len(self.catalog.components),
        }

    def project_context(self) -> str:
        return json.dumps(self.project_summary(), indent=2)

    def dispose(self) -> None:
        if self.completer is not None:
            self.completer.clear_cache()
