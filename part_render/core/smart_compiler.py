"""
End-to-end compilation of a fragment against a project snapshot.
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .assembler import Assembler, AssembledUnit
from .bundler import Bundler, create_bundler
from .component_detector import ComponentDetector
from .config import PartRenderConfig
from .dependency_resolver import DependencyResolver
from .errors import BundleError, FragmentParseError
from .import_synthesizer import ImportSynthesizer
from .models import CodeContext, CompilationResult, DependencyContext, ImportInfo, ProjectCatalog
from .module_resolver import ModuleResolver

logger = logging.getLogger("part_render.compiler")


@dataclass
class CompileOptions:
    code: str
    file_path: Optional[str] = None
    mock_props: Optional[Dict[str, Any]] = None
    additional_imports: List[ImportInfo] = field(default_factory=list)
    wrap_component: Optional[bool] = None


class SmartCompiler:
    """
    Analyze, suggest, assemble and bundle.

    One instance owns a module resolver cache and a suggestion cache; callers sharing an
    instance across threads get their compilations serialized.
    """

    def __init__(
        self,
        project_root,
        code_context: CodeContext,
        config: Optional[PartRenderConfig] = None,
        bundler: Optional[Bundler] = None,
        catalog: Optional[ProjectCatalog] = None,
        detector: Optional[ComponentDetector] = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.config = config or PartRenderConfig(project_root=str(self.project_root))
        self.code_context = code_context
        self.detector = detector or ComponentDetector()
        self.bundler = bundler or create_bundler(self.config)
        self._lock = threading.RLock()

        self.module_resolver = ModuleResolver(self.project_root, ts_config=code_context.ts_config)
        self.dependency_resolver = DependencyResolver(self.project_root, module_resolver=self.module_resolver)
        self.synthesizer = ImportSynthesizer(
            self.project_root,
            dependencies=code_context.dependencies,
            mappings=self.config.import_mappings,
            runtime_module=self.config.runtime_module,
            runtime_import=self.config.runtime_import,
        )
        self.assembler = Assembler(self.synthesizer, wrap_component=self.config.wrap_component)
        self.catalog = catalog if catalog is not None else self.detector.build(code_context)
        self.synthesizer.set_catalog(self.catalog)

    def update_context(self, code_context: CodeContext, catalog: Optional[ProjectCatalog] = None) -> ProjectCatalog:
        """Swap in a new project snapshot; the catalog is rebuilt unless one is given."""
        new_catalog = catalog if catalog is not None else self.detector.build(code_context)
        with self._lock:
            self.code_context = code_context
            self.module_resolver = ModuleResolver(self.project_root, ts_config=code_context.ts_config)
            self.dependency_resolver = DependencyResolver(self.project_root, module_resolver=self.module_resolver)
            self.catalog = new_catalog
            self.synthesizer.set_catalog(new_catalog, dependencies=code_context.dependencies)
        return new_catalog

    def analyze(self, code: str, file_path: Optional[str] = None) -> DependencyContext:
        with self._lock:
            return self.dependency_resolver.analyze_dependencies(code, self._absolute(file_path))

    def _absolute(self, file_path: Optional[str]) -> Optional[str]:
        if not file_path:
            return None
        path = Path(file_path)
        return str(path if path.is_absolute() else self.project_root / path)

    def _resolve_dir(self, file_path: Optional[str]) -> str:
        absolute = self._absolute(file_path)
        return str(Path(absolute).parent) if absolute else str(self.project_root)

    def assemble(self, options: CompileOptions, context: DependencyContext) -> AssembledUnit:
        return self.assembler.assemble(
            options.code,
            context,
            additional_imports=options.additional_imports,
            mock_props=options.mock_props if options.mock_props is not None else self.config.mock_props,
            from_file=options.file_path,
            wrap_component=options.wrap_component,
        )

    def compile(self, options: CompileOptions) -> CompilationResult:
        warnings: List[str] = []
        with self._lock:
            try:
                context = self.dependency_resolver.analyze_dependencies(options.code, self._absolute(options.file_path))
                for module in context.unresolved_modules:
                    warnings.append(f"Could not resolve module '{module}'; leaving it to the bundler")

                unit = self.assemble(options, context)
                warnings.extend(unit.warnings)
                for name in unit.unresolved_identifiers:
                    warnings.append(f"No import found for identifier '{name}'")

                resolution_map = dict(context.resolved_modules)
                for info in unit.suggested_imports:
                    if info.resolved_path:
                        resolution_map.setdefault(info.module, info.resolved_path)

                output = self.bundler.build(unit.code, resolution_map, self._resolve_dir(options.file_path))
                warnings.extend(output.warnings)
                return CompilationResult(
                    success=True,
                    code=output.code,
                    warnings=warnings,
                    suggested_imports=unit.suggested_imports,
                    unresolved_identifiers=unit.unresolved_identifiers,
                )
            except FragmentParseError as e:
                logger.info(f"Fragment rejected: {e}")
                return CompilationResult(success=False, error=str(e), warnings=warnings)
            except BundleError as e:
                logger.warning(f"Bundling failed: {e}")
                return CompilationResult(success=False, error=str(e), warnings=warnings + e.warnings)
            except Exception as e:
                logger.exception("Compilation failed")
                return CompilationResult(success=False, error=str(e) or type(e).__name__, warnings=warnings)
