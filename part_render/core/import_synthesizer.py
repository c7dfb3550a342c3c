"""
Import suggestion, merging and rendering.
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import ImportInfo, ImportSpecifier, ProjectCatalog
from .utils import relative_module_specifier, split_package_specifier

logger = logging.getLogger("part_render.compiler")


@dataclass(frozen=True)
class ModuleCandidate:
    """A package that commonly provides an identifier."""
    module: str
    name: str
    is_default: bool = False


def _named(module: str, *names: str) -> Dict[str, List[ModuleCandidate]]:
    return {name: [ModuleCandidate(module, name)] for name in names}


DEFAULT_IMPORT_MAPPINGS: Dict[str, List[ModuleCandidate]] = {
    "React": [ModuleCandidate("react", "React", is_default=True)],
    **_named(
        "react",
        "useState", "useEffect", "useContext", "useMemo", "useCallback", "useRef",
        "useReducer", "useLayoutEffect", "useId", "useTransition", "useDeferredValue",
        "useImperativeHandle", "createContext", "forwardRef", "memo", "lazy", "Suspense",
        "Fragment", "createElement", "cloneElement", "isValidElement", "Children",
    ),
    "styled": [ModuleCandidate("styled-components", "styled", is_default=True)],
    "css": [ModuleCandidate("@emotion/react", "css"), ModuleCandidate("styled-components", "css")],
    "keyframes": [ModuleCandidate("@emotion/react", "keyframes"), ModuleCandidate("styled-components", "keyframes")],
    "clsx": [ModuleCandidate("clsx", "clsx", is_default=True)],
    "classNames": [ModuleCandidate("classnames", "classNames", is_default=True)],
    "axios": [ModuleCandidate("axios", "axios", is_default=True)],
    "_": [ModuleCandidate("lodash", "_", is_default=True)],
    "moment": [ModuleCandidate("moment", "moment", is_default=True)],
    "dayjs": [ModuleCandidate("dayjs", "dayjs", is_default=True)],
}


def mappings_from_config(raw: Optional[Mapping[str, Sequence[Mapping[str, Any]]]]) -> Dict[str, List[ModuleCandidate]]:
    """Turn `import_mappings` entries ({module, default, name}) into candidates."""
    mappings: Dict[str, List[ModuleCandidate]] = {}
    for identifier, entries in (raw or {}).items():
        candidates = []
        for entry in entries:
            module = entry.get("module")
            if not module:
                logger.warning(f"Ignoring import mapping for '{identifier}' without a module")
                continue
            candidates.append(
                ModuleCandidate(module, entry.get("name") or identifier, is_default=bool(entry.get("default", False)))
            )
        if candidates:
            mappings[identifier] = candidates
    return mappings


def _import_for(identifier: str, module: str, imported_name: str, is_default: bool,
                resolved_path: Optional[str] = None) -> ImportInfo:
    if is_default:
        spec = ImportSpecifier(name=identifier, is_default=True)
    else:
        spec = ImportSpecifier(name=imported_name, alias=identifier if imported_name != identifier else None)
    return ImportInfo(module=module, specifiers=[spec], resolved_path=resolved_path)


def _from_directory(from_file: Optional[str], project_root: Optional[Path]) -> str:
    if not from_file:
        return ""
    path = Path(from_file)
    if path.is_absolute() and project_root is not None:
        try:
            path = path.relative_to(project_root)
        except ValueError:
            return ""
    return posixpath.dirname(path.as_posix())


class ImportSynthesizer:
    """
    Suggests imports for missing identifiers.

    Lookups go to the project catalog first (components, then any other export) and then
    to the package mapping table. Answers are memoized on the instance until the catalog
    is replaced.
    """

    def __init__(
        self,
        project_root=None,
        catalog: Optional[ProjectCatalog] = None,
        dependencies: Optional[Mapping[str, str]] = None,
        mappings: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
        runtime_module: str = "react",
        runtime_import: str = "React",
    ):
        self.project_root = Path(project_root).resolve() if project_root is not None else None
        self.catalog = catalog or ProjectCatalog()
        self.dependencies = dict(dependencies or {})
        self.mappings: Dict[str, List[ModuleCandidate]] = dict(DEFAULT_IMPORT_MAPPINGS)
        self.mappings.update(mappings_from_config(mappings))
        self.runtime_module = runtime_module
        self.runtime_import = runtime_import
        self._suggestion_cache: Dict[Tuple[str, str], Optional[ImportInfo]] = {}

    def set_catalog(self, catalog: ProjectCatalog, dependencies: Optional[Mapping[str, str]] = None) -> None:
        self.catalog = catalog
        if dependencies is not None:
            self.dependencies = dict(dependencies)
        self._suggestion_cache.clear()

    def clear_cache(self) -> None:
        self._suggestion_cache.clear()

    def suggest_imports(self, missing: Iterable[str], from_file: Optional[str] = None) -> Tuple[List[ImportInfo], List[str]]:
        """Return (suggested imports, identifiers nothing was found for), both in name order."""
        from_dir = _from_directory(from_file, self.project_root)
        suggestions: List[ImportInfo] = []
        unresolved: List[str] = []
        for identifier in sorted(set(missing)):
            key = (identifier, from_dir)
            if key not in self._suggestion_cache:
                self._suggestion_cache[key] = self._suggest_one(identifier, from_dir)
            suggestion = self._suggestion_cache[key]
            if suggestion is None:
                unresolved.append(identifier)
            else:
                logger.debug(f"Auto-importing {identifier} from {suggestion.module}")
                # Callers may mutate what they get back
                suggestions.append(
                    ImportInfo(
                        module=suggestion.module,
                        specifiers=[ImportSpecifier(**vars(spec)) for spec in suggestion.specifiers],
                        resolved_path=suggestion.resolved_path,
                    )
                )
        return suggestions, unresolved

    def _suggest_one(self, identifier: str, from_dir: str) -> Optional[ImportInfo]:
        return self._from_catalog(identifier, from_dir) or self._from_mappings(identifier)

    def _project_path(self, file_path: str) -> Optional[str]:
        if self.project_root is None:
            return None
        return str(self.project_root / file_path)

    def _from_catalog(self, identifier: str, from_dir: str) -> Optional[ImportInfo]:
        exports = self.catalog.find_exports(identifier)
        component = self.catalog.find_component(identifier)
        if component is not None:
            same_file = [entry for entry in exports if entry.file_path == component.file_path]
            named = any(not entry.is_default for entry in same_file)
            is_default = component.is_default_export and not named
            module = relative_module_specifier(component.file_path, from_dir)
            return _import_for(identifier, module, identifier, is_default, self._project_path(component.file_path))
        if exports:
            entry = next((e for e in exports if not e.is_default), exports[0])
            module = relative_module_specifier(entry.file_path, from_dir)
            return _import_for(identifier, module, identifier, entry.is_default, self._project_path(entry.file_path))
        return None

    def _from_mappings(self, identifier: str) -> Optional[ImportInfo]:
        candidates = self.mappings.get(identifier)
        if not candidates:
            return None
        chosen = candidates[0]
        for candidate in candidates:
            if split_package_specifier(candidate.module)[0] in self.dependencies:
                chosen = candidate
                break
        return _import_for(identifier, chosen.module, chosen.name, chosen.is_default)

    def ensure_runtime_import(self, imports: List[ImportInfo]) -> List[ImportInfo]:
        return ensure_runtime_import(imports, self.runtime_module, self.runtime_import)


def merge_imports(*sources: Iterable[ImportInfo]) -> List[ImportInfo]:
    """Deduplicate by (module, sorted specifier names); the first occurrence of a key wins."""
    merged: Dict[Tuple[str, Tuple[str, ...]], ImportInfo] = {}
    for source in sources:
        for info in source:
            merged.setdefault(info.merge_key, info)
    return list(merged.values())


def ensure_runtime_import(imports: List[ImportInfo], runtime_module: str = "react",
                          runtime_import: str = "React") -> List[ImportInfo]:
    """Prepend `import <runtime_import> from '<runtime_module>'` unless the name is already bound."""
    for info in imports:
        if runtime_import in info.local_names:
            return list(imports)
    runtime = ImportInfo(module=runtime_module, specifiers=[ImportSpecifier(name=runtime_import, is_default=True)])
    return [runtime, *imports]


def render_import(info: ImportInfo) -> str:
    default = next((spec for spec in info.specifiers if spec.is_default), None)
    namespace = next((spec for spec in info.specifiers if spec.is_namespace), None)
    named = [spec for spec in info.specifiers if not spec.is_default and not spec.is_namespace]

    keyword = "import type" if info.type_only else "import"
    parts: List[str] = []
    if default is not None:
        parts.append(default.local_name)
    if namespace is not None:
        parts.append(f"* as {namespace.local_name}")
    elif named:
        rendered = []
        for spec in named:
            text = f"{spec.name} as {spec.alias}" if spec.alias and spec.alias != spec.name else spec.name
            rendered.append(f"type {text}" if spec.type_only and not info.type_only else text)
        parts.append("{ " + ", ".join(rendered) + " }")

    if not parts:
        return f"{keyword} '{info.module}';"
    return f"{keyword} {', '.join(parts)} from '{info.module}';"


def render_imports(imports: Iterable[ImportInfo]) -> str:
    return "\n".join(render_import(info) for info in imports)
