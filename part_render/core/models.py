"""
Core data models for fragments, imports, project files and discovered components.

This module contains plain data structures shared by the analyzer, the resolver,
the catalog and the assembler.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple


class FileKind(str, Enum):
    """Kind of a project file, derived from its extension."""
    TS = "ts"        # typed script
    TSX = "tsx"      # typed component
    JS = "js"        # script
    JSX = "jsx"      # component
    JSON = "json"    # data
    OTHER = "other"

    @classmethod
    def from_path(cls, path: str) -> "FileKind":
        suffix = path.rsplit(".", 1)[-1].lower() if "." in path else ""
        for kind in cls:
            if kind.value == suffix:
                return kind
        return cls.OTHER

    @property
    def is_source(self) -> bool:
        return self in (FileKind.TS, FileKind.TSX, FileKind.JS, FileKind.JSX)


@dataclass
class ProjectFile:
    """One file of the project corpus."""
    path: str  # project-relative, POSIX separators
    content: str
    kind: FileKind = FileKind.OTHER


@dataclass
class CodeContext:
    """A snapshot of the project corpus as produced by the scanner."""
    project_files: List[ProjectFile] = field(default_factory=list)
    dependencies: Dict[str, str] = field(default_factory=dict)  # package name -> version
    ts_config: Optional[Dict[str, Any]] = None


@dataclass
class ImportSpecifier:
    """One bound name of an import statement.

    `name` is the imported name and `alias` the local binding when it differs
    (`import { a as b }` gives name="a", alias="b").
    """
    name: str
    alias: Optional[str] = None
    is_default: bool = False
    is_namespace: bool = False
    type_only: bool = False

    @property
    def local_name(self) -> str:
        return self.alias or self.name


@dataclass
class ImportInfo:
    """One import statement."""
    module: str
    specifiers: List[ImportSpecifier] = field(default_factory=list)
    is_relative: bool = False
    resolved_path: Optional[str] = None
    type_only: bool = False
    span: Optional[Tuple[int, int]] = None  # byte range in the fragment it was read from

    def __post_init__(self):
        if not self.module:
            raise ValueError("ImportInfo.module must not be empty")
        self.is_relative = self.module.startswith((".", "/"))

    @property
    def merge_key(self) -> Tuple[str, Tuple[str, ...]]:
        return (self.module, tuple(sorted(spec.name for spec in self.specifiers)))

    @property
    def local_names(self) -> Set[str]:
        return {spec.local_name for spec in self.specifiers}


@dataclass
class DependencyContext:
    """Result of analysing a single fragment."""
    imports: List[ImportInfo] = field(default_factory=list)
    used_identifiers: Set[str] = field(default_factory=set)
    declared_identifiers: Set[str] = field(default_factory=set)
    missing_identifiers: Set[str] = field(default_factory=set)
    resolved_modules: Dict[str, str] = field(default_factory=dict)  # module -> resolved path
    unresolved_modules: List[str] = field(default_factory=list)


@dataclass
class PropInfo:
    """One prop of a UI component."""
    name: str
    semantic_type: str = "any"
    required: bool = True
    default_value: Optional[str] = None
    description: Optional[str] = None


@dataclass
class ComponentInfo:
    """A UI component discovered in the project."""
    name: str
    file_path: str
    props: List[PropInfo] = field(default_factory=list)
    is_default_export: bool = False
    kind: str = "function"  # function | arrow | class
    line: int = 0
    column: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "is_default_export": self.is_default_export,
            "kind": self.kind,
            "line": self.line,
            "column": self.column,
            "props": [asdict(prop) for prop in self.props],
        }


@dataclass
class ExportEntry:
    """An exported binding of a project file."""
    name: str
    file_path: str
    is_default: bool = False
    kind: str = "value"  # function | class | variable | type | interface | enum | reexport | value


@dataclass(frozen=True)
class ProjectCatalog:
    """Immutable snapshot of the project's components and exports.

    A refresh builds a new snapshot and replaces the reference; entries are never
    mutated while readers may hold the old one.
    """
    components: Tuple[ComponentInfo, ...] = ()
    exports: Tuple[ExportEntry, ...] = ()
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def find_component(self, name: str) -> Optional[ComponentInfo]:
        for component in self.components:
            if component.name == name:
                return component
        return None

    def find_exports(self, name: str) -> List[ExportEntry]:
        return [entry for entry in self.exports if entry.name == name]


@dataclass
class CompilationResult:
    """Outcome of assembling (and optionally bundling) a fragment."""
    success: bool
    code: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    suggested_imports: List[ImportInfo] = field(default_factory=list)
    unresolved_identifiers: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.success and self.code is None:
            raise ValueError("A successful CompilationResult requires code")
        if not self.success and not self.error:
            raise ValueError("A failed CompilationResult requires an error message")
