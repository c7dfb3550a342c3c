"""
Core pipeline: fragment analysis, module resolution, component catalog and assembly.
"""

from .models import (
    CodeContext,
    CompilationResult,
    ComponentInfo,
    DependencyContext,
    ExportEntry,
    FileKind,
    ImportInfo,
    ImportSpecifier,
    ProjectCatalog,
    ProjectFile,
    PropInfo,
)
from .errors import BundleError, FragmentParseError, PartRenderError

__all__ = [
    "CodeContext",
    "CompilationResult",
    "ComponentInfo",
    "DependencyContext",
    "ExportEntry",
    "FileKind",
    "ImportInfo",
    "ImportSpecifier",
    "ProjectCatalog",
    "ProjectFile",
    "PropInfo",
    "BundleError",
    "FragmentParseError",
    "PartRenderError",
]
