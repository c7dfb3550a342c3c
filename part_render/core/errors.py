"""
Exceptions raised inside the compilation pipeline.

None of these escape `SmartCompiler.compile`; they are converted into a failed
`CompilationResult` there.
"""

from typing import Optional


class PartRenderError(Exception):
    """Base class for pipeline errors."""


class FragmentParseError(PartRenderError):
    """Source text could not be parsed into a usable syntax tree."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


class BundleError(PartRenderError):
    """The transpile/bundle step rejected the assembled source."""

    def __init__(self, message: str, warnings: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.warnings = list(warnings or [])
