"""
Tree-sitter integration for part-render.

Provides language loading and parsing utilities shared by the analyzer and the catalog.
"""

from .parser import find_syntax_error, get_parser, language_for_path, parse_checked, parse_source
from .languages import get_ts_language, get_tsx_language

__all__ = [
    "find_syntax_error",
    "get_parser",
    "language_for_path",
    "parse_checked",
    "parse_source",
    "get_ts_language",
    "get_tsx_language",
]
