"""
Tree-sitter parser facade with cached parser instances.
"""

from functools import lru_cache
from typing import Optional

from tree_sitter import Node, Parser, Tree

from ..errors import FragmentParseError
from .languages import get_ts_language, get_tsx_language


@lru_cache(maxsize=2)
def get_parser(language_id: str) -> Parser:
    parser = Parser()
    if language_id == "typescript":
        parser.language = get_ts_language()
    elif language_id == "tsx":
        parser.language = get_tsx_language()
    else:
        raise ValueError(f"Unsupported language: {language_id}")
    return parser


def language_for_path(file_path: Optional[str]) -> str:
    """`.ts`/`.mts`/`.cts` files use the TypeScript grammar (angle-bracket casts); everything else TSX."""
    if file_path and file_path.lower().endswith((".ts", ".mts", ".cts")):
        return "typescript"
    return "tsx"


def parse_source(source: str, language_id: str) -> Tree:
    parser = get_parser(language_id)
    return parser.parse(bytes(source, "utf-8"))


def find_syntax_error(tree: Tree) -> Optional[Node]:
    """Return the first ERROR or MISSING node of the tree, if any."""
    if not tree.root_node.has_error:
        return None
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return tree.root_node


def parse_checked(source: str, file_path: Optional[str] = None) -> Tree:
    """Parse `source` and raise FragmentParseError if the tree is not clean."""
    tree = parse_source(source, language_for_path(file_path))
    error_node = find_syntax_error(tree)
    if error_node is not None:
        line, column = error_node.start_point[0] + 1, error_node.start_point[1] + 1
        if error_node.is_missing:
            message = f"Syntax error: missing '{error_node.type}'"
        else:
            snippet = error_node.text.decode("utf-8", errors="replace").splitlines()
            near = snippet[0][:40] if snippet else ""
            message = f"Syntax error near '{near}'" if near else "Syntax error"
        where = f" in {file_path}" if file_path else ""
        raise FragmentParseError(f"{message}{where}", line=line, column=column)
    return tree
