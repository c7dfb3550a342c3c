"""
Small helpers for reading Tree-sitter nodes.
"""

from typing import Iterator, List, Optional, Tuple

from tree_sitter import Node


FUNCTION_NODE_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
}


def node_text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8")


def strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] in "\"'`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def walk(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def walk_function_body(node: Node) -> Iterator[Node]:
    """Walk a function body without descending into nested functions."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        if current.type in FUNCTION_NODE_TYPES or current.type in {"class_declaration", "class"}:
            continue
        stack.extend(reversed(current.children))


def has_child_token(node: Node, token: str) -> bool:
    return any(child.type == token for child in node.children)


def first_child_of_type(node: Node, *types: str) -> Optional[Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def type_annotation_text(node: Optional[Node]) -> Optional[str]:
    """Text of a `type_annotation` without its leading colon."""
    if node is None:
        return None
    if node.type == "type_annotation":
        inner = [child for child in node.named_children if child.type != "comment"]
        if inner:
            return " ".join(node_text(inner[0]).split())
        return node_text(node).lstrip(":").strip()
    return " ".join(node_text(node).split())


def type_annotation_node(node: Optional[Node]) -> Optional[Node]:
    if node is None:
        return None
    if node.type == "type_annotation":
        inner = [child for child in node.named_children if child.type != "comment"]
        return inner[0] if inner else None
    return node


def unwrap_parenthesized(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type in {"parenthesized_expression", "parenthesized_type"}:
        inner = [child for child in node.named_children if child.type != "comment"]
        node = inner[0] if inner else None
    return node


def line_column(node: Node) -> Tuple[int, int]:
    return node.start_point[0] + 1, node.start_point[1] + 1


def preceding_jsdoc(node: Node) -> Optional[str]:
    prev = node.prev_named_sibling
    if prev is not None and prev.type == "comment":
        text = node_text(prev)
        if text.startswith("/**"):
            return text
    return None


def clean_jsdoc(comment: Optional[str]) -> Optional[str]:
    """Strip comment markers and tags from a JSDoc block."""
    if not comment:
        return None
    body = comment.strip()
    if body.startswith("/**"):
        body = body[3:]
    if body.endswith("*/"):
        body = body[:-2]
    lines: List[str] = []
    for raw in body.splitlines():
        line = raw.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if line.startswith("@"):
            break
        if line:
            lines.append(line)
    return " ".join(lines) or None
