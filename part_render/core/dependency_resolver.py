"""
Identifier and import analysis for source fragments.

A fragment is parsed once; a single flat walk over the tree records the names it
declares and the names it references. Scopes are not tracked: a name declared anywhere
in the fragment counts as declared everywhere.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from tree_sitter import Node

from .models import DependencyContext, ImportInfo, ImportSpecifier
from .module_resolver import ModuleResolver
from .treesitter.nodes import first_child_of_type, has_child_token, node_text, strip_quotes
from .treesitter.parser import parse_checked

logger = logging.getLogger("part_render.compiler")

BUILTIN_IDENTIFIERS = frozenset({
    # host objects
    "console", "window", "document", "process", "global", "globalThis", "navigator",
    "location", "history", "localStorage", "sessionStorage", "performance", "self",
    "require", "module", "exports", "__dirname", "__filename", "arguments",
    # standard library
    "Array", "Object", "String", "Number", "Boolean", "Symbol", "BigInt", "Date",
    "Promise", "Map", "Set", "WeakMap", "WeakSet", "WeakRef", "Math", "JSON", "Reflect",
    "Proxy", "Intl", "RegExp", "Function", "ArrayBuffer", "DataView", "Uint8Array",
    "Int8Array", "Uint16Array", "Int16Array", "Uint32Array", "Int32Array",
    "Float32Array", "Float64Array", "Error", "TypeError", "RangeError", "SyntaxError",
    "ReferenceError", "EvalError", "URIError", "AggregateError", "NaN", "Infinity",
    "parseInt", "parseFloat", "isNaN", "isFinite", "encodeURI", "decodeURI",
    "encodeURIComponent", "decodeURIComponent", "setTimeout", "clearTimeout",
    "setInterval", "clearInterval", "queueMicrotask", "structuredClone",
    "requestAnimationFrame", "cancelAnimationFrame", "fetch", "alert", "confirm",
    "prompt", "URL", "URLSearchParams", "FormData", "Headers", "Request", "Response",
    "AbortController", "Blob", "File", "FileReader", "Event", "CustomEvent",
    "EventTarget", "HTMLElement", "Element", "Node", "MouseEvent", "KeyboardEvent",
    "TextEncoder", "TextDecoder", "crypto",
    # type-level globals
    "JSX", "Record", "Partial", "Required", "Readonly", "Pick", "Omit", "Exclude",
    "Extract", "NonNullable", "ReturnType", "Parameters", "InstanceType", "Awaited",
    "PromiseLike", "ArrayLike", "Iterable", "Iterator", "ReadonlyArray",
    # literals
    "undefined", "null", "true", "false",
})

_FUNCTION_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
}
_NAMED_DECLARATION_TYPES = {
    "class_declaration",
    "abstract_class_declaration",
    "class",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "type_parameter",
    "internal_module",
    "module",
}
_JSX_TAG_PARENTS = {"jsx_opening_element", "jsx_closing_element", "jsx_self_closing_element"}
_REFERENCE_TYPES = {"identifier", "type_identifier", "shorthand_property_identifier"}


def analyze_source(source: str, file_path: Optional[str] = None) -> DependencyContext:
    """
    Analyze a fragment without touching the file system.

    Raises:
        FragmentParseError: if the fragment is not syntactically valid.
    """
    tree = parse_checked(source, file_path)
    root = tree.root_node
    imports = extract_imports(root)
    used, declared = collect_identifiers(root)
    missing = {name for name in used if name not in declared and name not in BUILTIN_IDENTIFIERS}
    return DependencyContext(
        imports=imports,
        used_identifiers=used,
        declared_identifiers=declared,
        missing_identifiers=missing,
    )


def extract_imports(root: Node) -> List[ImportInfo]:
    imports: List[ImportInfo] = []
    for child in root.children:
        if child.type == "import_statement":
            info = _build_import(child)
            if info is not None:
                imports.append(info)
    return imports


def _build_import(node: Node) -> Optional[ImportInfo]:
    source_node = node.child_by_field_name("source")
    if source_node is None:
        # `import x = require('y')` has no string source field
        return None
    module = strip_quotes(node_text(source_node))
    if not module:
        return None

    specifiers: List[ImportSpecifier] = []
    clause = first_child_of_type(node, "import_clause")
    if clause is not None:
        for child in clause.named_children:
            if child.type == "identifier":
                specifiers.append(ImportSpecifier(name=node_text(child), is_default=True))
            elif child.type == "namespace_import":
                name_node = first_child_of_type(child, "identifier")
                specifiers.append(ImportSpecifier(name=node_text(name_node), is_namespace=True))
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    alias_node = spec.child_by_field_name("alias")
                    specifiers.append(
                        ImportSpecifier(
                            name=strip_quotes(node_text(name_node)),
                            alias=node_text(alias_node) if alias_node is not None else None,
                            type_only=has_child_token(spec, "type"),
                        )
                    )

    return ImportInfo(
        module=module,
        specifiers=specifiers,
        type_only=has_child_token(node, "type"),
        span=(node.start_byte, node.end_byte),
    )


def pattern_names(node: Optional[Node]) -> List[str]:
    """Names bound by a parameter or destructuring pattern."""
    if node is None:
        return []
    kind = node.type
    if kind in {"identifier", "shorthand_property_identifier_pattern", "type_identifier"}:
        return [node_text(node)]
    if kind in {"required_parameter", "optional_parameter"}:
        return pattern_names(node.child_by_field_name("pattern"))
    if kind == "pair_pattern":
        return pattern_names(node.child_by_field_name("value"))
    if kind in {"object_assignment_pattern", "assignment_pattern"}:
        return pattern_names(node.child_by_field_name("left"))
    if kind in {"object_pattern", "array_pattern", "rest_pattern", "formal_parameters"}:
        names: List[str] = []
        for child in node.named_children:
            names.extend(pattern_names(child))
        return names
    return []


def _declared_names(node: Node) -> List[str]:
    kind = node.type
    if kind == "variable_declarator":
        return pattern_names(node.child_by_field_name("name"))
    if kind in _FUNCTION_TYPES:
        names = pattern_names(node.child_by_field_name("name"))
        return names + pattern_names(node.child_by_field_name("parameters"))
    if kind == "arrow_function":
        single = node.child_by_field_name("parameter")
        if single is not None:
            return pattern_names(single)
        return pattern_names(node.child_by_field_name("parameters"))
    if kind == "method_definition":
        return pattern_names(node.child_by_field_name("parameters"))
    if kind in _NAMED_DECLARATION_TYPES:
        name_node = node.child_by_field_name("name")
        return [node_text(name_node)] if name_node is not None else []
    if kind == "catch_clause":
        return pattern_names(node.child_by_field_name("parameter"))
    if kind == "for_in_statement" and node.child_by_field_name("kind") is not None:
        return pattern_names(node.child_by_field_name("left"))
    return []


def _is_reference(node: Node) -> bool:
    parent = node.parent
    if parent is None:
        return True
    parent_type = parent.type
    if parent_type == "nested_type_identifier" and parent.child_by_field_name("name") == node:
        return False
    if parent_type == "export_specifier" and parent.child_by_field_name("alias") == node:
        return False
    if parent_type in _JSX_TAG_PARENTS and node_text(node)[:1].islower():
        return False
    return True


def collect_identifiers(root: Node) -> Tuple[Set[str], Set[str]]:
    """Return (used, declared) identifier sets for the whole tree."""
    used: Set[str] = set()
    declared: Set[str] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "import_statement":
            info = _build_import(node)
            if info is not None:
                declared.update(info.local_names)
            continue
        if node.type == "export_statement" and node.child_by_field_name("source") is not None:
            # re-exports bind and reference nothing locally
            continue

        declared.update(_declared_names(node))
        if node.type in _REFERENCE_TYPES and _is_reference(node):
            used.add(node_text(node))
        stack.extend(reversed(node.children))
    return used, declared


class DependencyResolver:
    """Analyzes fragments and resolves the modules they import."""

    def __init__(self, project_root, module_resolver: Optional[ModuleResolver] = None,
                 ts_config: Optional[Dict[str, Any]] = None):
        self.project_root = Path(project_root).resolve()
        self.module_resolver = module_resolver or ModuleResolver(self.project_root, ts_config=ts_config)

    def analyze_dependencies(self, code: str, file_path: Optional[str] = None) -> DependencyContext:
        context = analyze_source(code, file_path)

        for info in context.imports:
            resolved = self.module_resolver.resolve(info.module, file_path)
            if resolved:
                info.resolved_path = resolved
                context.resolved_modules[info.module] = resolved
            elif info.module not in context.unresolved_modules:
                context.unresolved_modules.append(info.module)

        logger.debug(
            f"Analyzed fragment: {len(context.imports)} imports, "
            f"{len(context.used_identifiers)} used, {len(context.missing_identifiers)} missing"
        )
        return context
