"""
Project export index and UI component catalog.

Every eligible project file is parsed on its own. Top-level exported declarations go
into the export index; the ones that look like UI components are also described in the
catalog together with a prop schema read from their type annotations.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from tree_sitter import Node

from .dependency_resolver import pattern_names
from .errors import FragmentParseError
from .models import CodeContext, ComponentInfo, ExportEntry, ProjectCatalog, ProjectFile, PropInfo
from .treesitter.nodes import (
    clean_jsdoc,
    first_child_of_type,
    has_child_token,
    line_column,
    node_text,
    preceding_jsdoc,
    type_annotation_node,
    type_annotation_text,
    unwrap_parenthesized,
    walk,
    walk_function_body,
)
from .treesitter.parser import parse_checked

logger = logging.getLogger("part_render.catalog")

ELEMENT_RETURN_TYPES = {"Element", "ReactElement", "ReactNode", "JSX.Element"}
COMPONENT_VARIABLE_TYPES = {"FC", "FunctionComponent", "VFC", "ComponentType"}
COMPONENT_BASE_CLASSES = {"Component", "PureComponent"}
ELEMENT_FACTORIES = {"createElement", "h"}
PROP_WRAPPER_TYPES = {"Readonly", "PropsWithChildren", "Partial", "Required"}

_JSX_NODE_TYPES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}
_FUNCTION_VALUE_TYPES = {"arrow_function", "function_expression", "function"}
_CLASS_TYPES = {"class_declaration", "abstract_class_declaration"}
_NAMED_EXPRESSION_KINDS = {
    "function_expression": "function",
    "function": "function",
    "generator_function": "function",
    "class": "class",
}
_TYPE_DECLARATION_KINDS = {
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
}


@dataclass
class ComponentCandidate:
    """What the component predicate gets to see about one declaration."""
    name: str
    kind: str  # function | arrow | class
    return_type: Optional[str] = None
    variable_type: Optional[str] = None
    superclass: Optional[str] = None
    returns_markup: bool = False


def _base_type_name(type_text: str) -> str:
    """`React.FC<Props>` -> `FC`; `JSX.Element` keeps its namespace."""
    text = type_text.split("<", 1)[0].strip()
    if text == "JSX.Element":
        return text
    return text.rsplit(".", 1)[-1]


def is_ui_component(candidate: ComponentCandidate) -> bool:
    """Heuristic check on the declared signature of a declaration."""
    if candidate.kind == "class":
        return bool(candidate.superclass) and _base_type_name(candidate.superclass) in COMPONENT_BASE_CLASSES
    if candidate.variable_type and _base_type_name(candidate.variable_type) in COMPONENT_VARIABLE_TYPES:
        return True
    if candidate.return_type:
        parts = [part.strip() for part in candidate.return_type.split("|")]
        return any(_base_type_name(part) in ELEMENT_RETURN_TYPES for part in parts if part)
    return candidate.returns_markup


@dataclass
class _Declaration:
    name: str
    kind: str  # function | arrow | class | variable
    node: Node  # declaration node (function, class or variable_declarator)


@dataclass
class FileExports:
    """Everything the catalog learned from one file."""
    components: List[ComponentInfo] = field(default_factory=list)
    exports: List[ExportEntry] = field(default_factory=list)


# --- markup detection ---

def _is_element_factory_call(node: Node) -> bool:
    if node.type != "call_expression":
        return False
    function = node.child_by_field_name("function")
    if function is None:
        return False
    if function.type == "member_expression":
        function = function.child_by_field_name("property")
    return node_text(function) in ELEMENT_FACTORIES


def _contains_markup(node: Optional[Node]) -> bool:
    if node is None:
        return False
    for child in walk(node):
        if child.type in _JSX_NODE_TYPES or _is_element_factory_call(child):
            return True
    return False


def _returns_markup(function_node: Node) -> bool:
    body = function_node.child_by_field_name("body")
    if body is None:
        return False
    if body.type != "statement_block":
        return _contains_markup(body)
    for child in walk_function_body(body):
        if child.type == "return_statement" and _contains_markup(child):
            return True
    return False


# --- prop extraction ---

def _first_parameter(function_node: Node) -> Optional[Node]:
    single = function_node.child_by_field_name("parameter")
    if single is not None:
        return single
    params = function_node.child_by_field_name("parameters")
    if params is None:
        return None
    for child in params.named_children:
        if child.type in {"required_parameter", "optional_parameter", "identifier", "object_pattern"}:
            return child
    return None


def _destructured_defaults(pattern: Optional[Node]) -> Tuple[List[str], Dict[str, str]]:
    """Names and default values from a `{ a, b = 1, c: d = 2 }` parameter."""
    names: List[str] = []
    defaults: Dict[str, str] = {}
    if pattern is None or pattern.type != "object_pattern":
        return names, defaults
    for child in pattern.named_children:
        if child.type == "shorthand_property_identifier_pattern":
            names.append(node_text(child))
        elif child.type == "object_assignment_pattern":
            name = node_text(child.child_by_field_name("left"))
            names.append(name)
            defaults[name] = node_text(child.child_by_field_name("right"))
        elif child.type == "pair_pattern":
            name = node_text(child.child_by_field_name("key"))
            names.append(name)
            value = child.child_by_field_name("value")
            if value is not None and value.type == "assignment_pattern":
                defaults[name] = node_text(value.child_by_field_name("right"))
    return names, defaults


def _member_prop(member: Node) -> Optional[PropInfo]:
    name_node = member.child_by_field_name("name")
    if name_node is None:
        return None
    name = node_text(name_node).strip("'\"")
    if member.type == "property_signature":
        semantic_type = type_annotation_text(member.child_by_field_name("type")) or "any"
    else:
        params = node_text(member.child_by_field_name("parameters")) or "()"
        returns = type_annotation_text(member.child_by_field_name("return_type")) or "void"
        semantic_type = f"{params} => {returns}"
    return PropInfo(
        name=name,
        semantic_type=semantic_type,
        required=not has_child_token(member, "?"),
        description=clean_jsdoc(preceding_jsdoc(member)),
    )


class PropSchemaReader:
    """Reads prop schemas from type nodes, following local interfaces and aliases."""

    def __init__(self, local_types: Dict[str, Node]):
        self.local_types = local_types

    def read(self, type_node: Optional[Node]) -> List[PropInfo]:
        props: Dict[str, PropInfo] = {}
        self._collect(type_annotation_node(type_node), props, set())
        return list(props.values())

    def _collect(self, node: Optional[Node], props: Dict[str, PropInfo], seen: set) -> None:
        node = unwrap_parenthesized(node)
        if node is None:
            return
        if node.type in {"object_type", "interface_body"}:
            for member in node.named_children:
                if member.type in {"property_signature", "method_signature"}:
                    prop = _member_prop(member)
                    if prop is not None:
                        props[prop.name] = prop
        elif node.type == "intersection_type":
            for part in node.named_children:
                self._collect(part, props, seen)
        elif node.type == "type_identifier":
            self._collect_local(node_text(node), props, seen)
        elif node.type == "generic_type":
            self._collect_generic(node, props, seen)

    def _collect_local(self, name: str, props: Dict[str, PropInfo], seen: set) -> None:
        declaration = self.local_types.get(name)
        if declaration is None or name in seen:
            return
        seen.add(name)
        if declaration.type == "interface_declaration":
            heritage = first_child_of_type(declaration, "extends_type_clause")
            if heritage is not None:
                for parent in heritage.named_children:
                    self._collect(parent, props, seen)
            self._collect(declaration.child_by_field_name("body"), props, seen)
        else:
            self._collect(declaration.child_by_field_name("value"), props, seen)

    def _collect_generic(self, node: Node, props: Dict[str, PropInfo], seen: set) -> None:
        base = _base_type_name(node_text(node.child_by_field_name("name")))
        arguments = node.child_by_field_name("type_arguments")
        first_argument = arguments.named_children[0] if arguments is not None and arguments.named_children else None
        if base in self.local_types:
            self._collect_local(base, props, seen)
            return
        if base not in PROP_WRAPPER_TYPES or first_argument is None:
            return
        inner: Dict[str, PropInfo] = {}
        self._collect(first_argument, inner, seen)
        for prop in inner.values():
            if base == "Partial":
                prop.required = False
            elif base == "Required":
                prop.required = True
            props[prop.name] = prop
        if base == "PropsWithChildren" and "children" not in props:
            props["children"] = PropInfo(name="children", semantic_type="ReactNode", required=False)


def _generic_argument(type_node: Optional[Node]) -> Optional[Node]:
    """First type argument of `FC<Props>` / `Component<Props>`."""
    node = type_annotation_node(type_node)
    if node is None:
        return None
    arguments = node.child_by_field_name("type_arguments") if node.type == "generic_type" else node
    if arguments is None or arguments.type != "type_arguments" or not arguments.named_children:
        return None
    return arguments.named_children[0]


# --- per-file analysis ---

def _superclass(class_node: Node) -> Tuple[Optional[str], Optional[Node]]:
    heritage = first_child_of_type(class_node, "class_heritage")
    if heritage is None:
        return None, None
    extends = first_child_of_type(heritage, "extends_clause")
    if extends is None:
        # JS grammar places the expression directly under class_heritage
        named = [child for child in heritage.named_children if child.type != "implements_clause"]
        return (node_text(named[0]) if named else None), None
    value = extends.child_by_field_name("value")
    return node_text(value) or None, extends.child_by_field_name("type_arguments")


def _collect_declarations(statement: Node) -> List[_Declaration]:
    if statement.type in {"function_declaration", "generator_function_declaration"}:
        name_node = statement.child_by_field_name("name")
        return [_Declaration(node_text(name_node), "function", statement)] if name_node is not None else []
    if statement.type in _CLASS_TYPES:
        name_node = statement.child_by_field_name("name")
        return [_Declaration(node_text(name_node), "class", statement)] if name_node is not None else []
    if statement.type in {"lexical_declaration", "variable_declaration"}:
        declarations = []
        for declarator in statement.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                continue
            value = unwrap_parenthesized(declarator.child_by_field_name("value"))
            if value is not None and value.type == "arrow_function":
                kind = "arrow"
            elif value is not None and value.type in _FUNCTION_VALUE_TYPES:
                kind = "function"
            else:
                kind = "variable"
            declarations.append(_Declaration(node_text(name_node), kind, declarator))
        return declarations
    return []


def _candidate(declaration: _Declaration) -> Optional[ComponentCandidate]:
    node = declaration.node
    if declaration.kind == "class":
        superclass, _ = _superclass(node)
        return ComponentCandidate(name=declaration.name, kind="class", superclass=superclass)
    if declaration.kind == "function":
        function = node if node.type != "variable_declarator" else unwrap_parenthesized(node.child_by_field_name("value"))
    elif declaration.kind == "arrow":
        function = unwrap_parenthesized(node.child_by_field_name("value"))
    else:
        return None
    variable_type = None
    if node.type == "variable_declarator":
        variable_type = type_annotation_text(node.child_by_field_name("type"))
    return ComponentCandidate(
        name=declaration.name,
        kind=declaration.kind,
        return_type=type_annotation_text(function.child_by_field_name("return_type")),
        variable_type=variable_type,
        returns_markup=_returns_markup(function),
    )


def _component_props(declaration: _Declaration, reader: PropSchemaReader) -> List[PropInfo]:
    node = declaration.node
    if declaration.kind == "class":
        _, type_arguments = _superclass(node)
        return reader.read(_generic_argument(type_arguments))

    function = node
    variable_type = None
    if node.type == "variable_declarator":
        function = unwrap_parenthesized(node.child_by_field_name("value"))
        variable_type = node.child_by_field_name("type")

    param = _first_parameter(function)
    pattern = param
    param_type = None
    if param is not None and param.type in {"required_parameter", "optional_parameter"}:
        pattern = param.child_by_field_name("pattern")
        param_type = param.child_by_field_name("type")
    names, defaults = _destructured_defaults(pattern)

    if param_type is not None:
        props = reader.read(param_type)
    elif variable_type is not None:
        props = reader.read(_generic_argument(variable_type))
    else:
        props = [PropInfo(name=name, required=name not in defaults) for name in names]

    for prop in props:
        if prop.name in defaults:
            prop.default_value = defaults[prop.name]
    return props


def analyze_file(file: ProjectFile) -> FileExports:
    """
    Export index entries and components of one file.

    Raises:
        FragmentParseError: if the file does not parse cleanly.
    """
    tree = parse_checked(file.content, file.path)
    root = tree.root_node

    local_types: Dict[str, Node] = {}
    declarations: Dict[str, _Declaration] = {}
    ordered: List[_Declaration] = []
    exported_names: Dict[str, bool] = {}  # local name -> default export
    exports: List[ExportEntry] = []

    def add_export(name: str, is_default: bool, kind: str) -> None:
        exports.append(ExportEntry(name=name, file_path=file.path, is_default=is_default, kind=kind))

    for statement in root.children:
        is_export = statement.type == "export_statement"
        is_default = is_export and has_child_token(statement, "default")
        declaration_node = statement.child_by_field_name("declaration") if is_export else statement
        if is_export and declaration_node is None and is_default:
            # `export default function () {}` and friends arrive under `value` or as direct children
            declaration_node = first_child_of_type(
                statement, "function_declaration", "generator_function_declaration", *_CLASS_TYPES
            )

        if declaration_node is not None:
            if declaration_node.type in _TYPE_DECLARATION_KINDS:
                name = node_text(declaration_node.child_by_field_name("name"))
                if declaration_node.type != "enum_declaration":
                    local_types[name] = declaration_node
                if is_export:
                    add_export(name, is_default, _TYPE_DECLARATION_KINDS[declaration_node.type])
                continue
            for declaration in _collect_declarations(declaration_node):
                declarations[declaration.name] = declaration
                ordered.append(declaration)
                if is_export:
                    exported_names[declaration.name] = exported_names.get(declaration.name, False) or is_default
                    add_export(declaration.name, is_default, declaration.kind)
            if is_export and declaration_node.type in {"lexical_declaration", "variable_declaration"}:
                # destructured exports: `export const { a, b } = obj`
                for declarator in declaration_node.named_children:
                    name_node = declarator.child_by_field_name("name")
                    if declarator.type == "variable_declarator" and name_node is not None and name_node.type != "identifier":
                        for name in pattern_names(name_node):
                            add_export(name, False, "variable")
            continue

        if not is_export:
            continue

        value = statement.child_by_field_name("value")
        if value is not None:
            value = unwrap_parenthesized(value)
            name_node = value.child_by_field_name("name") if value is not None else None
            if value is not None and value.type in _NAMED_EXPRESSION_KINDS and name_node is not None:
                # `export default function Name() {}` parsed as an expression
                declaration = _Declaration(node_text(name_node), _NAMED_EXPRESSION_KINDS[value.type], value)
                declarations[declaration.name] = declaration
                ordered.append(declaration)
                exported_names[declaration.name] = True
                add_export(declaration.name, True, declaration.kind)
            # `export default Name;`
            elif value is not None and value.type == "identifier":
                name = node_text(value)
                exported_names[name] = True
                known = declarations.get(name)
                add_export(name, True, known.kind if known else "value")
            continue

        clause = first_child_of_type(statement, "export_clause")
        if clause is None:
            continue
        source = statement.child_by_field_name("source")
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            local = node_text(spec.child_by_field_name("name")).strip("'\"")
            alias_node = spec.child_by_field_name("alias")
            exported_as = node_text(alias_node).strip("'\"") if alias_node is not None else local
            default = exported_as == "default"
            public_name = local if default else exported_as
            if source is not None:
                add_export(public_name, default, "reexport")
                continue
            if default or public_name == local:
                exported_names[local] = exported_names.get(local, False) or default
            known = declarations.get(local)
            if known is None and local in local_types:
                kind = _TYPE_DECLARATION_KINDS.get(local_types[local].type, "type")
            else:
                kind = known.kind if known else "value"
            add_export(public_name, default, kind)

    reader = PropSchemaReader(local_types)
    components: List[ComponentInfo] = []
    for declaration in ordered:
        if declaration.name not in exported_names:
            continue
        candidate = _candidate(declaration)
        if candidate is None or not is_ui_component(candidate):
            continue
        line, column = line_column(declaration.node)
        components.append(
            ComponentInfo(
                name=declaration.name,
                file_path=file.path,
                props=_component_props(declaration, reader),
                is_default_export=exported_names[declaration.name],
                kind=declaration.kind,
                line=line,
                column=column,
            )
        )
    return FileExports(components=components, exports=exports)


def _eligible(files: Iterable[ProjectFile]) -> List[ProjectFile]:
    return [file for file in files if file.kind.is_source]


def build_catalog(files: Iterable[ProjectFile]) -> List[ComponentInfo]:
    components: List[ComponentInfo] = []
    for file in _eligible(files):
        try:
            components.extend(analyze_file(file).components)
        except FragmentParseError as e:
            logger.warning(f"Skipping {file.path} in component catalog: {e}")
    return components


def build_export_index(files: Iterable[ProjectFile]) -> List[ExportEntry]:
    exports: List[ExportEntry] = []
    for file in _eligible(files):
        try:
            exports.extend(analyze_file(file).exports)
        except FragmentParseError as e:
            logger.warning(f"Skipping {file.path} in export index: {e}")
    return exports


class ComponentDetector:
    """Builds catalog snapshots and keeps simple timing figures for the last build."""

    def __init__(self, enable_performance_monitoring: bool = True):
        self.enable_performance_monitoring = enable_performance_monitoring
        self.performance_metrics = {
            "total_files": 0,
            "skipped_files": 0,
            "total_components": 0,
            "total_exports": 0,
            "parse_time": 0.0,
        }

    def build(self, context: CodeContext) -> ProjectCatalog:
        components: List[ComponentInfo] = []
        exports: List[ExportEntry] = []
        metrics = {key: 0 for key in self.performance_metrics}
        metrics["parse_time"] = 0.0

        for file in _eligible(context.project_files):
            start = time.time()
            try:
                result = analyze_file(file)
            except FragmentParseError as e:
                metrics["skipped_files"] += 1
                logger.warning(f"Skipping {file.path}: {e}")
                continue
            finally:
                metrics["total_files"] += 1
                metrics["parse_time"] += time.time() - start
            components.extend(result.components)
            exports.extend(result.exports)

        metrics["total_components"] = len(components)
        metrics["total_exports"] = len(exports)
        if self.enable_performance_monitoring:
            self.performance_metrics = metrics
            logger.info(
                f"Catalog built: {metrics['total_components']} components, {metrics['total_exports']} exports "
                f"from {metrics['total_files']} files ({metrics['skipped_files']} skipped) "
                f"in {metrics['parse_time']:.3f}s"
            )
        return ProjectCatalog(components=tuple(components), exports=tuple(exports))
