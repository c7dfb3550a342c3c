"""
Assembly of a fragment, its merged imports and an optional preview wrapper into one
source unit.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .import_synthesizer import ImportSynthesizer, merge_imports, render_imports
from .models import DependencyContext, ImportInfo, ProjectCatalog

logger = logging.getLogger("part_render.compiler")

FALLBACK_COMPONENT_NAME = "Component"
WRAPPER_NAME = "PreviewWrapper"

_EXPORT_PATTERN = re.compile(
    r"\bexport\s*[{*]|\bexport\s+(?:default|const|let|var|function|class|async|type|interface|enum)\b"
)
_DECLARATION_PATTERN = re.compile(r"\b(?:function\*?|const|let|var|class)\s+([A-Za-z_$][\w$]*)")

_WRAPPER_TEMPLATE = """// Auto-generated preview wrapper
export default function {wrapper}() {{
  const mockProps = {props};

  try {{
    return <{name} {{...mockProps}} />;
  }} catch (error) {{
    return (
      <div style={{{{ color: 'red', padding: '20px', border: '1px solid red', borderRadius: '4px', backgroundColor: '#ffebee' }}}}>
        <h3>Component Error</h3>
        <pre>{{error instanceof Error ? error.message : String(error)}}</pre>
      </div>
    );
  }}
}}"""


@dataclass
class AssembledUnit:
    code: str
    imports: List[ImportInfo] = field(default_factory=list)
    suggested_imports: List[ImportInfo] = field(default_factory=list)
    unresolved_identifiers: List[str] = field(default_factory=list)
    wrapped: bool = False
    component_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def has_export(source: str) -> bool:
    """Literal check for export syntax anywhere in the fragment."""
    return bool(_EXPORT_PATTERN.search(source))


def detect_component_name(source: str) -> Optional[str]:
    match = _DECLARATION_PATTERN.search(source)
    return match.group(1) if match else None


def render_wrapper(component_name: str, mock_props: Optional[Dict[str, Any]] = None) -> str:
    props = json.dumps(mock_props or {}, indent=2, sort_keys=True).replace("\n", "\n  ")
    return _WRAPPER_TEMPLATE.format(wrapper=WRAPPER_NAME, name=component_name, props=props)


def strip_spans(source: str, spans: Iterable[Tuple[int, int]]) -> str:
    """Remove byte ranges (and the line break that follows each) from `source`."""
    data = source.encode("utf-8")
    for start, end in sorted(spans, reverse=True):
        while end < len(data) and data[end:end + 1] in (b" ", b"\t", b";"):
            end += 1
        if data[end:end + 2] == b"\r\n":
            end += 2
        elif data[end:end + 1] == b"\n":
            end += 1
        data = data[:start] + data[end:]
    return data.decode("utf-8")


class Assembler:
    """Builds the compilable unit for one fragment."""

    def __init__(self, synthesizer: ImportSynthesizer, wrap_component: bool = True):
        self.synthesizer = synthesizer
        self.wrap_component = wrap_component

    def assemble(
        self,
        source: str,
        context: DependencyContext,
        additional_imports: Iterable[ImportInfo] = (),
        mock_props: Optional[Dict[str, Any]] = None,
        from_file: Optional[str] = None,
        wrap_component: Optional[bool] = None,
    ) -> AssembledUnit:
        additional = list(additional_imports)
        bound = set()
        for info in additional:
            bound.update(info.local_names)
        missing = [name for name in context.missing_identifiers if name not in bound]

        suggested, unresolved = self.synthesizer.suggest_imports(missing, from_file)
        merged = self.synthesizer.ensure_runtime_import(merge_imports(context.imports, suggested, additional))

        body = strip_spans(source, [info.span for info in context.imports if info.span is not None]).strip("\r\n")

        warnings: List[str] = []
        wrapper = None
        component_name = None
        wrap = self.wrap_component if wrap_component is None else wrap_component
        if wrap and not has_export(source):
            component_name = detect_component_name(body)
            if component_name is None:
                component_name = FALLBACK_COMPONENT_NAME
                warnings.append(
                    f"Could not detect a component name; wrapping '{FALLBACK_COMPONENT_NAME}' instead"
                )
                logger.warning(warnings[-1])
            wrapper = render_wrapper(component_name, mock_props)

        sections = [render_imports(merged), body]
        if wrapper is not None:
            sections.append(wrapper)
        code = "\n\n".join(sections) + "\n"

        return AssembledUnit(
            code=code,
            imports=merged,
            suggested_imports=suggested,
            unresolved_identifiers=unresolved,
            wrapped=wrapper is not None,
            component_name=component_name,
            warnings=warnings,
        )


def assemble(
    source: str,
    context: DependencyContext,
    catalog: ProjectCatalog,
    additional_imports: Iterable[ImportInfo] = (),
    mock_props: Optional[Dict[str, Any]] = None,
    **options: Any,
) -> AssembledUnit:
    """One-shot assembly with a throwaway synthesizer over `catalog`."""
    from_file = options.pop("from_file", None)
    wrap_component = options.pop("wrap_component", True)
    synthesizer = ImportSynthesizer(catalog=catalog, **options)
    return Assembler(synthesizer, wrap_component=wrap_component).assemble(
        source, context, additional_imports, mock_props, from_file=from_file
    )
