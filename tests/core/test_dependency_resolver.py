"""
Unit tests for fragment identifier and import analysis.
"""

import pytest

from part_render.core.dependency_resolver import BUILTIN_IDENTIFIERS, DependencyResolver, analyze_source
from part_render.core.errors import FragmentParseError


class TestAnalyzeSource:
    """Test cases for analyze_source."""

    def test_missing_identifier_from_call(self):
        """Test a called but undeclared helper is reported missing."""
        context = analyze_source("function Greet({name}) { return el('div', null, name); }")

        assert context.missing_identifiers == {"el"}
        assert "Greet" in context.declared_identifiers
        assert "name" in context.declared_identifiers
        assert context.imports == []

    def test_imports_bind_local_names(self):
        """Test imported names are declared and carry their specifiers."""
        source = """import React, { useState as useLocal } from 'react';
import * as utils from './utils';
import type { Theme } from '@/theme';
import './styles.css';

export default function Counter() {
  const [count, setCount] = useLocal(0);
  return <div onClick={() => setCount(count + 1)}>{utils.format(count)}</div>;
}
"""
        context = analyze_source(source)

        assert [info.module for info in context.imports] == ["react", "./utils", "@/theme", "./styles.css"]
        react = context.imports[0]
        assert react.specifiers[0].is_default
        assert react.specifiers[1].name == "useState"
        assert react.specifiers[1].alias == "useLocal"
        assert context.imports[1].specifiers[0].is_namespace
        assert context.imports[1].is_relative
        assert context.imports[2].type_only
        assert context.imports[3].specifiers == []
        assert {"React", "useLocal", "utils", "Theme"} <= context.declared_identifiers
        assert context.missing_identifiers == set()

    def test_import_spans_cover_statements(self):
        """Test each import records the byte range of its statement."""
        source = "import a from 'a';\nconst b = a;\n"
        info = analyze_source(source).imports[0]

        start, end = info.span
        assert source.encode("utf-8")[start:end].decode("utf-8").startswith("import a from 'a'")

    def test_jsx_component_tags_are_references(self):
        """Test capitalized JSX tags count as used and lowercase ones do not."""
        context = analyze_source("const View = () => <section><Button label='x' /></section>;")

        assert "Button" in context.missing_identifiers
        assert "section" not in context.used_identifiers
        assert "label" not in context.used_identifiers

    def test_builtins_are_never_missing(self):
        """Test host and standard library globals are filtered out."""
        source = "const data = JSON.stringify({ at: new Date(), n: Math.max(1, 2) }); console.log(data, window);"
        context = analyze_source(source)

        assert context.missing_identifiers == set()
        assert {"JSON", "Date", "Math", "console", "window"} <= BUILTIN_IDENTIFIERS

    def test_member_properties_are_not_identifiers(self):
        """Test `obj.prop` only references `obj`."""
        context = analyze_source("const x = store.getState().items;")

        assert context.missing_identifiers == {"store"}
        assert "getState" not in context.used_identifiers

    def test_parameters_and_destructuring_are_declared(self):
        """Test parameters, defaults, rest elements and catch bindings are declared."""
        source = """
function List({ items = [], render: renderItem, ...rest }, [first, second]) {
  try {
    return items.map((item, index) => renderItem(item, index, rest, first, second));
  } catch (err) {
    return String(err);
  }
}
"""
        context = analyze_source(source)

        assert {"items", "renderItem", "rest", "first", "second", "item", "index", "err"} <= context.declared_identifiers
        assert context.missing_identifiers == set()

    def test_re_exports_are_not_references(self):
        """Test names forwarded from another module are neither used nor missing."""
        source = """export { Button } from './Button';
export * as icons from './icons';
export { default as Card } from './Card';
export const A = () => <div />;
"""
        context = analyze_source(source)

        assert context.missing_identifiers == set()
        assert not {"Button", "icons", "Card"} & context.used_identifiers
        assert context.imports == []

    def test_local_export_clause_still_references(self):
        context = analyze_source("export { Thing };")

        assert context.missing_identifiers == {"Thing"}

    def test_type_references(self):
        """Test referenced types are reported missing unless declared locally."""
        source = """
interface Props { user: User; size: Size }
type Size = 'sm' | 'lg';
export const Avatar = (props: Props) => <img alt={props.user.name} />;
"""
        context = analyze_source(source)

        assert context.missing_identifiers == {"User"}

    def test_undeclared_use_counts_even_when_declared_later(self):
        """Test declarations count regardless of position in the fragment."""
        context = analyze_source("const a = helper();\nfunction helper() { return 1; }")

        assert context.missing_identifiers == set()

    @pytest.mark.parametrize("source", [
        "const a = b + console.log(undefined);",
        "export default function X({ y }) { return <Z w={y ?? window.q} />; }",
        "class K extends Base<T> { m(p: Q) { return new Map<string, R>(); } }",
    ])
    def test_missing_is_used_minus_declared_and_builtins(self, source):
        context = analyze_source(source)

        assert context.missing_identifiers <= context.used_identifiers
        assert not context.missing_identifiers & BUILTIN_IDENTIFIERS
        assert not context.missing_identifiers & context.declared_identifiers

    def test_syntax_error_raises(self):
        """Test an unparseable fragment raises FragmentParseError with a position."""
        with pytest.raises(FragmentParseError) as exc_info:
            analyze_source("function Broken( { return <div>; }")

        assert exc_info.value.line is not None

    def test_typescript_files_use_typescript_grammar(self):
        """Test angle-bracket casts parse when the path ends in .ts."""
        context = analyze_source("const n = <number>value;", "src/cast.ts")

        assert context.missing_identifiers == {"value"}

    def test_analysis_is_deterministic(self):
        """Test analysing the same fragment twice gives identical results."""
        source = "export const A = () => <B c={d} />;"

        first = analyze_source(source)
        second = analyze_source(source)

        assert first.missing_identifiers == second.missing_identifiers == {"B", "d"}
        assert first.used_identifiers == second.used_identifiers


class TestDependencyResolver:
    """Test cases for DependencyResolver."""

    def test_resolves_relative_and_package_imports(self, sample_project):
        """Test resolvable modules land in resolved_modules and the rest in unresolved_modules."""
        resolver = DependencyResolver(sample_project)
        source = """import { Button } from './components/Button';
import { useState } from 'state-lib';
import thing from 'totally-unknown-pkg';

export default function Page() {
  const [value] = useState(thing);
  return <Button label={value} />;
}
"""
        context = resolver.analyze_dependencies(source, str(sample_project / "src" / "Page.tsx"))

        assert context.resolved_modules["./components/Button"] == str(sample_project / "src/components/Button.tsx")
        assert context.resolved_modules["state-lib"] == str(sample_project / "node_modules/state-lib/index.js")
        assert context.unresolved_modules == ["totally-unknown-pkg"]
        assert context.imports[0].resolved_path == context.resolved_modules["./components/Button"]
        assert context.imports[2].resolved_path is None
        assert context.missing_identifiers == set()

    def test_unresolved_module_is_not_an_error(self, temp_dir):
        """Test analysis succeeds with no project files at all."""
        resolver = DependencyResolver(temp_dir)

        context = resolver.analyze_dependencies("import x from 'nowhere';\nexport default x;")

        assert context.unresolved_modules == ["nowhere"]
        assert context.resolved_modules == {}
