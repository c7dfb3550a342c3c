"""
Unit tests for shared helpers.
"""

from part_render.core.utils import (
    is_path_ignored,
    loads_jsonc,
    relative_module_specifier,
    split_package_specifier,
    strip_json_comments,
    strip_source_suffix,
)


class TestJsonc:

    def test_comments_outside_strings_removed(self):
        text = '{"url": "http://x/*y*/", // trailing\n /* block */ "a": 1}'

        assert '"http://x/*y*/"' in strip_json_comments(text)
        assert loads_jsonc(text) == {"url": "http://x/*y*/", "a": 1}

    def test_trailing_commas(self):
        assert loads_jsonc('{"a": [1, 2,], "b": {"c": 3,},}') == {"a": [1, 2], "b": {"c": 3}}


class TestIgnorePatterns:

    def test_segment_pattern(self):
        assert is_path_ignored("packages/web/node_modules/x/index.js", "node_modules")
        assert not is_path_ignored("src/modules/a.ts", "node_modules")

    def test_anchored_and_directory_patterns(self):
        assert is_path_ignored("dist/main.js", "/dist")
        assert not is_path_ignored("src/dist/main.js", "/dist")
        assert is_path_ignored("src/legacy/old/a.js", "src/legacy/")

    def test_wildcards(self):
        assert is_path_ignored("src/api.generated.ts", "*.generated.ts")


class TestModuleSpecifiers:

    def test_strip_source_suffix(self):
        assert strip_source_suffix("src/a.tsx") == "src/a"
        assert strip_source_suffix("types/b.d.ts") == "types/b"
        assert strip_source_suffix("styles.css") == "styles.css"

    def test_relative_module_specifier(self):
        assert relative_module_specifier("src/components/Button.tsx", "src/pages") == "../components/Button"
        assert relative_module_specifier("src/components/Button.tsx", "src/components") == "./Button"
        assert relative_module_specifier("src/utils/index.ts", "") == "./src/utils"
        assert relative_module_specifier("src/index.ts", "src") == "."

    def test_split_package_specifier(self):
        assert split_package_specifier("@scope/pkg/sub/path") == ("@scope/pkg", "sub/path")
        assert split_package_specifier("lodash/debounce") == ("lodash", "debounce")
        assert split_package_specifier("react") == ("react", "")
