"""
Unit tests for the bundler adapters.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from part_render.core.bundler import (
    EsbuildBundler,
    PassthroughBundler,
    create_bundler,
    rewrite_specifiers,
)
from part_render.core.config import PartRenderConfig
from part_render.core.errors import BundleError


def completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestPassthroughBundler:

    def test_returns_source_untouched(self):
        output = PassthroughBundler().build("const a = 1;", {"x": "/abs/x.js"}, "/tmp")

        assert output.code == "const a = 1;"
        assert output.warnings == []


class TestRewriteSpecifiers:

    def test_rewrites_mapped_specifiers_only(self):
        source = "import a from './a';\nimport \"./side.css\";\nexport { b } from 'b-lib';\nimport c from 'c';"
        mapping = {"./a": "/p/a.tsx", "./side.css": "/p/side.css", "b-lib": "/p/node_modules/b/index.js"}

        rewritten = rewrite_specifiers(source, mapping)

        assert "import a from '/p/a.tsx';" in rewritten
        assert 'import "/p/side.css";' in rewritten
        assert "from '/p/node_modules/b/index.js'" in rewritten
        assert "import c from 'c';" in rewritten

    def test_empty_map_is_identity(self):
        assert rewrite_specifiers("import a from './a';", {}) == "import a from './a';"


class TestEsbuildBundler:
    """Test cases for EsbuildBundler with subprocess mocked out."""

    def test_command_flags(self):
        bundler = EsbuildBundler(output_format="cjs", bundle=True, external_modules=["react", "react-dom"])

        command = bundler.command()

        assert command[0] == "esbuild"
        assert "--loader=tsx" in command
        assert "--format=cjs" in command
        assert "--bundle" in command
        assert "--external:react" in command and "--external:react-dom" in command

    def test_transform_only_skips_bundle_flags(self):
        command = EsbuildBundler().command()

        assert "--bundle" not in command
        assert not any(flag.startswith("--external") for flag in command)

    @patch("part_render.core.bundler.subprocess.run")
    def test_successful_build(self, mock_run):
        mock_run.return_value = completed(stdout="compiled", stderr="▲ [WARNING] Unused import [unused]\n")
        bundler = EsbuildBundler(bundle=True)

        output = bundler.build("import a from './a';", {"./a": "/p/a.tsx"}, "/p")

        assert output.code == "compiled"
        assert output.warnings == ["Unused import [unused]"]
        args, kwargs = mock_run.call_args
        assert args[0] == bundler.command()
        assert kwargs["input"] == "import a from '/p/a.tsx';"
        assert kwargs["cwd"] == "/p"
        assert kwargs["text"] is True

    @patch("part_render.core.bundler.subprocess.run")
    def test_transform_only_keeps_specifiers(self, mock_run):
        mock_run.return_value = completed(stdout="out")

        EsbuildBundler().build("import a from './a';", {"./a": "/p/a.tsx"}, "/p")

        assert mock_run.call_args.kwargs["input"] == "import a from './a';"

    @patch("part_render.core.bundler.subprocess.run")
    def test_failed_build_raises(self, mock_run):
        mock_run.return_value = completed(
            returncode=1,
            stderr="✘ [ERROR] Could not resolve \"./nope\"\n▲ [WARNING] Something odd\n",
        )

        with pytest.raises(BundleError) as exc_info:
            EsbuildBundler().build("import x from './nope';", {}, "/p")

        assert 'Could not resolve "./nope"' in str(exc_info.value)
        assert exc_info.value.warnings == ["Something odd"]

    @patch("part_render.core.bundler.subprocess.run", side_effect=FileNotFoundError())
    def test_missing_executable(self, mock_run):
        with pytest.raises(BundleError, match="not found"):
            EsbuildBundler(executable="/no/esbuild").build("", {}, "/p")

    @patch("part_render.core.bundler.subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="esbuild", timeout=1))
    def test_timeout(self, mock_run):
        with pytest.raises(BundleError, match="timed out"):
            EsbuildBundler(timeout=1).build("", {}, "/p")


class TestCreateBundler:

    def test_default_is_passthrough(self):
        assert isinstance(create_bundler(PartRenderConfig()), PassthroughBundler)

    def test_esbuild_from_config(self):
        config = PartRenderConfig(bundler="esbuild", esbuild_path="/bin/esbuild", esbuild_bundle=True,
                                  external_modules=["react"], runtime_module="preact")

        bundler = create_bundler(config)

        assert isinstance(bundler, EsbuildBundler)
        assert bundler.executable == "/bin/esbuild"
        assert bundler.bundle
        assert "--jsx-import-source=preact" in bundler.command()

    def test_unknown_bundler_rejected(self):
        with pytest.raises(ValueError):
            create_bundler(PartRenderConfig(bundler="webpack"))
