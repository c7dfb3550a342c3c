"""
Tests for the part-render command line interface.
"""

import io
import json
import sys

import pytest

from part_render.cli.part_render import build_parser, main


def run_cli(argv, monkeypatch, stdin=None):
    if stdin is not None:
        monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
    args = build_parser().parse_args(argv)
    return args.func(args)


@pytest.fixture(autouse=True)
def isolated_cwd(temp_dir, monkeypatch):
    """Keep a stray partrender.config.yaml in the working directory out of the tests."""
    monkeypatch.chdir(temp_dir)


class TestAnalyzeCommand:

    def test_analyze_json_from_stdin(self, sample_project, monkeypatch, capsys):
        code = "import { useState } from 'state-lib';\nconst A = () => <Card value={useState()} />;"

        exit_code = run_cli(
            ["analyze", "-", "--project-root", str(sample_project), "--format", "json", "--file-path", "src/A.tsx"],
            monkeypatch,
            stdin=code,
        )

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["missing_identifiers"] == ["Card"]
        assert data["imports"] == ["import { useState } from 'state-lib';"]
        assert data["unresolved_modules"] == []

    def test_analyze_syntax_error(self, sample_project, monkeypatch, capsys):
        exit_code = run_cli(["analyze", "--project-root", str(sample_project)], monkeypatch, stdin="const = ;")

        assert exit_code == 1
        assert "Syntax error" in capsys.readouterr().err


class TestCompileCommand:

    def test_compile_file_to_stdout(self, sample_project, write_file, monkeypatch, capsys):
        fragment = write_file(sample_project, "src/pages/Home.tsx", "const Home = () => <Button label='Go' />;\n")

        exit_code = run_cli(
            ["compile", str(fragment), "--project-root", str(sample_project), "--mock-props", '{"id": 7}'],
            monkeypatch,
        )

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "import { Button } from '../components/Button';" in out
        assert "<Home {...mockProps} />" in out
        assert '"id": 7' in out

    def test_compile_file_outside_project_uses_root_relative_imports(self, sample_project, tmp_path,
                                                                      monkeypatch, capsys):
        fragment = tmp_path / "scratch.tsx"
        fragment.write_text("const Home = () => <Button label='Go' />;\n", encoding="utf-8")

        exit_code = run_cli(["compile", str(fragment), "--project-root", str(sample_project)], monkeypatch)

        assert exit_code == 0
        assert "import { Button } from './src/components/Button';" in capsys.readouterr().out

    def test_compile_no_wrap_to_file(self, sample_project, temp_dir, monkeypatch, capsys):
        output = temp_dir / "out.tsx"

        exit_code = run_cli(
            ["compile", "--project-root", str(sample_project), "--no-wrap", "--output", str(output)],
            monkeypatch,
            stdin="const Foo = () => <div />;",
        )

        assert exit_code == 0
        written = output.read_text(encoding="utf-8")
        assert written.startswith("import React from 'react';")
        assert "PreviewWrapper" not in written
        assert capsys.readouterr().out == ""

    def test_compile_failure_exit_code(self, sample_project, monkeypatch, capsys):
        exit_code = run_cli(
            ["compile", "--project-root", str(sample_project), "--format", "json"],
            monkeypatch,
            stdin="const = ;",
        )

        assert exit_code == 1
        captured = capsys.readouterr()
        assert json.loads(captured.out)["success"] is False
        assert "Compilation failed" in captured.err


class TestComponentsCommand:

    def test_components_text(self, sample_project, monkeypatch, capsys):
        exit_code = run_cli(["components", "--project-root", str(sample_project)], monkeypatch)

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "Button  src/components/Button.tsx" in out
        assert "Card (default)" in out
        assert "onClick?:" in out

    def test_components_filter_json(self, sample_project, monkeypatch, capsys):
        exit_code = run_cli(
            ["components", "--project-root", str(sample_project), "--filter", "BUT", "--format", "json"],
            monkeypatch,
        )

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["total"] == 1
        assert data["components"][0]["name"] == "Button"


def test_main_exits_with_command_status(sample_project, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["part-render", "components", "--project-root", str(sample_project)])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 0


def test_main_requires_a_command(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["part-render"])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 2
