"""Integration tests for CLI commands (using grouped command hierarchy)."""

import json
from pathlib import Path

from typer.testing import CliRunner

from testgraph_cli import __version__, cli
from testgraph_cli.cli import app


runner = CliRunner()

TEST_ADD = "calculator_spec.CalculatorTest.test_add"
TEST_HELPER = "calculator_spec.CalculatorTest.test_helper"


class TestSelectCommand:
    """Tests for 'tg select' command."""

    def test_select_from_stdin(self, sample_project_path: Path, add_diff: str):
        result = runner.invoke(app, ["select", str(sample_project_path)], input=add_diff)

        assert result.exit_code == 0
        assert result.stdout == f"{TEST_ADD}\n{TEST_HELPER}\n"

    def test_select_intermediate_change(self, sample_project_path: Path, helper_diff: str):
        result = runner.invoke(app, ["select", str(sample_project_path)], input=helper_diff)

        assert result.exit_code == 0
        assert result.stdout == f"{TEST_HELPER}\n"

    def test_empty_diff_prints_nothing(self, sample_project_path: Path):
        result = runner.invoke(app, ["select", str(sample_project_path)], input="")

        assert result.exit_code == 0
        assert result.stdout == ""

    def test_no_affected_tests_prints_nothing(self, sample_project_path: Path, multiply_diff: str):
        result = runner.invoke(app, ["select", str(sample_project_path)], input=multiply_diff)

        assert result.exit_code == 0
        assert result.stdout == ""

    def test_missing_project_argument(self):
        result = runner.invoke(app, ["select"])

        assert result.exit_code != 0

    def test_nonexistent_project(self):
        result = runner.invoke(app, ["select", "/nonexistent/path"], input="")

        assert result.exit_code != 0

    def test_explicit_source_roots(self, sample_project_path: Path, add_diff: str):
        result = runner.invoke(
            app,
            ["select", str(sample_project_path), "-s", "src", "-s", "tests"],
            input=add_diff,
        )

        assert result.exit_code == 0
        assert TEST_HELPER in result.stdout

    def test_custom_test_naming(self, sample_project_path: Path, add_diff: str):
        result = runner.invoke(
            app,
            ["select", str(sample_project_path), "--test-prefix", "helper_"],
            input=add_diff,
        )

        assert result.exit_code == 0
        # CalculatorTest still matches the default container suffixes
        assert "helper.helper_b" in result.stdout
        assert TEST_ADD in result.stdout

    def test_output_file(self, sample_project_path: Path, add_diff: str, temp_dir: Path):
        out = temp_dir / "affected.txt"

        result = runner.invoke(
            app, ["select", str(sample_project_path), "--output", str(out)], input=add_diff,
        )

        assert result.exit_code == 0
        assert out.read_text(encoding="utf-8") == f"{TEST_ADD}\n{TEST_HELPER}"
        assert "Wrote 2 affected test(s)" in result.output

    def test_output_file_written_when_nothing_affected(self, sample_project_path: Path, temp_dir: Path):
        out = temp_dir / "affected.txt"

        result = runner.invoke(app, ["select", str(sample_project_path), "-o", str(out)], input="")

        assert result.exit_code == 0
        assert out.exists()
        assert out.read_text(encoding="utf-8") == ""

    def test_git_base(self, sample_project_path: Path, add_diff: str, monkeypatch):
        seen = {}

        def fake_git_diff(project_dir, base="HEAD"):
            seen["base"] = base
            return add_diff

        monkeypatch.setattr(cli, "git_diff", fake_git_diff)

        result = runner.invoke(app, ["select", str(sample_project_path), "--base", "origin/main"])

        assert result.exit_code == 0
        assert seen["base"] == "origin/main"
        assert TEST_ADD in result.stdout

    def test_git_flag_uses_configured_base(self, sample_project_path: Path, monkeypatch):
        seen = {}

        def fake_git_diff(project_dir, base="HEAD"):
            seen["base"] = base
            return ""

        monkeypatch.setattr(cli, "git_diff", fake_git_diff)
        monkeypatch.setattr("testgraph_cli.config.DEFAULT_GIT_BASE", "develop")

        result = runner.invoke(app, ["select", str(sample_project_path), "--git"])

        assert result.exit_code == 0
        assert seen["base"] == "develop"

    def test_unknown_backend(self, sample_project_path: Path):
        result = runner.invoke(app, ["select", str(sample_project_path), "--backend", "jedi"], input="")

        assert result.exit_code != 0


class TestChangedCommand:
    """Tests for 'tg changed' command."""

    def test_lists_changed_functions(self, sample_project_path: Path, add_diff: str):
        result = runner.invoke(app, ["changed", str(sample_project_path)], input=add_diff)

        assert result.exit_code == 0
        assert result.stdout == "calculator.Calculator.add\n"

    def test_nothing_changed(self, sample_project_path: Path):
        result = runner.invoke(app, ["changed", str(sample_project_path)], input="")

        assert result.exit_code == 0
        assert result.stdout == ""


class TestGraphCommands:
    """Tests for 'tg graph' commands."""

    def test_stats(self, sample_project_path: Path):
        result = runner.invoke(app, ["graph", "stats", str(sample_project_path)])

        assert result.exit_code == 0
        assert "Functions: 5" in result.stdout
        assert "Callees: 2, Total edges: 3" in result.stdout

    def test_show(self, sample_project_path: Path):
        result = runner.invoke(app, ["graph", "show", str(sample_project_path)])

        assert result.exit_code == 0
        assert "calculator.Calculator.add" in result.stdout
        assert "helper.helper_b" in result.stdout

    def test_show_callee_without_callers(self, sample_project_path: Path):
        result = runner.invoke(
            app, ["graph", "show", str(sample_project_path), "--callee", "calculator.Calculator.multiply"],
        )

        assert result.exit_code == 0
        assert "No call edges found." in result.stdout

    def test_export_json(self, sample_project_path: Path, temp_dir: Path):
        out = temp_dir / "graph.json"

        result = runner.invoke(
            app, ["graph", "export", str(sample_project_path), "--format", "json", "-o", str(out)],
        )

        assert result.exit_code == 0
        assert json.loads(out.read_text(encoding="utf-8")) == {
            "calculator.Calculator.add": [TEST_ADD, "helper.helper_b"],
            "helper.helper_b": [TEST_HELPER],
        }

    def test_export_dot(self, sample_project_path: Path, temp_dir: Path):
        out = temp_dir / "graph.dot"

        result = runner.invoke(app, ["graph", "export", str(sample_project_path), "-o", str(out)])

        assert result.exit_code == 0
        content = out.read_text(encoding="utf-8")
        assert content.startswith("digraph TestGraph {")
        assert f'"{TEST_ADD}" [shape=box];' in content
        assert f'"{TEST_HELPER}" -> "helper.helper_b";' in content

    def test_export_invalid_format(self, sample_project_path: Path):
        result = runner.invoke(app, ["graph", "export", str(sample_project_path), "--format", "png"])

        assert result.exit_code != 0


class TestConfigCommands:
    """Tests for 'tg config' commands."""

    def test_show_defaults(self, temp_config: Path):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "Test, Tests, Spec" in result.stdout
        assert "HEAD" in result.stdout

    def test_set_and_show(self, temp_config: Path):
        result = runner.invoke(app, ["config", "set", "--test-suffix", "Suite", "--backend", "tree-sitter"])

        assert result.exit_code == 0
        assert "Saved configuration" in result.stdout
        assert temp_config.exists()

        shown = runner.invoke(app, ["config", "show"])
        assert "Suite" in shown.stdout
        assert "tree-sitter" in shown.stdout

    def test_set_nothing_is_an_error(self, temp_config: Path):
        result = runner.invoke(app, ["config", "set"])

        assert result.exit_code != 0

    def test_set_unknown_backend(self, temp_config: Path):
        result = runner.invoke(app, ["config", "set", "--backend", "jedi"])

        assert result.exit_code != 0
        assert not temp_config.exists()

    def test_reset(self, temp_config: Path):
        runner.invoke(app, ["config", "set", "--git-base", "origin/main"])

        result = runner.invoke(app, ["config", "reset"])

        assert result.exit_code == 0
        shown = runner.invoke(app, ["config", "show"])
        assert "origin/main" not in shown.stdout


class TestGlobalOptions:
    """Tests for the root callback."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"v{__version__}" in result.stdout

    def test_invalid_log_level(self, sample_project_path: Path):
        result = runner.invoke(app, ["--log-level", "LOUD", "graph", "stats", str(sample_project_path)])

        assert result.exit_code != 0

    def test_debug_logging_still_selects(self, sample_project_path: Path, add_diff: str):
        result = runner.invoke(
            app, ["--log-level", "DEBUG", "select", str(sample_project_path)], input=add_diff,
        )

        assert result.exit_code == 0
        assert TEST_ADD in result.output
