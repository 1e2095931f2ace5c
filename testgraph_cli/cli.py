"""Typer-based CLI for TestGraph affected-test selection."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .api import (
    default_source_roots,
    find_affected_tests_in_index,
    git_diff,
)
from .call_graph import GraphBuilder
from .change_mapper import ChangeMapper
from .cli_groups import config_grp, graph_grp
from .config_manager import (
    ANALYSIS_BACKENDS,
    clear_config,
    load_analysis_config,
    load_selection_config,
    save_analysis_config,
    save_selection_config,
)
from .diff_parser import DiffParser
from .emitter import emit, emit_to_file, emit_to_stdout
from .graph_export import export_dot, export_json
from .parser import PythonSymbolIndex, create_symbol_index
from .resolver import NamingConventionClassifier

console = Console()

app = typer.Typer(
    help="🧪 TestGraph CLI — select the tests affected by a change set.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(graph_grp, name="graph")
app.add_typer(config_grp, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"TestGraph CLI v{__version__}")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option(
        config.LOG_LEVEL,
        "--log-level",
        help="Logging level for diagnostics on stderr (DEBUG, INFO, WARNING, ERROR).",
    ),
):
    """TestGraph CLI: static call-graph based test impact analysis."""
    if log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise typer.BadParameter(f"Unknown log level '{log_level}'")
    _configure_logging(log_level)


# ------------------------------------------------------------------
# Shared helpers
# ------------------------------------------------------------------

def _resolve_source_roots(project_path: Path, source_roots: Optional[List[Path]]) -> List[Path]:
    if not source_roots:
        return default_source_roots(project_path)
    return [root if root.is_absolute() else project_path / root for root in source_roots]


def _open_index(
    project_path: Path,
    source_roots: Optional[List[Path]],
    backend: Optional[str],
) -> PythonSymbolIndex:
    backend = backend or config.ANALYSIS_BACKEND
    if backend not in ANALYSIS_BACKENDS:
        raise typer.BadParameter(f"Backend must be one of: {', '.join(ANALYSIS_BACKENDS)}")
    try:
        return create_symbol_index(
            backend,
            project_path.resolve(),
            _resolve_source_roots(project_path, source_roots),
        )
    except RuntimeError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=1)


def _read_diff(project_path: Path, base: Optional[str], use_git: bool) -> str:
    if base or use_git:
        return git_diff(project_path, base or config.DEFAULT_GIT_BASE)
    return typer.get_text_stream("stdin").read()


def _classifier(
    test_prefixes: Optional[List[str]],
    test_suffixes: Optional[List[str]],
) -> NamingConventionClassifier:
    return NamingConventionClassifier(
        name_prefixes=test_prefixes or config.TEST_NAME_PREFIXES,
        container_suffixes=test_suffixes or config.TEST_CONTAINER_SUFFIXES,
    )


# ------------------------------------------------------------------
# Selection
# ------------------------------------------------------------------

@app.command("select")
def select(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Project / repository root."),
    source_roots: Optional[List[Path]] = typer.Option(
        None, "--source-root", "-s", help="Source directory (repeatable). Defaults to src/, tests/, test/.",
    ),
    base: Optional[str] = typer.Option(
        None, "--base", "-b", help="Run 'git diff --unified=0 BASE' instead of reading stdin.",
    ),
    use_git: bool = typer.Option(
        False, "--git", "-g", help="Run 'git diff' against the configured git_base instead of reading stdin.",
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the list to a file."),
    extensions: Optional[List[str]] = typer.Option(None, "--ext", help="Source extension (repeatable)."),
    test_prefixes: Optional[List[str]] = typer.Option(None, "--test-prefix", help="Test function name prefix (repeatable)."),
    test_suffixes: Optional[List[str]] = typer.Option(None, "--test-suffix", help="Test container suffix (repeatable)."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Analysis backend: ast or tree-sitter."),
):
    """Print the tests affected by the diff on stdin, one per line."""
    index = _open_index(project_path, source_roots, backend)
    diff = _read_diff(project_path, base, use_git)

    affected: set = set()
    if diff.strip():
        _, affected = find_affected_tests_in_index(
            diff,
            index,
            extensions=extensions or None,
            classifier=_classifier(test_prefixes, test_suffixes),
        )

    if output is not None:
        emit_to_file(affected, output)
        typer.echo(f"Wrote {len(affected)} affected test(s) to {output}", err=True)
    elif affected:
        emit_to_stdout(affected)


@app.command("changed")
def changed(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Project / repository root."),
    source_roots: Optional[List[Path]] = typer.Option(None, "--source-root", "-s", help="Source directory (repeatable)."),
    base: Optional[str] = typer.Option(None, "--base", "-b", help="Run 'git diff --unified=0 BASE' instead of reading stdin."),
    use_git: bool = typer.Option(False, "--git", "-g", help="Run 'git diff' against the configured git_base."),
    extensions: Optional[List[str]] = typer.Option(None, "--ext", help="Source extension (repeatable)."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Analysis backend: ast or tree-sitter."),
):
    """Print the functions touched by the diff on stdin, one per line."""
    index = _open_index(project_path, source_roots, backend)
    diff = _read_diff(project_path, base, use_git)
    file_diffs = DiffParser.parse_for_language(diff, extensions or config.SOURCE_EXTENSIONS)
    functions = ChangeMapper().collect(file_diffs, index.declared_functions())
    if functions:
        typer.echo(emit(functions))


# ------------------------------------------------------------------
# Graph diagnostics
# ------------------------------------------------------------------

@graph_grp.command("stats")
def graph_stats(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Project / repository root."),
    source_roots: Optional[List[Path]] = typer.Option(None, "--source-root", "-s", help="Source directory (repeatable)."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Analysis backend: ast or tree-sitter."),
):
    """Show function and edge counts of the reverse call graph."""
    index = _open_index(project_path, source_roots, backend)
    graph = GraphBuilder().build(index.call_edges())
    typer.echo(f"Functions: {len(index.declared_functions())}")
    typer.echo(str(graph.stats()))


@graph_grp.command("show")
def graph_show(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Project / repository root."),
    callee: Optional[str] = typer.Option(None, "--callee", "-c", help="Only show callers of this function."),
    source_roots: Optional[List[Path]] = typer.Option(None, "--source-root", "-s", help="Source directory (repeatable)."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Analysis backend: ast or tree-sitter."),
):
    """Print callee -> callers entries as a table."""
    index = _open_index(project_path, source_roots, backend)
    graph = GraphBuilder().build(index.call_edges())

    if callee is not None:
        edges = {callee: set(graph.get_callers(callee))}
    else:
        edges = graph.all_edges()

    if not any(edges.values()):
        typer.echo("No call edges found.")
        raise typer.Exit(code=0)

    table = Table(title="Reverse call graph", show_lines=False)
    table.add_column("Callee", style="cyan", overflow="fold")
    table.add_column("Callers", overflow="fold")
    for name in sorted(edges):
        if edges[name]:
            table.add_row(name, "\n".join(sorted(edges[name])))
    console.print(table)


@graph_grp.command("export")
def graph_export(
    project_path: Path = typer.Argument(..., exists=True, file_okay=False, help="Project / repository root."),
    fmt: str = typer.Option("dot", "--format", "-f", help="Export format: dot or json."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path."),
    focus: str = typer.Option("", "--focus", help="Only export edges touching ids containing this text."),
    source_roots: Optional[List[Path]] = typer.Option(None, "--source-root", "-s", help="Source directory (repeatable)."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Analysis backend: ast or tree-sitter."),
):
    """Export the reverse call graph to Graphviz DOT or JSON."""
    fmt = fmt.lower()
    if fmt not in {"dot", "json"}:
        raise typer.BadParameter("Format must be one of: dot, json")

    index = _open_index(project_path, source_roots, backend)
    graph = GraphBuilder().build(index.call_edges())

    if output is None:
        output = Path.cwd() / f"{project_path.resolve().name}_callgraph.{fmt}"

    if fmt == "dot":
        export_dot(graph, output, focus=focus, classifier=_classifier(None, None))
    else:
        export_json(graph, output, focus=focus)

    typer.echo(f"Exported graph to {output}")


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------

@config_grp.command("show")
def config_show():
    """Show the effective selection and analysis settings."""
    selection = load_selection_config()
    analysis = load_analysis_config()

    table = Table(title=f"Configuration ({config.CONFIG_FILE})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("extensions", ", ".join(selection["extensions"]))
    table.add_row("test_prefixes", ", ".join(selection["test_prefixes"]))
    table.add_row("test_suffixes", ", ".join(selection["test_suffixes"]))
    table.add_row("backend", analysis["backend"])
    table.add_row("git_base", analysis["git_base"])
    console.print(table)


@config_grp.command("set")
def config_set(
    extensions: Optional[List[str]] = typer.Option(None, "--ext", help="Source extension (repeatable)."),
    test_prefixes: Optional[List[str]] = typer.Option(None, "--test-prefix", help="Test function name prefix (repeatable)."),
    test_suffixes: Optional[List[str]] = typer.Option(None, "--test-suffix", help="Test container suffix (repeatable)."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Analysis backend: ast or tree-sitter."),
    git_base: Optional[str] = typer.Option(None, "--git-base", help="Default ref for 'git diff'."),
):
    """Persist selection settings to config.toml."""
    if not any([extensions, test_prefixes, test_suffixes, backend, git_base]):
        raise typer.BadParameter("Nothing to set. Pass at least one option.")

    if backend is not None and backend not in ANALYSIS_BACKENDS:
        raise typer.BadParameter(f"Backend must be one of: {', '.join(ANALYSIS_BACKENDS)}")

    ok = True
    if extensions or test_prefixes or test_suffixes:
        ok = save_selection_config(
            extensions=extensions or None,
            test_prefixes=test_prefixes or None,
            test_suffixes=test_suffixes or None,
        )
    if backend or git_base:
        ok = save_analysis_config(backend=backend, git_base=git_base) and ok

    if not ok:
        typer.echo(f"❌ Could not write {config.CONFIG_FILE}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Saved configuration to {config.CONFIG_FILE}")


@config_grp.command("reset")
def config_reset():
    """Reset selection and analysis settings to the defaults."""
    if not clear_config():
        typer.echo(f"❌ Could not write {config.CONFIG_FILE}", err=True)
        raise typer.Exit(code=1)
    typer.echo("✅ Configuration reset to defaults.")


if __name__ == "__main__":
    app()
