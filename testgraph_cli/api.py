"""Embeddable entry points for build tools and scripts.

Usage::

    from testgraph_cli import find_affected_tests

    affected = find_affected_tests(
        diff=git_diff(Path(".")),
        source_roots=[Path("src"), Path("tests")],
    )
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from . import config
from .call_graph import GraphBuilder
from .change_mapper import ChangeMapper
from .diff_parser import DiffParser
from .emitter import emit
from .models import FunctionId
from .parser import SymbolIndex, create_symbol_index
from .resolver import AffectedTestResolver, ClassifierLike, NamingConventionClassifier

logger = logging.getLogger(__name__)


def default_classifier() -> NamingConventionClassifier:
    return NamingConventionClassifier(
        name_prefixes=config.TEST_NAME_PREFIXES,
        container_suffixes=config.TEST_CONTAINER_SUFFIXES,
    )


def default_source_roots(project_dir: Path) -> List[Path]:
    """Standard source directories that exist under *project_dir*, else the directory itself."""
    roots = [project_dir / name for name in config.STANDARD_SOURCE_DIRS]
    existing = [root for root in roots if root.is_dir()]
    return existing or [project_dir]


def build_index(
    source_roots: Sequence[Path],
    repo_root: Optional[Path] = None,
    backend: Optional[str] = None,
) -> SymbolIndex:
    return create_symbol_index(
        backend or config.ANALYSIS_BACKEND,
        repo_root or Path.cwd(),
        source_roots,
    )


def _changed_from_index(
    diff: str,
    index: SymbolIndex,
    extensions: Optional[Iterable[str]],
) -> Set[FunctionId]:
    file_diffs = DiffParser.parse_for_language(diff, extensions or config.SOURCE_EXTENSIONS)
    if not file_diffs:
        logger.info("No changed source files in diff")
        return set()
    logger.info("Changed files: %s", ", ".join(sorted(file_diffs)))
    return ChangeMapper().collect(file_diffs, index.declared_functions())


def find_changed_functions(
    diff: str,
    source_roots: Sequence[Path],
    repo_root: Optional[Path] = None,
    *,
    extensions: Optional[Iterable[str]] = None,
    backend: Optional[str] = None,
) -> Set[FunctionId]:
    """Functions whose span overlaps an added or modified line of *diff*."""
    if not diff or not source_roots:
        return set()
    index = build_index(source_roots, repo_root, backend)
    return _changed_from_index(diff, index, extensions)


def find_affected_tests_in_index(
    diff: str,
    index: SymbolIndex,
    *,
    extensions: Optional[Iterable[str]] = None,
    classifier: Optional[ClassifierLike] = None,
) -> Tuple[Set[FunctionId], Set[FunctionId]]:
    """Run the pipeline against an existing *index*; returns ``(changed, affected)``."""
    changed = _changed_from_index(diff, index, extensions)
    if not changed:
        return changed, set()
    graph = GraphBuilder().build(index.call_edges())
    resolver = AffectedTestResolver(graph, classifier or default_classifier())
    affected = resolver.find_affected(changed)
    logger.info("%d changed functions -> %d affected tests", len(changed), len(affected))
    return changed, affected


def find_affected_tests(
    diff: str,
    source_roots: Sequence[Path],
    repo_root: Optional[Path] = None,
    *,
    extensions: Optional[Iterable[str]] = None,
    classifier: Optional[ClassifierLike] = None,
    backend: Optional[str] = None,
) -> Set[FunctionId]:
    """Return the ids of the tests affected by *diff*.

    Args:
        diff: ``git diff --unified=0`` output.
        source_roots: Directories holding the project's Python sources and tests.
        repo_root: Directory the diff paths are relative to. Defaults to the
            current working directory.
        extensions: Source file extensions to consider. Defaults to config.
        classifier: Test classification strategy. Defaults to the naming
            convention configured in ``config.toml``.
        backend: ``"ast"`` or ``"tree-sitter"``. Defaults to config.
    """
    if not diff or not source_roots:
        return set()
    index = build_index(source_roots, repo_root, backend)
    _, affected = find_affected_tests_in_index(
        diff, index, extensions=extensions, classifier=classifier,
    )
    return affected


def find_affected_tests_as_string(
    diff: str,
    source_roots: Sequence[Path],
    repo_root: Optional[Path] = None,
    **kwargs,
) -> str:
    """Same as :func:`find_affected_tests`, formatted one id per line."""
    return emit(find_affected_tests(diff, source_roots, repo_root, **kwargs))


def git_diff(project_dir: Path, base: str = "HEAD") -> str:
    """Return ``git diff --unified=0 <base>`` for *project_dir*, or ``""`` on failure."""
    try:
        result = subprocess.run(
            ["git", "diff", "--unified=0", base],
            cwd=str(project_dir),
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        logger.warning("Failed to run git diff: %s", exc)
        return ""
    if result.returncode != 0:
        logger.warning(
            "git diff failed with exit code %d: %s", result.returncode, result.stderr.strip()
        )
        return ""
    return result.stdout
