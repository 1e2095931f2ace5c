"""Plain-text output of affected tests: one fully qualified name per line.

::

    tests.test_calculator.CalculatorTest.test_add
    tests.test_calculator.CalculatorTest.test_helper

The format pipes cleanly into grep, xargs and shell scripts, and converts
easily to pytest node ids or other runner selectors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import typer

from .models import FunctionId


def emit(tests: Iterable[FunctionId]) -> str:
    """Sorted, newline-joined ids without a trailing newline."""
    return "\n".join(sorted(set(tests)))


def emit_to_file(tests: Iterable[FunctionId], output_file: Path) -> None:
    output_file.write_text(emit(tests), encoding="utf-8")


def emit_to_stdout(tests: Iterable[FunctionId]) -> None:
    typer.echo(emit(tests))
