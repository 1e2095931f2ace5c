"""Core data models shared by diff parsing, change mapping, and resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

# Fully qualified dotted name of a function or method,
# e.g. "tests.test_calc.CalculatorTest.test_add".
FunctionId = str


@dataclass(frozen=True)
class LineRange:
    """Closed, 1-indexed range of lines in the *new* version of a file."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1:
            raise ValueError(f"start must be >= 1, but was {self.start}")
        if self.end < self.start:
            raise ValueError(f"end must be >= start, but was {self.end} < {self.start}")

    def contains(self, line: int) -> bool:
        return self.start <= line <= self.end

    def contains_any(self, lines: Iterable[int]) -> bool:
        return any(self.contains(line) for line in lines)

    def overlaps(self, other: LineRange) -> bool:
        """Return True if the ranges share at least one line (touching counts)."""
        return self.start <= other.end and other.start <= self.end

    def __str__(self) -> str:
        return f"L{self.start}-{self.end}"


@dataclass(frozen=True)
class FileDiff:
    """Added or modified line ranges of one file. Deletions are not recorded."""

    file_path: str
    changed_ranges: Tuple[LineRange, ...]

    def contains_line(self, line: int) -> bool:
        return any(r.contains(line) for r in self.changed_ranges)

    def overlaps_with_range(self, line_range: LineRange) -> bool:
        return any(r.overlaps(line_range) for r in self.changed_ranges)

    def has_extension(self, extensions: Iterable[str]) -> bool:
        return any(self.file_path.endswith(ext) for ext in extensions)


@dataclass(frozen=True)
class FunctionDecl:
    function_id: FunctionId
    file_path: str
    line_range: LineRange


@dataclass(frozen=True)
class CallEdge:
    caller: FunctionId
    callee: FunctionId
