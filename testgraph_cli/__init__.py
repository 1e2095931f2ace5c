"""TestGraph: select the tests affected by a change set via a static call graph."""

from __future__ import annotations

__version__ = "0.1.0"

from .api import (  # noqa: E402
    find_affected_tests,
    find_affected_tests_as_string,
    find_changed_functions,
    git_diff,
)

__all__ = [
    "__version__",
    "find_affected_tests",
    "find_affected_tests_as_string",
    "find_changed_functions",
    "git_diff",
]
