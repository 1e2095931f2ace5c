"""Find the tests affected by a set of changed functions.

The search is a reverse breadth-first walk over the call graph, starting at
the changed functions and following callee -> caller edges.

It is deliberately conservative: reaching a test-classified function does
not stop the walk.  Given ``test_a -> test_b -> c`` with ``c`` changed, both
``test_b`` and ``test_a`` are selected, because ``test_a`` may call
``test_b``'s code path with different arguments::

    def divide(a, b):
        if b == 0:
            raise ValueError()   # changed: used to return 0
        return a // b

    def calculate(x):
        return divide(100, x)

    def process():
        return calculate(0)

    def test_calculate():        # passes, x == 2
        calculate(2)

    def test_process():          # fails, x == 0
        process()

The same holds for helpers that only *look* like tests (for instance a
``make_user()`` method on a ``FixturesTest`` class): they must be walked
through to reach the real tests calling them.  The price is extra,
false-positive selections; the payoff is no false negatives along static
edges.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Iterable, Optional, Sequence, Set, Union

from .call_graph import ReverseCallGraph
from .models import FunctionId

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIXES: Sequence[str] = ("test",)
DEFAULT_CONTAINER_SUFFIXES: Sequence[str] = ("Test", "Tests", "Spec", "かどうか", "テスト")


class FunctionClassifier(ABC):
    """Strategy deciding whether a function should be reported as a test."""

    @abstractmethod
    def is_test(self, function_id: FunctionId) -> bool:
        ...

    def __call__(self, function_id: FunctionId) -> bool:
        return self.is_test(function_id)


class NamingConventionClassifier(FunctionClassifier):
    """Classify by naming convention rather than by decorators or markers.

    A function is test-like when its simple name starts with one of
    *name_prefixes*, or when its enclosing part (everything before the last
    dot) ends with one of *container_suffixes*.  Matching is exact and
    case-sensitive.
    """

    def __init__(
        self,
        name_prefixes: Optional[Iterable[str]] = None,
        container_suffixes: Optional[Iterable[str]] = None,
    ) -> None:
        self.name_prefixes = tuple(
            DEFAULT_NAME_PREFIXES if name_prefixes is None else name_prefixes
        )
        self.container_suffixes = tuple(
            DEFAULT_CONTAINER_SUFFIXES if container_suffixes is None else container_suffixes
        )

    def is_test(self, function_id: FunctionId) -> bool:
        container, _, name = function_id.rpartition(".")
        if self.name_prefixes and name.startswith(self.name_prefixes):
            return True
        return bool(self.container_suffixes) and container.endswith(self.container_suffixes)

    def __repr__(self) -> str:
        return (
            f"NamingConventionClassifier(name_prefixes={self.name_prefixes!r}, "
            f"container_suffixes={self.container_suffixes!r})"
        )


ClassifierLike = Union[FunctionClassifier, Callable[[FunctionId], bool]]


def find_affected(
    changed: Iterable[FunctionId],
    graph: ReverseCallGraph,
    is_test_function: ClassifierLike,
) -> Set[FunctionId]:
    """Return every test-classified function transitively calling *changed*."""
    affected: Set[FunctionId] = set()
    seen: Set[FunctionId] = set()
    queue: Deque[FunctionId] = deque(changed)

    while queue:
        callee = queue.popleft()
        # Each node is expanded at most once; this alone breaks cycles.
        if callee in seen:
            continue
        seen.add(callee)

        for caller in graph.get_callers(callee):
            if is_test_function(caller):
                affected.add(caller)
            # Keep walking even through tests.
            queue.append(caller)

    logger.debug("Visited %d functions, %d affected tests", len(seen), len(affected))
    return affected


class AffectedTestResolver:
    """Resolves affected tests over one graph with one classification strategy."""

    def __init__(
        self,
        graph: ReverseCallGraph,
        classifier: Optional[ClassifierLike] = None,
    ) -> None:
        self.graph = graph
        self.classifier: ClassifierLike = classifier or NamingConventionClassifier()

    def find_affected(self, changed: Iterable[FunctionId]) -> Set[FunctionId]:
        return find_affected(changed, self.graph, self.classifier)
