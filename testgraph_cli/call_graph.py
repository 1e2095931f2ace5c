"""Reverse call graph: callee -> set of direct callers.

A forward call graph answers "what does this function call?".  Impact
analysis needs the opposite question, "who breaks if this changes?", so
edges are stored keyed by callee::

    graph.add_edge("tests.test_calc.test_add", "calc.Calculator.add")
    graph.add_edge("helper.helper_b", "calc.Calculator.add")
    graph.get_callers("calc.Calculator.add")
    # frozenset({"tests.test_calc.test_add", "helper.helper_b"})
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Set

from .models import CallEdge, FunctionId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphStats:
    callees: int
    edges: int

    def __str__(self) -> str:
        return f"Callees: {self.callees}, Total edges: {self.edges}"


class ReverseCallGraph:
    """Directed graph indexed by callee. Stores edge presence, not counts."""

    def __init__(self) -> None:
        self._callers: Dict[FunctionId, Set[FunctionId]] = {}
        self._lock = threading.Lock()

    def add_edge(self, caller: FunctionId, callee: FunctionId) -> None:
        """Record that *caller* calls *callee*. Idempotent; self-edges are kept."""
        with self._lock:
            self._callers.setdefault(callee, set()).add(caller)

    def get_callers(self, callee: FunctionId) -> FrozenSet[FunctionId]:
        return frozenset(self._callers.get(callee, ()))

    def all_edges(self) -> Dict[FunctionId, Set[FunctionId]]:
        """Snapshot of every callee and its callers; safe to mutate."""
        with self._lock:
            return {callee: set(callers) for callee, callers in self._callers.items()}

    def stats(self) -> GraphStats:
        with self._lock:
            return GraphStats(
                callees=len(self._callers),
                edges=sum(len(callers) for callers in self._callers.values()),
            )

    def __len__(self) -> int:
        return len(self._callers)

    def __contains__(self, callee: object) -> bool:
        return callee in self._callers


class GraphBuilder:
    """Folds a call-edge feed into a fresh :class:`ReverseCallGraph`."""

    def build(self, edges: Iterable[CallEdge]) -> ReverseCallGraph:
        graph = ReverseCallGraph()
        for edge in edges:
            graph.add_edge(edge.caller, edge.callee)
        logger.debug("Built reverse call graph (%s)", graph.stats())
        return graph
