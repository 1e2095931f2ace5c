"""Graph export helpers for DOT and JSON outputs of a reverse call graph."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Set

from .call_graph import ReverseCallGraph
from .resolver import ClassifierLike


def export_dot(
    graph: ReverseCallGraph,
    output_file: Path,
    focus: str = "",
    classifier: Optional[ClassifierLike] = None,
) -> None:
    """Write caller -> callee edges as Graphviz DOT; test nodes are boxed."""
    selected = _focused_subgraph(graph.all_edges(), focus)

    lines = ["digraph TestGraph {"]
    lines.append("  rankdir=LR;")

    for node_id in selected["nodes"]:
        shape = "box" if classifier is not None and classifier(node_id) else "ellipse"
        lines.append(f'  "{_esc(node_id)}" [shape={shape}];')

    for edge in selected["edges"]:
        lines.append(f'  "{_esc(edge["caller"])}" -> "{_esc(edge["callee"])}";')

    lines.append("}")
    output_file.write_text("\n".join(lines), encoding="utf-8")


def export_json(graph: ReverseCallGraph, output_file: Path, focus: str = "") -> None:
    """Write ``{"callee": [callers...]}`` with sorted keys and values."""
    selected = _focused_subgraph(graph.all_edges(), focus)
    payload: Dict[str, List[str]] = {}
    for edge in selected["edges"]:
        payload.setdefault(edge["callee"], []).append(edge["caller"])
    for callers in payload.values():
        callers.sort()
    output_file.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def _focused_subgraph(edges_by_callee: Dict[str, Set[str]], focus: str) -> Dict[str, List]:
    edges = [
        {"caller": caller, "callee": callee}
        for callee in sorted(edges_by_callee)
        for caller in sorted(edges_by_callee[callee])
    ]
    nodes: Set[str] = set()
    for e in edges:
        nodes.add(e["caller"])
        nodes.add(e["callee"])

    if not focus:
        return {"nodes": sorted(nodes), "edges": edges}

    focus_ids = {node_id for node_id in nodes if focus in node_id}
    if not focus_ids:
        return {"nodes": sorted(nodes), "edges": edges}

    edge_subset = [e for e in edges if e["caller"] in focus_ids or e["callee"] in focus_ids]
    node_subset = set(focus_ids)
    for e in edge_subset:
        node_subset.add(e["caller"])
        node_subset.add(e["callee"])
    return {"nodes": sorted(node_subset), "edges": edge_subset}


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
