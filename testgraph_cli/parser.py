"""Python source analysis: declared functions and resolved call edges.

This module feeds the impact engine through the narrow :class:`SymbolIndex`
interface, which exposes exactly two read-only feeds:

- the *declared-function feed*: one :class:`FunctionDecl` per ``def``,
  with its repository-relative file path and line span, and
- the *call-edge feed*: one :class:`CallEdge` per call site whose target
  could be resolved statically to a declared function.

Two interchangeable backends are provided:

- :class:`ASTSymbolIndex` uses Python's built-in ``ast`` module.
- :class:`TreeSitterSymbolIndex` uses Tree-sitter, which keeps working on
  files with minor syntax errors.
"""

from __future__ import annotations

import ast
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .models import CallEdge, FunctionDecl, FunctionId, LineRange

logger = logging.getLogger(__name__)

SKIP_DIRS: Set[str] = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".nox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs",
}

BACKENDS = ("ast", "tree-sitter")

# (caller qualname, dotted call target as written in the source)
RawCall = Tuple[str, str]


@dataclass(frozen=True)
class Symbol:
    kind: str  # "function" or "class"
    name: str
    qualname: str
    file_path: str
    line_range: LineRange


# ===================================================================
# Capability interface
# ===================================================================

class SymbolIndex(ABC):
    """Read-only source of declared functions and call edges."""

    @abstractmethod
    def declared_functions(self) -> List[FunctionDecl]:
        ...

    @abstractmethod
    def call_edges(self) -> List[CallEdge]:
        ...


# ===================================================================
# Shared project walking for Python backends
# ===================================================================

class PythonSymbolIndex(SymbolIndex):
    """Base class walking Python source roots once and caching the feeds.

    *repo_root* determines the file keys (they must match ``git diff``
    paths); each entry of *source_roots* determines module names for the
    files below it.  When roots are nested, a file belongs to the deepest
    root containing it.
    """

    def __init__(self, repo_root: Path, source_roots: Sequence[Path]) -> None:
        self.repo_root = repo_root.resolve()
        self.source_roots = [root.resolve() for root in source_roots]
        self._symbols: Optional[List[Symbol]] = None
        self._edges: Optional[List[CallEdge]] = None

    # ------------------------------------------------------------------
    # SymbolIndex
    # ------------------------------------------------------------------

    def declared_functions(self) -> List[FunctionDecl]:
        symbols, _ = self._ensure_parsed()
        return [
            FunctionDecl(function_id=s.qualname, file_path=s.file_path, line_range=s.line_range)
            for s in symbols
            if s.kind == "function"
        ]

    def call_edges(self) -> List[CallEdge]:
        _, edges = self._ensure_parsed()
        return list(edges)

    # ------------------------------------------------------------------
    # Project-level parsing
    # ------------------------------------------------------------------

    def _ensure_parsed(self) -> Tuple[List[Symbol], List[CallEdge]]:
        if self._symbols is None or self._edges is None:
            self._symbols, self._edges = self.parse_project()
        return self._symbols, self._edges

    def parse_project(self) -> Tuple[List[Symbol], List[CallEdge]]:
        all_symbols: List[Symbol] = []
        all_calls: List[RawCall] = []

        for file_path, source_root in self.iter_source_files():
            try:
                source = file_path.read_text(encoding="utf-8", errors="ignore")
            except OSError as exc:
                logger.warning("Failed to read %s: %s", file_path, exc)
                continue
            symbols, calls = self.parse_source(
                source,
                module_name=module_name_for(file_path, source_root),
                file_key=self.file_key(file_path, source_root),
            )
            all_symbols.extend(symbols)
            all_calls.extend(calls)

        edges = resolve_call_edges(all_symbols, all_calls)
        logger.info(
            "Indexed %d functions and %d call edges",
            sum(1 for s in all_symbols if s.kind == "function"), len(edges),
        )
        return all_symbols, edges

    def iter_source_files(self) -> Iterator[Tuple[Path, Path]]:
        """Yield ``(file, owning source root)`` for every ``.py`` file, sorted."""
        owners: Dict[Path, Path] = {}
        for root in self.source_roots:
            if not root.is_dir():
                logger.warning("Source root %s is not a directory, skipping", root)
                continue
            for file_path in root.rglob("*.py"):
                rel_parts = file_path.relative_to(root).parts
                if any(part in SKIP_DIRS or part.endswith(".egg-info") for part in rel_parts[:-1]):
                    continue
                current = owners.get(file_path)
                if current is None or len(root.parts) > len(current.parts):
                    owners[file_path] = root
        for file_path in sorted(owners):
            yield file_path, owners[file_path]

    def file_key(self, file_path: Path, source_root: Path) -> str:
        """Repository-relative POSIX path used to match ``git diff`` keys."""
        try:
            return file_path.relative_to(self.repo_root).as_posix()
        except ValueError:
            return file_path.relative_to(source_root).as_posix()

    @abstractmethod
    def parse_source(
        self,
        source: str,
        module_name: str,
        file_key: str,
    ) -> Tuple[List[Symbol], List[RawCall]]:
        """Extract symbols and unresolved calls from one file's *source*."""
        ...


def module_name_for(file_path: Path, source_root: Path) -> str:
    parts = list(file_path.relative_to(source_root).with_suffix("").parts)
    if len(parts) > 1 and parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


# ===================================================================
# AST backend
# ===================================================================

class ASTSymbolIndex(PythonSymbolIndex):
    """Backend built on the standard library ``ast`` module."""

    def parse_source(
        self,
        source: str,
        module_name: str,
        file_key: str,
    ) -> Tuple[List[Symbol], List[RawCall]]:
        try:
            tree = ast.parse(source)
        except SyntaxError as exc:
            logger.warning("SyntaxError in %s: %s", file_key, exc)
            return [], []

        visitor = _ASTVisitor(module_name, file_key)
        visitor.visit(tree)
        return visitor.symbols, visitor.calls


class _ASTVisitor(ast.NodeVisitor):
    """Walks a Python AST and collects symbols and raw calls."""

    def __init__(self, module_name: str, file_key: str) -> None:
        self.file_key = file_key
        self.scope_stack: List[str] = [module_name] if module_name else []
        self.symbols: List[Symbol] = []
        self.calls: List[RawCall] = []

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        qualname = self._mk_qualname(node.name)
        self.symbols.append(Symbol("class", node.name, qualname, self.file_key, _ast_span(node)))
        self.scope_stack.append(node.name)
        self.generic_visit(node)
        self.scope_stack.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_function(node)

    def _visit_function(self, node: ast.AST) -> None:
        assert isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
        qualname = self._mk_qualname(node.name)
        self.symbols.append(Symbol("function", node.name, qualname, self.file_key, _ast_span(node)))
        for call_name in _ast_collect_calls(node):
            self.calls.append((qualname, call_name))

        self.scope_stack.append(node.name)
        self.generic_visit(node)
        self.scope_stack.pop()

    def _mk_qualname(self, name: str) -> str:
        return ".".join(self.scope_stack + [name])


def _ast_span(node: Any) -> LineRange:
    """Line span of a definition, decorators included."""
    start = min([node.lineno] + [d.lineno for d in node.decorator_list])
    end = getattr(node, "end_lineno", None) or node.lineno
    return LineRange(start, max(end, start))


def _ast_collect_calls(func: Any) -> List[str]:
    """Calls in *func*'s decorators and body, not descending into nested defs."""
    names: List[str] = []

    class _CV(ast.NodeVisitor):
        def visit_Call(self, call_node: ast.Call) -> None:
            n = _ast_name_from_expr(call_node.func)
            if n:
                names.append(n)
            self.generic_visit(call_node)

        def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
            return

        def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
            return

        def visit_ClassDef(self, node: ast.ClassDef) -> None:
            return

    visitor = _CV()
    for stmt in list(func.decorator_list) + list(func.body):
        visitor.visit(stmt)
    return names


def _ast_name_from_expr(expr: ast.AST) -> Optional[str]:
    if isinstance(expr, ast.Name):
        return expr.id
    if isinstance(expr, ast.Attribute):
        parts: List[str] = []
        current: ast.AST = expr
        while isinstance(current, ast.Attribute):
            parts.append(current.attr)
            current = current.value
        if isinstance(current, ast.Name):
            parts.append(current.id)
        elif isinstance(current, ast.Call):
            # Calculator().add -> "Calculator.add"
            inner = _ast_name_from_expr(current.func)
            if inner:
                parts.append(inner)
        return ".".join(reversed(parts)) if parts else None
    if isinstance(expr, ast.Call):
        return _ast_name_from_expr(expr.func)
    return None


# ===================================================================
# Tree-sitter backend
# ===================================================================

class TreeSitterSymbolIndex(PythonSymbolIndex):
    """Error-tolerant backend built on Tree-sitter's Python grammar.

    Tree-sitter produces a concrete syntax tree that preserves every token,
    so definitions are still extracted when part of a file fails to parse.
    """

    def __init__(self, repo_root: Path, source_roots: Sequence[Path]) -> None:
        super().__init__(repo_root, source_roots)
        try:
            import tree_sitter_python  # type: ignore[import-untyped]
            from tree_sitter import Language, Parser as TSParser  # type: ignore[import-untyped]
        except ImportError as exc:
            raise RuntimeError(
                "The tree-sitter backend needs the 'tree-sitter' and "
                "'tree-sitter-python' packages. Install with: "
                "pip install tree-sitter tree-sitter-python"
            ) from exc
        self._parser = TSParser(Language(tree_sitter_python.language()))
        logger.debug("Loaded tree-sitter parser for python")

    def parse_source(
        self,
        source: str,
        module_name: str,
        file_key: str,
    ) -> Tuple[List[Symbol], List[RawCall]]:
        tree = self._parser.parse(source.encode("utf-8"))
        if tree.root_node.has_error:
            logger.debug("Syntax errors in %s, extracting what parsed", file_key)

        symbols: List[Symbol] = []
        calls: List[RawCall] = []
        self._walk(
            tree.root_node,
            scope_stack=[module_name] if module_name else [],
            file_key=file_key,
            symbols=symbols,
            calls=calls,
        )
        return symbols, calls

    def _walk(
        self,
        ts_node: Any,
        scope_stack: List[str],
        file_key: str,
        symbols: List[Symbol],
        calls: List[RawCall],
    ) -> None:
        """Recursively extract class / function definitions from *ts_node*."""
        for child in ts_node.children:
            outer_node = child
            actual_def = child

            # Unwrap @decorated_definition -> inner function/class
            if child.type == "decorated_definition":
                inner = child.child_by_field_name("definition")
                if inner is None:
                    continue
                actual_def = inner

            if actual_def.type not in ("function_definition", "class_definition"):
                continue
            name_node = actual_def.child_by_field_name("name")
            if name_node is None:
                continue
            name: str = name_node.text.decode("utf-8")
            qualname = ".".join(scope_stack + [name])
            span = LineRange(outer_node.start_point[0] + 1, outer_node.end_point[0] + 1)

            if actual_def.type == "function_definition":
                symbols.append(Symbol("function", name, qualname, file_key, span))
                for call_name in _ts_collect_calls(outer_node, actual_def):
                    calls.append((qualname, call_name))
            else:
                symbols.append(Symbol("class", name, qualname, file_key, span))

            body = actual_def.child_by_field_name("body")
            if body is not None:
                self._walk(body, scope_stack + [name], file_key, symbols, calls)


_TS_DEFINITIONS = ("function_definition", "class_definition", "decorated_definition")


def _ts_collect_calls(outer_node: Any, func_node: Any) -> List[str]:
    """Return every call target inside the decorators and body of *func_node*."""
    calls: List[str] = []

    def _find(node: Any) -> None:
        if node.type == "call":
            func = node.child_by_field_name("function")
            if func is not None:
                name = _resolve_ts_call_name(func)
                if name:
                    calls.append(name)
        for ch in node.children:
            if ch.type in _TS_DEFINITIONS:
                continue
            _find(ch)

    if outer_node.type == "decorated_definition":
        for ch in outer_node.children:
            if ch.type == "decorator":
                _find(ch)
    body = func_node.child_by_field_name("body")
    if body is not None:
        _find(body)
    return calls


def _resolve_ts_call_name(func_node: Any) -> Optional[str]:
    """Resolve a Tree-sitter call-function node to a dotted name string."""
    if func_node.type == "identifier":
        return func_node.text.decode("utf-8")
    if func_node.type == "attribute":
        parts: List[str] = []
        current = func_node
        while current is not None and current.type == "attribute":
            attr = current.child_by_field_name("attribute")
            if attr is not None:
                parts.append(attr.text.decode("utf-8"))
            current = current.child_by_field_name("object")
        if current is not None and current.type == "identifier":
            parts.append(current.text.decode("utf-8"))
        elif current is not None and current.type == "call":
            inner = current.child_by_field_name("function")
            inner_name = _resolve_ts_call_name(inner) if inner is not None else None
            if inner_name:
                parts.append(inner_name)
        return ".".join(reversed(parts)) if parts else None
    if func_node.type == "call":
        inner = func_node.child_by_field_name("function")
        if inner is not None:
            return _resolve_ts_call_name(inner)
    return None


# ===================================================================
# Call resolution (shared by every backend)
# ===================================================================

def resolve_call_edges(symbols: Iterable[Symbol], calls: Iterable[RawCall]) -> List[CallEdge]:
    """Resolve symbolic call targets to declared function ids.

    An ambiguous call (``v.add()`` with several declared ``add`` methods)
    gets an edge to every candidate.  Calls that match no declared function
    (builtins, third-party code, dynamic dispatch) produce no edge.
    """
    functions: Set[str] = set()
    functions_by_name: Dict[str, List[str]] = {}
    classes_by_name: Dict[str, List[str]] = {}
    for s in symbols:
        if s.kind == "function":
            functions.add(s.qualname)
            functions_by_name.setdefault(s.name, []).append(s.qualname)
        else:
            classes_by_name.setdefault(s.name, []).append(s.qualname)

    edges: List[CallEdge] = []
    seen: Set[Tuple[str, str]] = set()
    for caller, target in calls:
        for callee in _resolve_target(caller, target, functions, functions_by_name, classes_by_name):
            if (caller, callee) in seen:
                continue
            seen.add((caller, callee))
            edges.append(CallEdge(caller=caller, callee=callee))
    return edges


def _resolve_target(
    caller: FunctionId,
    target: str,
    functions: Set[str],
    functions_by_name: Dict[str, List[str]],
    classes_by_name: Dict[str, List[str]],
) -> List[FunctionId]:
    """Every declared function *target* may refer to, sorted; empty if none."""
    if target in functions:
        return [target]

    parts = target.split(".")
    name = parts[-1]

    if len(parts) > 1:
        # self.method / cls.method -> method of the enclosing class
        if parts[0] in ("self", "cls") and len(parts) == 2:
            class_qualname = caller.rpartition(".")[0]
            candidate = f"{class_qualname}.{name}"
            if candidate in functions:
                return [candidate]

        # module.func / Class.method written with a dotted prefix
        suffix = "." + target
        suffixed = sorted({q for q in functions_by_name.get(name, ()) if q.endswith(suffix)})
        if suffixed:
            return suffixed

    if name in classes_by_name:
        inits = sorted({f"{c}.__init__" for c in classes_by_name[name] if f"{c}.__init__" in functions})
        if inits:
            return inits
        if len(parts) == 1:
            return []

    return sorted(set(functions_by_name.get(name, ())))


def create_symbol_index(
    backend: str,
    repo_root: Path,
    source_roots: Sequence[Path],
) -> PythonSymbolIndex:
    """Build the symbol index for *backend* (``"ast"`` or ``"tree-sitter"``)."""
    if backend == "ast":
        return ASTSymbolIndex(repo_root, source_roots)
    if backend == "tree-sitter":
        return TreeSitterSymbolIndex(repo_root, source_roots)
    raise ValueError(f"Unknown analysis backend '{backend}'. Choose one of: {', '.join(BACKENDS)}")
