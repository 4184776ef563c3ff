"""Inheritance graph, cycle detection and C3 linearization.

All structures refer to declarations by symbol-table handle. A
linearization lists handles from most-derived to most-base:

    L(C) = [C] + merge(L(B1), ..., L(Bn), [B1, ..., Bn])

where B1..Bn are C's direct bases in the order they were written.
"""

from __future__ import annotations

from collections import deque
from graphlib import TopologicalSorter
from typing import Optional, Sequence

from ..logging_config import get_logger
from ..models import Diagnostic, DiagnosticKind
from .symbols import SymbolTable

logger = get_logger(__name__)


class MergeConflict(Exception):
    """No list head can be taken during a C3 merge."""

    def __init__(self, heads: Sequence[int]):
        super().__init__(f"conflicting heads: {list(heads)}")
        self.heads = tuple(heads)


def c3_merge(sequences: Sequence[Sequence[int]]) -> list[int]:
    """Merge linearizations, taking the first head absent from every tail.

    Raises:
        MergeConflict: If no valid head exists at some step
    """
    remaining = [list(seq) for seq in sequences if seq]
    result: list[int] = []
    while remaining:
        for seq in remaining:
            head = seq[0]
            if not any(head in other[1:] for other in remaining):
                break
        else:
            raise MergeConflict(list(dict.fromkeys(seq[0] for seq in remaining)))
        result.append(head)
        remaining = [seq[1:] if seq[0] == head else seq for seq in remaining]
        remaining = [seq for seq in remaining if seq]
    return result


def tarjan_scc(adjacency: dict[int, tuple[int, ...]], all_nodes: Sequence[int]) -> list[set[int]]:
    """Tarjan's algorithm for strongly connected components (iterative).

    Uses an explicit call stack so deep inheritance chains never hit the
    recursion limit.
    """
    node_set = set(all_nodes)
    counter = 0
    scc_stack: list[int] = []
    on_stack: set[int] = set()
    index: dict[int, int] = {}
    lowlink: dict[int, int] = {}
    result: list[set[int]] = []

    for root in all_nodes:
        if root in index:
            continue

        index[root] = lowlink[root] = counter
        counter += 1
        scc_stack.append(root)
        on_stack.add(root)
        call_stack = [(root, iter([w for w in adjacency.get(root, ()) if w in node_set]))]

        while call_stack:
            v, it = call_stack[-1]
            pushed = False
            for w in it:
                if w not in index:
                    index[w] = lowlink[w] = counter
                    counter += 1
                    scc_stack.append(w)
                    on_stack.add(w)
                    neighbors = [n for n in adjacency.get(w, ()) if n in node_set]
                    call_stack.append((w, iter(neighbors)))
                    pushed = True
                    break
                elif w in on_stack:
                    lowlink[v] = min(lowlink[v], index[w])

            if not pushed:
                call_stack.pop()
                if call_stack:
                    caller = call_stack[-1][0]
                    lowlink[caller] = min(lowlink[caller], lowlink[v])

                if lowlink[v] == index[v]:
                    component: set[int] = set()
                    while True:
                        w = scc_stack.pop()
                        on_stack.discard(w)
                        component.add(w)
                        if w == v:
                            break
                    result.append(component)

    return result


class InheritanceGraph:
    """Edges from each contract, interface or library to its direct bases."""

    def __init__(self, table: SymbolTable):
        self.table = table
        self.nodes: tuple[int, ...] = tuple(table.inheritable_handles())
        self.diagnostics: list[Diagnostic] = []
        bases: dict[int, tuple[int, ...]] = {}
        for handle in self.nodes:
            decl = table[handle]
            resolved: list[int] = []
            for name in decl.bases:
                base = table.resolve(name, decl.file)
                if base is None or not table[base].kind.inheritable:
                    self.diagnostics.append(
                        Diagnostic(
                            kind=DiagnosticKind.UNRESOLVED_REFERENCE,
                            message=f"base '{name}' of {decl.name} is not a known contract, interface or library",
                            file=decl.file,
                            line=decl.span.start.line,
                            related=(decl.name, name),
                        )
                    )
                    continue
                resolved.append(base)
            bases[handle] = tuple(resolved)
        self.bases = bases

    def cycles(self) -> list[tuple[list[int], set[int]]]:
        """Every inheritance cycle as (path, members).

        The path starts and ends at the member with the lowest handle;
        members is the whole strongly connected component.
        """
        found = []
        for component in tarjan_scc(self.bases, self.nodes):
            start = min(component)
            if len(component) == 1 and start not in self.bases.get(start, ()):
                continue
            found.append((self._cycle_path(start, component), component))
        return sorted(found, key=lambda item: item[0])

    def _cycle_path(self, start: int, component: set[int]) -> list[int]:
        # BFS for the shortest way back to start inside the component.
        parents: dict[int, int] = {}
        seen = {start}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            for base in self.bases.get(node, ()):
                if base not in component:
                    continue
                if base == start:
                    chain = [node]
                    while chain[-1] != start:
                        chain.append(parents[chain[-1]])
                    chain.reverse()
                    return [*chain, start]
                if base not in seen:
                    seen.add(base)
                    parents[base] = node
                    queue.append(base)
        return [start, start]


class LinearizationCache:
    """Lazily computed, cached linearizations.

    ``get`` computes on demand; ``freeze`` computes every entry so that
    later readers (the detect phase) never write.
    """

    def __init__(self, graph: InheritanceGraph):
        self.graph = graph
        self.table = graph.table
        self.diagnostics: list[Diagnostic] = []
        self._cache: dict[int, Optional[tuple[int, ...]]] = {}
        self._blocked: dict[int, str] = {}
        self._frozen = False
        self._detect_cycles()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, handle: int) -> Optional[tuple[int, ...]]:
        """Linearization of ``handle``, or None if it cannot be linearized."""
        if handle in self._cache:
            return self._cache[handle]
        if self._frozen or handle not in self.graph.bases:
            return None
        self._compute(handle)
        return self._cache[handle]

    def names(self, handle: int) -> Optional[list[str]]:
        linearization = self.get(handle)
        if linearization is None:
            return None
        return [self.table[h].name for h in linearization]

    def freeze(self) -> list[Diagnostic]:
        for handle in self.graph.nodes:
            self.get(handle)
        self._frozen = True
        linearized = sum(1 for v in self._cache.values() if v is not None)
        logger.info(f"Linearized {linearized}/{len(self.graph.nodes)} inheritance chains")
        return list(self.diagnostics)

    def _detect_cycles(self) -> None:
        for path, members in self.graph.cycles():
            start = self.table[path[0]]
            chain = " -> ".join(self.table[h].name for h in path)
            self.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.CYCLIC_INHERITANCE,
                    message=f"cyclic inheritance: {chain}",
                    file=start.file,
                    line=start.span.start.line,
                    related=tuple(sorted(self.table[h].qualified_name for h in members)),
                )
            )
            for handle in members:
                self._cache[handle] = None
                self._blocked[handle] = "cycle"

    def _compute(self, target: int) -> None:
        # Collect the uncached part of the ancestry, then process it bases-first.
        dependencies: dict[int, tuple[int, ...]] = {}
        stack = [target]
        while stack:
            handle = stack.pop()
            if handle in dependencies or handle in self._cache:
                continue
            bases = self.graph.bases.get(handle, ())
            dependencies[handle] = tuple(b for b in bases if b not in self._cache)
            stack.extend(dependencies[handle])

        for handle in TopologicalSorter(dependencies).static_order():
            if handle in self._cache:
                continue
            self._cache[handle] = self._linearize(handle)

    def _linearize(self, handle: int) -> Optional[tuple[int, ...]]:
        decl = self.table[handle]
        bases = self.graph.bases.get(handle, ())
        base_linearizations = []
        for base in bases:
            linearization = self._cache.get(base)
            if linearization is None:
                reason = (
                    "is part of an inheritance cycle"
                    if self._blocked.get(base) == "cycle"
                    else "cannot be linearized"
                )
                self._conflict(handle, f"cannot linearize {decl.name}: base {self.table[base].name} {reason}", [base])
                self._blocked[handle] = "base"
                return None
            base_linearizations.append(list(linearization))
        try:
            merged = c3_merge([*base_linearizations, list(bases)])
        except MergeConflict as e:
            heads = ", ".join(self.table[h].name for h in e.heads)
            self._conflict(handle, f"cannot linearize {decl.name}: conflicting bases {heads}", e.heads)
            self._blocked[handle] = "conflict"
            return None
        return (handle, *merged)

    def _conflict(self, handle: int, message: str, related: Sequence[int]) -> None:
        decl = self.table[handle]
        self.diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.LINEARIZATION_CONFLICT,
                message=message,
                file=decl.file,
                line=decl.span.start.line,
                related=(decl.name, *(self.table[h].name for h in related)),
            )
        )
