"""Tests for cycle detection and C3 linearization."""

import pytest

from solsift.models import DiagnosticKind, Position, Span
from solsift.resolution import InheritanceGraph, LinearizationCache, SymbolTable, c3_merge
from solsift.resolution.linearization import MergeConflict, tarjan_scc
from solsift.scanning import Declaration, DeclarationKind

SPAN = Span(Position(1, 0), Position(1, 1))


def _table(*specs, kind=DeclarationKind.CONTRACT):
    """Build a table from ``(name, base, base...)`` tuples, one file each."""
    declarations = [
        Declaration(kind=kind, name=name, file=f"{name}.sol", span=SPAN, start_byte=0, bases=tuple(bases))
        for name, *bases in specs
    ]
    return SymbolTable(declarations)


def _linearize(*specs):
    table = _table(*specs)
    cache = LinearizationCache(InheritanceGraph(table))
    diagnostics = cache.freeze()
    return table, cache, diagnostics


class TestC3Merge:
    def test_single_sequence(self):
        assert c3_merge([[1, 2, 3]]) == [1, 2, 3]

    def test_empty(self):
        assert c3_merge([]) == []

    def test_shared_tail(self):
        assert c3_merge([[1, 0], [2, 0], [1, 2]]) == [1, 2, 0]

    def test_conflict(self):
        with pytest.raises(MergeConflict) as info:
            c3_merge([[1, 2], [2, 1], [1, 2]])
        assert set(info.value.heads) == {1, 2}


class TestTarjan:
    def test_components(self):
        components = tarjan_scc({0: (1,), 1: (0,), 2: (0,)}, [0, 1, 2])
        assert {frozenset(c) for c in components} == {frozenset({0, 1}), frozenset({2})}

    def test_deep_chain_no_recursion_limit(self):
        n = 5000
        adjacency = {i: (i + 1,) for i in range(n - 1)}
        assert len(tarjan_scc(adjacency, list(range(n)))) == n


class TestLinearization:
    """Linearization order, precedence and monotonicity."""

    def test_single_base(self):
        table, cache, diagnostics = _linearize(("Base",), ("Child", "Base"))
        assert diagnostics == []
        assert cache.names(table.lookup("Child")) == ["Child", "Base"]

    def test_diamond(self):
        table, cache, _ = _linearize(("A",), ("B", "A"), ("C", "A"), ("D", "B", "C"))
        assert cache.names(table.lookup("D")) == ["D", "B", "C", "A"]

    def test_local_precedence_preserved(self):
        table, cache, _ = _linearize(("X",), ("Y",), ("Z",), ("K", "Z", "X", "Y"))
        assert cache.names(table.lookup("K")) == ["K", "Z", "X", "Y"]

    def test_monotonic_with_shared_ancestors(self):
        table, cache, diagnostics = _linearize(
            ("O",),
            ("A", "O"),
            ("B", "O"),
            ("C", "O"),
            ("K1", "A", "B"),
            ("K2", "B", "C"),
            ("Z", "K1", "K2"),
        )
        assert diagnostics == []
        z = cache.names(table.lookup("Z"))
        assert z == ["Z", "K1", "A", "K2", "B", "C", "O"]
        for name in ("K1", "K2"):
            sub = cache.names(table.lookup(name))
            assert [n for n in z if n in sub] == sub

    def test_derived_before_bases(self):
        table, cache, _ = _linearize(("A",), ("B", "A"), ("C", "B"))
        linearization = cache.names(table.lookup("C"))
        assert linearization.index("C") < linearization.index("B") < linearization.index("A")

    def test_conflict(self):
        table, cache, diagnostics = _linearize(("A",), ("B", "A"), ("C", "A", "B"))
        assert cache.get(table.lookup("C")) is None
        (diag,) = diagnostics
        assert diag.kind is DiagnosticKind.LINEARIZATION_CONFLICT
        assert "cannot linearize C" in diag.message
        assert cache.names(table.lookup("B")) == ["B", "A"]

    def test_two_node_cycle(self):
        table, cache, diagnostics = _linearize(("X", "Y"), ("Y", "X"), ("Z",))
        cycles = [d for d in diagnostics if d.kind is DiagnosticKind.CYCLIC_INHERITANCE]
        assert len(cycles) == 1
        assert cycles[0].message == "cyclic inheritance: X -> Y -> X"
        assert cycles[0].related == ("X", "Y")
        assert cache.get(table.lookup("X")) is None
        assert cache.get(table.lookup("Y")) is None
        assert cache.names(table.lookup("Z")) == ["Z"]

    def test_self_inheritance_is_a_cycle(self):
        table, cache, diagnostics = _linearize(("S", "S"),)
        assert [d.kind for d in diagnostics] == [DiagnosticKind.CYCLIC_INHERITANCE]
        assert cache.get(table.lookup("S")) is None

    def test_child_of_cycle_cannot_be_linearized(self):
        table, cache, diagnostics = _linearize(("X", "Y"), ("Y", "X"), ("W", "X"))
        kinds = sorted(d.kind.code for d in diagnostics)
        assert kinds == ["SS400", "SS401"]
        assert cache.get(table.lookup("W")) is None

    def test_unknown_base_reported_and_skipped(self):
        table = _table(("A", "Missing"))
        graph = InheritanceGraph(table)
        assert [d.kind for d in graph.diagnostics] == [DiagnosticKind.UNRESOLVED_REFERENCE]
        cache = LinearizationCache(graph)
        cache.freeze()
        assert cache.names(table.lookup("A")) == ["A"]

    def test_frozen_cache_does_not_compute(self):
        table, cache, _ = _linearize(("A",))
        assert cache.frozen
        assert cache.get(999) is None

    def test_long_chain(self):
        specs = [("C0",)] + [(f"C{i}", f"C{i - 1}") for i in range(1, 200)]
        table, cache, diagnostics = _linearize(*specs)
        assert diagnostics == []
        assert len(cache.get(table.lookup("C199"))) == 200
