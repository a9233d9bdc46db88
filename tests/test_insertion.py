"""Tests for insertion.py — add_to_start, add_after_upstreams, extract_exclusive_upstreams,
add_before_downstream.

Convergence cases covered:
  - every dependent branch is an exclusive upstream
  - no dependent branch is exclusive (plain convergence)
  - mixed: exclusive upstreams relocated right before the node
  - unrelated branches kept alongside the merge
  - neither remainder nor exclusives (engine bug, must raise)
"""

from __future__ import annotations

import pytest

from pipeline_grid.errors import LayoutInvariantError
from pipeline_grid.graph import Node
from pipeline_grid.layout import insertion
from pipeline_grid.layout.insertion import (
    add_after_upstreams,
    add_before_downstream,
    add_to_start,
    extract_exclusive_upstreams,
)
from pipeline_grid.layout.types import EMPTY, Empty, Leaf, ParallelSet, SerialPair

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_nodes(*edges: tuple[str, str], extra: tuple[str, ...] = ()) -> dict[str, Node]:
    """Build Node values keyed by id from (src, tgt) pairs."""
    incoming: dict[str, set[str]] = {nid: set() for nid in extra}
    outgoing: dict[str, set[str]] = {nid: set() for nid in extra}
    for src, tgt in edges:
        for nid in (src, tgt):
            incoming.setdefault(nid, set())
            outgoing.setdefault(nid, set())
        outgoing[src].add(tgt)
        incoming[tgt].add(src)
    return {nid: Node(nid, incoming=incoming[nid], outgoing=outgoing[nid]) for nid in incoming}


def leaves(nodes: dict[str, Node], *ids: str) -> list[Leaf]:
    return [Leaf(nodes[nid]) for nid in ids]


# ─── add_to_start Tests ───────────────────────────────────────────────────────


class TestAddToStart:
    def setup_method(self):
        self.n = make_nodes(extra=("A", "B", "C", "D"))
        self.a, self.b, self.c, self.d = leaves(self.n, "A", "B", "C", "D")

    def test_into_empty(self):
        assert add_to_start(self.a, EMPTY) == self.a

    def test_leaf_next_to_leaf(self):
        assert add_to_start(self.b, self.a) == ParallelSet([self.a, self.b])

    def test_appends_to_parallel_set(self):
        assert add_to_start(self.c, ParallelSet([self.a, self.b])) == ParallelSet([self.a, self.b, self.c])

    def test_flattens_both_sides(self):
        tree = add_to_start(ParallelSet([self.c, self.d]), ParallelSet([self.a, self.b]))
        assert tree == ParallelSet([self.a, self.b, self.c, self.d])

    def test_flattens_new_branch_next_to_serial(self):
        serial = SerialPair(self.a, self.b)
        assert add_to_start(ParallelSet([self.c, self.d]), serial) == ParallelSet([serial, self.c, self.d])

    def test_empty_parallel_set_is_a_no_op(self):
        serial = SerialPair(self.a, self.b)
        assert add_to_start(ParallelSet(), serial) is serial


# ─── add_after_upstreams Tests ────────────────────────────────────────────────


class TestAddAfterUpstreams:
    def test_empty_stays_empty(self):
        n = make_nodes(("A", "B"))
        assert isinstance(add_after_upstreams(n["B"], EMPTY), Empty)

    def test_leaf_upstream(self):
        n = make_nodes(("A", "B"))
        a, b = leaves(n, "A", "B")
        assert add_after_upstreams(n["B"], a) == SerialPair(a, b)

    def test_unrelated_leaf_unchanged(self):
        n = make_nodes(("A", "B"), extra=("U",))
        u = Leaf(n["U"])
        assert add_after_upstreams(n["B"], u) is u

    def test_serial_upstream_in_before_joins_after(self):
        """A → B, A → C: C becomes concurrent with B."""
        n = make_nodes(("A", "B"), ("A", "C"))
        a, b, c = leaves(n, "A", "B", "C")
        assert add_after_upstreams(n["C"], SerialPair(a, b)) == SerialPair(a, ParallelSet([b, c]))

    def test_serial_upstream_in_after_recurses(self):
        n = make_nodes(("A", "B"), ("B", "C"))
        a, b, c = leaves(n, "A", "B", "C")
        assert add_after_upstreams(n["C"], SerialPair(a, b)) == SerialPair(a, SerialPair(b, c))

    def test_parallel_without_upstream_unchanged(self):
        n = make_nodes(("A", "B"), extra=("U", "V"))
        tree = ParallelSet(leaves(n, "U", "V"))
        assert add_after_upstreams(n["B"], tree) is tree

    def test_parallel_single_upstream_keeps_positions(self):
        n = make_nodes(("A", "B"), extra=("U", "V"))
        u, a, v, b = leaves(n, "U", "A", "V", "B")
        tree = add_after_upstreams(n["B"], ParallelSet([u, a, v]))
        assert tree == ParallelSet([u, SerialPair(a, b), v])

    def test_input_tree_not_modified(self):
        n = make_nodes(("A", "B"), extra=("U",))
        u, a = leaves(n, "U", "A")
        before = ParallelSet([u, a])
        add_after_upstreams(n["B"], before)
        assert before == ParallelSet([u, a])


# ─── Convergence Tests ────────────────────────────────────────────────────────


class TestConvergence:
    def test_all_exclusive(self):
        """A → C, B → C: both upstreams only feed C."""
        n = make_nodes(("A", "C"), ("B", "C"))
        a, b, c = leaves(n, "A", "B", "C")
        tree = add_after_upstreams(n["C"], ParallelSet([a, b]))
        assert tree == SerialPair(ParallelSet([a, b]), c)

    def test_plain_convergence(self):
        """Neither upstream is exclusive, so the dependent branches are kept as they are."""
        n = make_nodes(("A", "C"), ("A", "X"), ("B", "C"), ("B", "Y"))
        a, b, c = leaves(n, "A", "B", "C")
        tree = add_after_upstreams(n["C"], ParallelSet([a, b]))
        assert tree == SerialPair(ParallelSet([a, b]), c)

    def test_mixed_relocates_exclusive_upstream(self):
        """A → C, A → D, B → D: B moves next to A, right before D."""
        n = make_nodes(("A", "C"), ("A", "D"), ("B", "D"))
        a, b, c, d = leaves(n, "A", "B", "C", "D")
        tree = add_after_upstreams(n["D"], ParallelSet([SerialPair(a, c), b]))
        assert tree == ParallelSet([SerialPair(ParallelSet([a, b]), ParallelSet([c, d]))])

    def test_mixed_with_remainder_leaf(self):
        """A → C, B → C, B → D: A is exclusive to C, B stays in the remainder."""
        n = make_nodes(("A", "C"), ("B", "C"), ("B", "D"))
        a, b, c = leaves(n, "A", "B", "C")
        tree = add_after_upstreams(n["C"], ParallelSet([a, b]))
        assert tree == ParallelSet([SerialPair(ParallelSet([b, a]), c)])

    def test_unrelated_branches_kept_after_merge(self):
        n = make_nodes(("A", "C"), ("B", "C"), extra=("Z",))
        a, b, c, z = leaves(n, "A", "B", "C", "Z")
        tree = add_after_upstreams(n["C"], ParallelSet([a, z, b]))
        assert tree == ParallelSet([SerialPair(ParallelSet([a, b]), c), z])

    def test_no_remainder_and_no_exclusives_raises(self, monkeypatch):
        n = make_nodes(("A", "C"), ("B", "C"))
        a, b = leaves(n, "A", "B")
        monkeypatch.setattr(insertion, "extract_exclusive_upstreams", lambda target, tree: (None, []))
        with pytest.raises(LayoutInvariantError):
            add_after_upstreams(n["C"], ParallelSet([a, b]))


# ─── extract_exclusive_upstreams Tests ────────────────────────────────────────


class TestExtractExclusiveUpstreams:
    def test_empty(self):
        n = make_nodes(("A", "C"))
        assert extract_exclusive_upstreams(n["C"], EMPTY) == (EMPTY, [])

    def test_exclusive_leaf(self):
        n = make_nodes(("A", "C"))
        assert extract_exclusive_upstreams(n["C"], Leaf(n["A"])) == (None, [n["A"]])

    def test_leaf_feeding_two_nodes_stays(self):
        n = make_nodes(("A", "C"), ("A", "D"))
        a = Leaf(n["A"])
        assert extract_exclusive_upstreams(n["C"], a) == (a, [])

    def test_leaf_without_edges_stays(self):
        n = make_nodes(("A", "C"), extra=("U",))
        u = Leaf(n["U"])
        assert extract_exclusive_upstreams(n["C"], u) == (u, [])

    def test_serial_pair_is_opaque(self):
        n = make_nodes(("A", "B"), ("B", "C"))
        pair = SerialPair(Leaf(n["A"]), Leaf(n["B"]))
        assert extract_exclusive_upstreams(n["C"], pair) == (pair, [])

    def test_parallel_partial(self):
        n = make_nodes(("A", "C"), ("B", "C"), ("B", "D"))
        b = Leaf(n["B"])
        result = extract_exclusive_upstreams(n["C"], ParallelSet([Leaf(n["A"]), b]))
        assert result == (ParallelSet([b]), [n["A"]])

    def test_parallel_all_exclusive(self):
        n = make_nodes(("A", "C"), ("B", "C"))
        result = extract_exclusive_upstreams(n["C"], ParallelSet(leaves(n, "A", "B")))
        assert result == (None, [n["A"], n["B"]])


# ─── add_before_downstream Tests ──────────────────────────────────────────────


class TestAddBeforeDownstream:
    def test_empty(self):
        n = make_nodes(("B", "D"))
        assert add_before_downstream(n["B"], EMPTY) == EMPTY

    def test_parallel_entry_fed(self):
        n = make_nodes(("B", "C"), extra=("U",))
        b, c, u = leaves(n, "B", "C", "U")
        tree = ParallelSet([c, u])
        assert add_before_downstream(n["B"], tree) == SerialPair(b, tree)

    def test_parallel_maps_over_branches(self):
        n = make_nodes(("A", "D"), ("B", "D"), extra=("U",))
        a, b, d, u = leaves(n, "A", "B", "D", "U")
        tree = ParallelSet([SerialPair(a, d), u])
        assert add_before_downstream(n["B"], tree) == ParallelSet([SerialPair(ParallelSet([a, b]), d), u])

    def test_serial_after_fed(self):
        n = make_nodes(("A", "D"), ("B", "D"))
        a, b, d = leaves(n, "A", "B", "D")
        assert add_before_downstream(n["B"], SerialPair(a, d)) == SerialPair(ParallelSet([a, b]), d)

    def test_serial_recurses_into_after(self):
        n = make_nodes(("A", "C"), ("C", "E"), ("B", "E"))
        a, b, c, e = leaves(n, "A", "B", "C", "E")
        tree = SerialPair(a, SerialPair(c, e))
        assert add_before_downstream(n["B"], tree) == SerialPair(a, SerialPair(ParallelSet([c, b]), e))

    def test_unrelated_leaf_unchanged(self):
        n = make_nodes(("B", "D"), extra=("U",))
        u = Leaf(n["U"])
        assert add_before_downstream(n["B"], u) is u

    def test_reaching_downstream_leaf_raises(self):
        n = make_nodes(("B", "D"))
        with pytest.raises(LayoutInvariantError):
            add_before_downstream(n["B"], Leaf(n["D"]))
