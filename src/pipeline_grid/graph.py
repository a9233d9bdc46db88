"""Graph input model — the DAG of dependent steps handed to the layout engine.

A ``Graph`` is an ordered collection of ``Node`` values. Edges are not stored
separately: each node lists the ids of its immediate predecessors
(``incoming``) and successors (``outgoing``). Internally the graph is mirrored
into a ``networkx.DiGraph`` (node attribute ``data`` holds the ``Node``) so
that leveling, cycle detection and path queries can use networkx.

Node order is significant: it is the order the caller supplied, and it is the
order nodes keep inside each height level.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import networkx as nx
from loguru import logger

from pipeline_grid.errors import (
    CyclicGraphError,
    DuplicateNodeError,
    GraphError,
    InconsistentEdgeError,
    UnknownNodeError,
)

# ─── Node ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class JunctionId:
    """Id of a synthetic node inserted by ``Graph.with_junctions``.

    ``step`` counts from 1 at the junction nearest ``source``.
    """

    source: Hashable
    target: Hashable
    step: int


@dataclass(frozen=True)
class Node:
    """One step of the graph.

    The payload is opaque to the engine and excluded from equality and
    hashing; two nodes are equal when their id and edge sets are equal.
    """

    id: Hashable
    payload: Any = field(default=None, compare=False)
    incoming: frozenset = field(default_factory=frozenset)
    outgoing: frozenset = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # Any iterable of ids becomes a frozenset; a bare str or bytes is rejected.
        for name in ("incoming", "outgoing"):
            ids = getattr(self, name)
            if isinstance(ids, (str, bytes)):
                raise GraphError(f"node {self.id!r}: {name} must be a collection of ids, not {ids!r}")
            object.__setattr__(self, name, frozenset(ids))

    @property
    def is_root(self) -> bool:
        return not self.incoming

    @property
    def is_junction(self) -> bool:
        return isinstance(self.id, JunctionId)


# ─── Graph ────────────────────────────────────────────────────────────────────


class Graph:
    """A validated, immutable DAG snapshot.

    Construction rejects duplicate ids, references to unknown ids and edges
    listed on only one of their endpoints. Acyclicity is checked lazily by
    the operations that need a topological order (``height_levels``,
    ``longest_path_length``, ``with_junctions``).
    """

    def __init__(self, nodes: Iterable[Node]) -> None:
        digraph: nx.DiGraph = nx.DiGraph()
        for node in nodes:
            if node.id in digraph:
                raise DuplicateNodeError(node.id)
            digraph.add_node(node.id, data=node)

        for node_id, attrs in list(digraph.nodes(data=True)):
            node: Node = attrs["data"]
            for succ in node.outgoing:
                if succ not in digraph:
                    raise UnknownNodeError(succ, node_id)
                if node_id not in digraph.nodes[succ]["data"].incoming:
                    raise InconsistentEdgeError(node_id, succ)
                digraph.add_edge(node_id, succ)
            for pred in node.incoming:
                if pred not in digraph:
                    raise UnknownNodeError(pred, node_id)
                if node_id not in digraph.nodes[pred]["data"].outgoing:
                    raise InconsistentEdgeError(pred, node_id)

        self.digraph = digraph

    @classmethod
    def from_edges(
        cls,
        node_ids: Iterable[Hashable],
        edges: Iterable[tuple[Hashable, Hashable]] = (),
        payloads: Mapping[Hashable, Any] | None = None,
    ) -> Graph:
        """Build a graph from ids and ``(source, target)`` pairs.

        Ids that only appear in ``edges`` are appended after ``node_ids`` in
        first-seen order.
        """
        ids: list[Hashable] = []
        seen: set[Hashable] = set()
        for node_id in node_ids:
            if node_id in seen:
                raise DuplicateNodeError(node_id)
            seen.add(node_id)
            ids.append(node_id)

        edge_list = list(edges)
        for src, tgt in edge_list:
            for end in (src, tgt):
                if end not in seen:
                    seen.add(end)
                    ids.append(end)

        incoming: dict[Hashable, set[Hashable]] = {node_id: set() for node_id in ids}
        outgoing: dict[Hashable, set[Hashable]] = {node_id: set() for node_id in ids}
        for src, tgt in edge_list:
            outgoing[src].add(tgt)
            incoming[tgt].add(src)

        payloads = payloads or {}
        return cls(
            Node(
                id=node_id,
                payload=payloads.get(node_id),
                incoming=frozenset(incoming[node_id]),
                outgoing=frozenset(outgoing[node_id]),
            )
            for node_id in ids
        )

    @classmethod
    def from_digraph(cls, digraph: nx.DiGraph, payload_attr: str = "payload") -> Graph:
        """Build a graph from a networkx DiGraph; payloads come from ``payload_attr``."""
        return cls(
            Node(
                id=node_id,
                payload=attrs.get(payload_attr),
                incoming=frozenset(digraph.predecessors(node_id)),
                outgoing=frozenset(digraph.successors(node_id)),
            )
            for node_id, attrs in digraph.nodes(data=True)
        )

    # ── Queries ──

    @property
    def nodes(self) -> list[Node]:
        return [attrs["data"] for _, attrs in self.digraph.nodes(data=True)]

    def node(self, node_id: Hashable) -> Node:
        return self.digraph.nodes[node_id]["data"]

    def edges(self) -> list[tuple[Hashable, Hashable]]:
        return list(self.digraph.edges())

    def __len__(self) -> int:
        return self.digraph.number_of_nodes()

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.digraph

    def __repr__(self) -> str:
        return f"Graph(nodes={self.digraph.number_of_nodes()}, edges={self.digraph.number_of_edges()})"

    # ── Leveling ──

    def _require_acyclic(self) -> None:
        if not nx.is_directed_acyclic_graph(self.digraph):
            raise CyclicGraphError(nx.find_cycle(self.digraph))

    def level_map(self) -> dict[Hashable, int]:
        """Map node id → length of its longest predecessor chain."""
        self._require_acyclic()
        levels: dict[Hashable, int] = {}
        for node_id in nx.topological_sort(self.digraph):
            levels[node_id] = max((levels[pred] + 1 for pred in self.digraph.predecessors(node_id)), default=0)
        return levels

    def height_levels(self) -> list[list[Node]]:
        """Partition nodes into height levels, keeping graph order inside each level.

        Level 0 holds the roots; level k holds the nodes whose longest
        predecessor chain has length k.
        """
        levels = self.level_map()
        grouped: list[list[Node]] = [[] for _ in range(max(levels.values(), default=-1) + 1)]
        for node in self.nodes:
            grouped[levels[node.id]].append(node)
        return grouped

    def longest_path_length(self) -> int:
        """Number of nodes on the longest path (0 for an empty graph)."""
        self._require_acyclic()
        if self.digraph.number_of_nodes() == 0:
            return 0
        return nx.dag_longest_path_length(self.digraph) + 1

    # ── Junction normalization ──

    def with_junctions(self) -> Graph:
        """Return a copy where every edge joins adjacent height levels.

        For each edge u → v with level[v] - level[u] > 1 the edge is replaced
        by the chain u → j₁ → … → jₖ → v, one junction per intermediate
        level. Junctions carry no payload and follow the original nodes in
        graph order.

        The rewrite does not make columns strictly increase along every edge
        of the laid-out graph: a node can still share a column with one of
        its upstreams (e.g. A→B, A→D, B→E, C→D, C→E puts the C→E junction
        into E's column).
        """
        levels = self.level_map()
        digraph: nx.DiGraph = self.digraph.copy()
        junction_count = 0

        for src, tgt in list(self.digraph.edges()):
            span = levels[tgt] - levels[src]
            if span <= 1:
                continue
            digraph.remove_edge(src, tgt)
            prev = src
            for step in range(1, span):
                junction = JunctionId(source=src, target=tgt, step=step)
                digraph.add_node(junction, data=None)
                digraph.add_edge(prev, junction)
                prev = junction
                junction_count += 1
            digraph.add_edge(prev, tgt)

        logger.debug("inserted {} junction node(s) into {!r}", junction_count, self)

        nodes: list[Node] = []
        for node_id, attrs in digraph.nodes(data=True):
            original: Node | None = attrs.get("data")
            nodes.append(
                Node(
                    id=node_id,
                    payload=original.payload if original is not None else None,
                    incoming=frozenset(digraph.predecessors(node_id)),
                    outgoing=frozenset(digraph.successors(node_id)),
                )
            )
        return Graph(nodes)
