"""Error types raised by the layout engine.

Two families:

- ``LayoutError`` and its subclasses reject bad input at the boundary
  (cyclic graphs, duplicate ids, non-positive row heights, graphs with
  more levels than the insertion engine can nest). Callers may
  catch these.
- ``LayoutInvariantError`` signals that the engine itself went wrong. It
  derives from ``AssertionError`` rather than ``LayoutError`` so that code
  catching recoverable errors never hides it.
"""

from __future__ import annotations


class LayoutError(Exception):
    """Base class for input rejected by the layout engine."""


class GraphError(LayoutError, ValueError):
    """The input graph is malformed."""


class CyclicGraphError(GraphError):
    """The input graph contains a cycle."""

    def __init__(self, cycle: list[tuple[object, object]]) -> None:
        self.cycle = cycle
        path = " -> ".join(repr(src) for src, _ in cycle)
        if cycle:
            path += f" -> {cycle[0][0]!r}"
        super().__init__(f"graph is not acyclic: {path}")


class DuplicateNodeError(GraphError):
    """Two nodes share the same id."""

    def __init__(self, node_id: object) -> None:
        self.node_id = node_id
        super().__init__(f"duplicate node id: {node_id!r}")


class UnknownNodeError(GraphError):
    """An edge refers to an id that is not part of the graph."""

    def __init__(self, node_id: object, referenced_by: object) -> None:
        self.node_id = node_id
        self.referenced_by = referenced_by
        super().__init__(f"node {referenced_by!r} refers to unknown node {node_id!r}")


class InconsistentEdgeError(GraphError):
    """An edge appears in one endpoint's id set but not the other's."""

    def __init__(self, source: object, target: object) -> None:
        self.source = source
        self.target = target
        super().__init__(
            f"edge {source!r} -> {target!r} must be listed in both "
            f"{source!r}.outgoing and {target!r}.incoming"
        )


class InvalidHeightError(LayoutError, ValueError):
    """A height function returned something other than a positive integer."""

    def __init__(self, node_id: object, value: object) -> None:
        self.node_id = node_id
        self.value = value
        super().__init__(f"row height for node {node_id!r} must be a positive integer, got {value!r}")


class LayoutInvariantError(AssertionError):
    """Internal invariant violated: a bug in the engine, not bad input."""


class LayoutDepthError(LayoutError, ValueError):
    """The graph has more height levels than the insertion engine can nest."""

    def __init__(self, levels: int, limit: int) -> None:
        self.levels = levels
        self.limit = limit
        super().__init__(
            f"graph has {levels} height levels; at most {limit} can be laid out "
            "under the current recursion limit (see sys.setrecursionlimit)"
        )
