"""Layout types shared across the tree builder and the rasterizer.

The layout tree is a tagged union of four frozen dataclasses. Code that walks
it matches on the concrete class and treats anything else as an engine bug.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Union

from pipeline_grid.errors import LayoutInvariantError
from pipeline_grid.graph import Node

# ─── Layout Tree ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Empty:
    """No content; identity element for merges."""


@dataclass(frozen=True)
class Leaf:
    """Exactly one graph node."""

    node: Node


@dataclass(frozen=True)
class SerialPair:
    """``before`` fully precedes ``after``."""

    before: LayoutTree
    after: LayoutTree


@dataclass(frozen=True)
class ParallelSet:
    """Concurrent branches, top to bottom."""

    branches: tuple[LayoutTree, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "branches", tuple(self.branches))


LayoutTree = Union[Empty, Leaf, SerialPair, ParallelSet]

EMPTY = Empty()


def unknown_tree(tree: object) -> LayoutInvariantError:
    """Error for a value that is not one of the four tree variants."""
    return LayoutInvariantError(f"not a layout tree: {tree!r}")


def iter_nodes(tree: LayoutTree) -> Iterator[Node]:
    """Yield every node in the tree, before-then-after and top-to-bottom.

    Walks with an explicit stack, so nesting depth is not bounded by the
    interpreter's recursion limit.
    """
    stack: list[LayoutTree] = [tree]
    while stack:
        current = stack.pop()
        if isinstance(current, Empty):
            continue
        if isinstance(current, Leaf):
            yield current.node
        elif isinstance(current, SerialPair):
            stack.append(current.after)
            stack.append(current.before)
        elif isinstance(current, ParallelSet):
            stack.extend(reversed(current.branches))
        else:
            raise unknown_tree(current)


# ─── Matrix Cells ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NodeCell:
    """Anchor cell of a node (its top row)."""

    node: Node


@dataclass(frozen=True)
class Filled:
    """Row reserved by a multi-row node anchored above."""


@dataclass(frozen=True)
class Spacer:
    """Unused position."""


Cell = Union[NodeCell, Filled, Spacer]

FILLED = Filled()
SPACER = Spacer()
