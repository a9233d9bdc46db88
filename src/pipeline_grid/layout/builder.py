"""Tree builder — folds the insertion engine over a graph, level by level."""

from __future__ import annotations

import sys

from loguru import logger

from pipeline_grid.errors import LayoutDepthError
from pipeline_grid.graph import Graph, Node
from pipeline_grid.layout.insertion import add_after_upstreams, add_to_start
from pipeline_grid.layout.types import EMPTY, LayoutTree, Leaf

# Insertion recurses once per nesting level of the tree, and the tree nests
# at most a few levels deeper per height level of the graph.
FRAMES_PER_LEVEL: int = 4
# Frames left for the caller and for logging.
RECURSION_HEADROOM: int = 100


def max_levels() -> int:
    """Deepest graph (in height levels) ``build`` accepts under the current recursion limit."""
    return max(0, (sys.getrecursionlimit() - RECURSION_HEADROOM) // FRAMES_PER_LEVEL)


def insert(node: Node, tree: LayoutTree) -> LayoutTree:
    """Insert one node. Roots start a new concurrent branch; others follow their upstreams."""
    if node.is_root:
        return add_to_start(Leaf(node), tree)
    return add_after_upstreams(node, tree)


def build(graph: Graph) -> LayoutTree:
    """Build the layout tree for ``graph``.

    Nodes are inserted level by level (roots first), keeping graph order
    inside a level, so every node is inserted after all of its upstreams.

    Raises:
        CyclicGraphError: if the graph has a cycle.
        LayoutDepthError: if the graph has more height levels than
            ``max_levels()``.
    """
    levels = graph.height_levels()
    limit = max_levels()
    if len(levels) > limit:
        raise LayoutDepthError(len(levels), limit)
    logger.debug("building layout for {!r}: {} height level(s)", graph, len(levels))

    tree: LayoutTree = EMPTY
    for depth, level in enumerate(levels):
        for node in level:
            logger.trace("inserting {!r} at level {}", node.id, depth)
            tree = insert(node, tree)
    return tree
