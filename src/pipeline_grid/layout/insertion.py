"""Insertion engine — merges one node at a time into a partially built layout tree.

Placement rule: a node goes into the earliest stage that is strictly after
everything it depends on. Three situations arise when walking the tree:

1. No upstream in the subtree: leave it alone.
2. Exactly one branch holds upstreams: recurse into that branch.
3. Several branches hold upstreams (convergence): pull out the upstreams
   whose only edge targets the node ("exclusive" upstreams), place the node
   after the remaining dependent content, then slot each exclusive upstream
   back in immediately before the node.

Every function returns a new tree; inputs are never modified.
"""

from __future__ import annotations

from loguru import logger

from pipeline_grid.errors import LayoutInvariantError
from pipeline_grid.graph import Node
from pipeline_grid.layout.predicates import comes_directly_from, leads_to
from pipeline_grid.layout.types import (
    EMPTY,
    Empty,
    LayoutTree,
    Leaf,
    ParallelSet,
    SerialPair,
    unknown_tree,
)


def _branches(tree: LayoutTree) -> tuple[LayoutTree, ...]:
    if isinstance(tree, ParallelSet):
        return tree.branches
    return (tree,)


def add_to_start(new_branch: LayoutTree, tree: LayoutTree) -> LayoutTree:
    """Add ``new_branch`` as one more concurrent branch at the start of ``tree``.

    Parallel sets on either side are flattened rather than nested. A
    ``new_branch`` with no branches of its own (an empty parallel set) leaves
    ``tree`` as it is.
    """
    if isinstance(tree, Empty):
        return new_branch
    added = _branches(new_branch)
    if not added:
        return tree
    if isinstance(tree, ParallelSet):
        return ParallelSet(tree.branches + added)
    return ParallelSet((tree,) + added)


def add_after_upstreams(node: Node, tree: LayoutTree) -> LayoutTree:
    """Place ``node`` in the earliest stage strictly after its upstreams in ``tree``."""
    if isinstance(tree, Empty):
        return EMPTY

    if isinstance(tree, Leaf):
        if node.id in tree.node.outgoing:
            return SerialPair(tree, Leaf(node))
        return tree

    if isinstance(tree, SerialPair):
        if leads_to(node, tree.before):
            return SerialPair(tree.before, add_to_start(Leaf(node), tree.after))
        return SerialPair(tree.before, add_after_upstreams(node, tree.after))

    if isinstance(tree, ParallelSet):
        upstream = [leads_to(node, branch) for branch in tree.branches]
        dependent = [branch for branch, is_up in zip(tree.branches, upstream) if is_up]
        rest = [branch for branch, is_up in zip(tree.branches, upstream) if not is_up]

        if not dependent:
            return tree

        if len(dependent) == 1:
            return ParallelSet(
                add_after_upstreams(node, branch) if is_up else branch
                for branch, is_up in zip(tree.branches, upstream)
            )

        merged = _converge(node, dependent)
        return add_to_start(ParallelSet(rest), merged)

    raise unknown_tree(tree)


def _converge(node: Node, dependent: list[LayoutTree]) -> LayoutTree:
    """Merge ``node`` after two or more dependent branches."""
    remainder, exclusives = extract_exclusive_upstreams(node, ParallelSet(dependent))
    logger.trace(
        "converging {!r}: {} dependent branch(es), {} exclusive upstream(s), remainder={}",
        node.id,
        len(dependent),
        len(exclusives),
        remainder is not None,
    )

    if remainder is None and exclusives:
        # Every dependent path reduces to an exclusive upstream.
        return SerialPair(ParallelSet(Leaf(up) for up in exclusives), Leaf(node))

    if remainder is not None and not exclusives:
        return SerialPair(ParallelSet(dependent), Leaf(node))

    if remainder is not None and exclusives:
        merged = add_after_upstreams(node, remainder)
        for up in reversed(exclusives):
            merged = add_before_downstream(up, merged)
        return merged

    raise LayoutInvariantError(
        f"node {node.id!r} converges from {len(dependent)} branches "
        "but they yielded neither a remainder nor an exclusive upstream"
    )


def extract_exclusive_upstreams(target: Node, tree: LayoutTree) -> tuple[LayoutTree | None, list[Node]]:
    """Split ``tree`` into what is left and the upstreams that only feed ``target``.

    Returns ``(remainder, exclusives)``; ``remainder`` is ``None`` when nothing
    is left once the exclusive upstreams are pulled out. Serial pairs are not
    decomposed.
    """
    if isinstance(tree, Empty):
        return EMPTY, []

    if isinstance(tree, Leaf):
        if tree.node.outgoing == {target.id}:
            return None, [tree.node]
        return tree, []

    if isinstance(tree, SerialPair):
        return tree, []

    if isinstance(tree, ParallelSet):
        remainders: list[LayoutTree] = []
        exclusives: list[Node] = []
        for branch in tree.branches:
            branch_rest, branch_exclusives = extract_exclusive_upstreams(target, branch)
            exclusives.extend(branch_exclusives)
            if branch_rest is not None:
                remainders.append(branch_rest)
        if not remainders:
            return None, exclusives
        return ParallelSet(remainders), exclusives

    raise unknown_tree(tree)


def add_before_downstream(node: Node, tree: LayoutTree) -> LayoutTree:
    """Place ``node`` immediately before the first content in ``tree`` that it feeds."""
    if isinstance(tree, Empty):
        return EMPTY

    if isinstance(tree, ParallelSet):
        if comes_directly_from(node, tree):
            return SerialPair(Leaf(node), tree)
        return ParallelSet(add_before_downstream(node, branch) for branch in tree.branches)

    if isinstance(tree, SerialPair):
        if comes_directly_from(node, tree.after):
            return SerialPair(add_to_start(Leaf(node), tree.before), tree.after)
        return SerialPair(tree.before, add_before_downstream(node, tree.after))

    if isinstance(tree, Leaf):
        if comes_directly_from(node, tree):
            raise LayoutInvariantError(
                f"node {node.id!r} reached its downstream {tree.node.id!r} without being placed before it"
            )
        return tree

    raise unknown_tree(tree)
