"""Structural queries over the layout tree.

Both predicates are deliberately narrow and the merge rules depend on that:

- ``leads_to`` looks for an immediate edge only. It does not follow chains,
  so a node two hops downstream of a subtree is not "led to" by it.
- ``comes_directly_from`` only inspects the entry boundary of a subtree: for
  a serial pair that is the ``before`` half.
"""

from __future__ import annotations

from pipeline_grid.graph import Node
from pipeline_grid.layout.types import Empty, LayoutTree, Leaf, ParallelSet, SerialPair, unknown_tree


def leads_to(node: Node, tree: LayoutTree) -> bool:
    """True if some leaf in ``tree`` lists ``node`` among its immediate successors."""
    if isinstance(tree, Empty):
        return False
    if isinstance(tree, Leaf):
        return node.id in tree.node.outgoing
    if isinstance(tree, SerialPair):
        return leads_to(node, tree.before) or leads_to(node, tree.after)
    if isinstance(tree, ParallelSet):
        return any(leads_to(node, branch) for branch in tree.branches)
    raise unknown_tree(tree)


def comes_directly_from(node: Node, tree: LayoutTree) -> bool:
    """True if something at the entry of ``tree`` lists ``node`` as an immediate predecessor."""
    if isinstance(tree, Empty):
        return False
    if isinstance(tree, Leaf):
        return node.id in tree.node.incoming
    if isinstance(tree, SerialPair):
        return comes_directly_from(node, tree.before)
    if isinstance(tree, ParallelSet):
        return any(comes_directly_from(node, branch) for branch in tree.branches)
    raise unknown_tree(tree)
