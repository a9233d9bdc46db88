"""Rasterizer — turns a finished layout tree into a dense matrix of cells.

Serial pairs lay out left to right, parallel sets top to bottom. Each node
occupies one column and as many rows as the height function asks for: the
top row holds the ``NodeCell`` and the rows below it are ``FILLED``.
Everything else stays ``SPACER``.
"""

from __future__ import annotations

import numbers
import operator
from collections.abc import Callable, Hashable, Iterable, Iterator

from loguru import logger

from pipeline_grid.errors import InvalidHeightError, LayoutInvariantError
from pipeline_grid.graph import Node
from pipeline_grid.layout.types import (
    FILLED,
    SPACER,
    Cell,
    Empty,
    Filled,
    LayoutTree,
    Leaf,
    NodeCell,
    ParallelSet,
    SerialPair,
    Spacer,
    iter_nodes,
    unknown_tree,
)

HeightFn = Callable[[Node], int]

# Rows given to a node when the caller supplies no height function.
DEFAULT_ROW_HEIGHT: int = 1


def default_height(node: Node) -> int:
    return DEFAULT_ROW_HEIGHT


# ─── Matrix ───────────────────────────────────────────────────────────────────


class Matrix:
    """A row-major grid of cells, addressed by ``(row, col)``."""

    def __init__(self, row_count: int, col_count: int) -> None:
        self._cells: list[list[Cell]] = [[SPACER] * col_count for _ in range(row_count)]
        self._row_count = row_count
        self._col_count = col_count

    @property
    def row_count(self) -> int:
        return self._row_count

    @property
    def col_count(self) -> int:
        return self._col_count

    @property
    def size(self) -> tuple[int, int]:
        return (self._row_count, self._col_count)

    def get(self, row: int, col: int) -> Cell:
        if not (0 <= row < self._row_count and 0 <= col < self._col_count):
            raise IndexError(f"cell ({row}, {col}) outside {self._row_count}x{self._col_count} matrix")
        return self._cells[row][col]

    def rows(self) -> list[tuple[Cell, ...]]:
        return [tuple(row) for row in self._cells]

    def cells(self) -> Iterator[tuple[int, int, Cell]]:
        for r, row in enumerate(self._cells):
            for c, cell in enumerate(row):
                yield r, c, cell

    def locate(self, node_id: Hashable) -> tuple[int, int] | None:
        """Return the ``(row, col)`` anchor of a node, or None if absent."""
        for r, c, cell in self.cells():
            if isinstance(cell, NodeCell) and cell.node.id == node_id:
                return (r, c)
        return None

    def to_text(self, label: Callable[[Node], str] | None = None) -> str:
        """Plain-text dump: node labels, ``^`` for filled rows, ``.`` for spacers."""
        label = label or (lambda node: str(node.id))

        def text(cell: Cell) -> str:
            if isinstance(cell, NodeCell):
                return label(cell.node)
            if isinstance(cell, Filled):
                return "^"
            return "."

        grid = [[text(cell) for cell in row] for row in self._cells]
        col_widths = [max((len(row[c]) for row in grid), default=0) for c in range(self._col_count)]
        return "\n".join(
            " ".join(value.ljust(col_widths[c]) for c, value in enumerate(row)).rstrip() for row in grid
        )

    def _place(self, row: int, col: int, cell: Cell) -> None:
        if not isinstance(self._cells[row][col], Spacer):
            raise LayoutInvariantError(f"cell ({row}, {col}) assigned twice")
        self._cells[row][col] = cell

    def __repr__(self) -> str:
        return f"Matrix({self._row_count}x{self._col_count})"


# ─── Measurements ─────────────────────────────────────────────────────────────


def _one_column(node: Node) -> int:
    return 1


def _widest(sizes: Iterable[int]) -> int:
    return max(sizes, default=0)


def _measure(
    tree: LayoutTree,
    leaf_size: Callable[[Node], int],
    serial: Callable[[int, int], int],
    parallel: Callable[[Iterable[int]], int],
) -> dict[int, int]:
    """Size of every subtree, keyed by ``id(subtree)``.

    Post-order walk with an explicit stack; nesting depth is unbounded.
    """
    sizes: dict[int, int] = {}
    stack: list[tuple[LayoutTree, bool]] = [(tree, False)]
    while stack:
        current, children_done = stack.pop()
        key = id(current)
        if key in sizes:
            continue
        if isinstance(current, Empty):
            sizes[key] = 0
        elif isinstance(current, Leaf):
            sizes[key] = leaf_size(current.node)
        elif isinstance(current, SerialPair):
            if children_done:
                sizes[key] = serial(sizes[id(current.before)], sizes[id(current.after)])
            else:
                stack.append((current, True))
                stack.append((current.after, False))
                stack.append((current.before, False))
        elif isinstance(current, ParallelSet):
            if children_done:
                sizes[key] = parallel(sizes[id(branch)] for branch in current.branches)
            else:
                stack.append((current, True))
                stack.extend((branch, False) for branch in reversed(current.branches))
        else:
            raise unknown_tree(current)
    return sizes


def width(tree: LayoutTree) -> int:
    """Number of columns the tree occupies."""
    return _measure(tree, _one_column, operator.add, _widest)[id(tree)]


def height(height_fn: HeightFn, tree: LayoutTree) -> int:
    """Number of rows the tree occupies under ``height_fn``."""
    return _measure(tree, lambda node: _row_height(height_fn, node), max, sum)[id(tree)]


def _row_height(height_fn: HeightFn, node: Node) -> int:
    value = height_fn(node)
    # Any integral type (numpy ints included), but not bool.
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise InvalidHeightError(node.id, value)
    return int(value)


# ─── Placement ────────────────────────────────────────────────────────────────


def to_matrix(height_fn: HeightFn, tree: LayoutTree) -> Matrix:
    """Rasterize ``tree`` into a ``height × width`` matrix.

    ``height_fn`` is called once per node; every result must be a positive
    integer, otherwise ``InvalidHeightError`` is raised before anything is
    placed.
    """
    heights = {node.id: _row_height(height_fn, node) for node in iter_nodes(tree)}

    def rows_of(node: Node) -> int:
        return heights[node.id]

    row_sizes = _measure(tree, rows_of, max, sum)
    col_sizes = _measure(tree, _one_column, operator.add, _widest)
    matrix = Matrix(row_sizes[id(tree)], col_sizes[id(tree)])
    _place_tree(matrix, tree, rows_of, row_sizes, col_sizes)
    logger.debug("rasterized {} node(s) into {!r}", len(heights), matrix)
    return matrix


def _place_tree(
    matrix: Matrix,
    tree: LayoutTree,
    rows_of: HeightFn,
    row_sizes: dict[int, int],
    col_sizes: dict[int, int],
) -> None:
    stack: list[tuple[LayoutTree, int, int]] = [(tree, 0, 0)]
    while stack:
        current, row, col = stack.pop()

        if isinstance(current, Empty):
            continue

        if isinstance(current, Leaf):
            matrix._place(row, col, NodeCell(current.node))
            for r in range(row + 1, row + rows_of(current.node)):
                matrix._place(r, col, FILLED)
            continue

        if isinstance(current, SerialPair):
            stack.append((current.after, row, col + col_sizes[id(current.before)]))
            stack.append((current.before, row, col))
            continue

        if isinstance(current, ParallelSet):
            offset = row
            placed: list[tuple[LayoutTree, int, int]] = []
            for branch in current.branches:
                placed.append((branch, offset, col))
                offset += row_sizes[id(branch)]
            stack.extend(reversed(placed))
            continue

        raise unknown_tree(current)
