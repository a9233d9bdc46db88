"""Layout engine: tree builder, insertion engine, predicates and rasterizer."""

from pipeline_grid.layout.builder import build, insert, max_levels
from pipeline_grid.layout.matrix import DEFAULT_ROW_HEIGHT, Matrix, default_height, height, to_matrix, width
from pipeline_grid.layout.types import (
    EMPTY,
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
)

__all__ = [
    "DEFAULT_ROW_HEIGHT",
    "EMPTY",
    "FILLED",
    "SPACER",
    "Cell",
    "Empty",
    "Filled",
    "LayoutTree",
    "Leaf",
    "Matrix",
    "NodeCell",
    "ParallelSet",
    "SerialPair",
    "Spacer",
    "build",
    "default_height",
    "height",
    "insert",
    "iter_nodes",
    "max_levels",
    "to_matrix",
    "width",
]
