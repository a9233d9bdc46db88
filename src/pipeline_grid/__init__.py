"""pipeline_grid — lays out a DAG of dependent steps as a grid for pipeline diagrams."""

from loguru import logger

from pipeline_grid.api import layout_graph
from pipeline_grid.errors import (
    CyclicGraphError,
    DuplicateNodeError,
    GraphError,
    InconsistentEdgeError,
    InvalidHeightError,
    LayoutDepthError,
    LayoutError,
    LayoutInvariantError,
    UnknownNodeError,
)
from pipeline_grid.graph import Graph, JunctionId, Node
from pipeline_grid.layout import (
    EMPTY,
    FILLED,
    SPACER,
    Empty,
    Filled,
    LayoutTree,
    Leaf,
    Matrix,
    NodeCell,
    ParallelSet,
    SerialPair,
    Spacer,
    build,
    to_matrix,
)

# Library convention for loguru: silent until the application opts in.
logger.disable("pipeline_grid")

__all__ = [
    "EMPTY",
    "FILLED",
    "SPACER",
    "CyclicGraphError",
    "DuplicateNodeError",
    "Empty",
    "Filled",
    "Graph",
    "GraphError",
    "InconsistentEdgeError",
    "InvalidHeightError",
    "JunctionId",
    "LayoutDepthError",
    "LayoutError",
    "LayoutInvariantError",
    "LayoutTree",
    "Leaf",
    "Matrix",
    "Node",
    "NodeCell",
    "ParallelSet",
    "SerialPair",
    "Spacer",
    "UnknownNodeError",
    "build",
    "layout_graph",
    "to_matrix",
]
