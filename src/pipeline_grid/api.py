"""Public convenience API: graph in, matrix out."""

from __future__ import annotations

from pipeline_grid.graph import Graph
from pipeline_grid.layout.builder import build
from pipeline_grid.layout.matrix import HeightFn, Matrix, default_height, to_matrix


def layout_graph(graph: Graph, height_fn: HeightFn | None = None, junctions: bool = False) -> Matrix:
    """Lay out ``graph`` and rasterize it.

    Args:
        graph:     The DAG to lay out.
        height_fn: Rows per node; one row each when omitted.
        junctions: Split edges that skip height levels into chains of
                   junction nodes first (see ``Graph.with_junctions``).

    Raises:
        CyclicGraphError:   the graph has a cycle.
        LayoutDepthError:   the graph has too many height levels.
        InvalidHeightError: ``height_fn`` returned a non-positive or
                            non-integral row count.
    """
    if junctions:
        graph = graph.with_junctions()
    return to_matrix(height_fn or default_height, build(graph))
