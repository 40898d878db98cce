"""Layered auto-layout for workflow graphs.

Nodes are assigned to ranks by longest-path distance from the source nodes,
ordered within each rank with a barycenter heuristic, and spaced so that no
two footprints overlap. The layout never fails: a degenerate result falls
back to single-file spacing, and any error in the layered pass falls back to
a plain grid.

Usage:

    from flowcraft.engine.layout import layout_graph
    result = layout_graph(workflow.nodes, workflow.edges, LayoutDirection.top_to_bottom)
"""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable

import networkx as nx

from flowcraft.models.layout import EdgeStyle, LayoutDirection, LayoutResult, StyledEdge
from flowcraft.models.workflow import Edge, EdgeKind, Node, NodeKind, Position

logger = logging.getLogger(__name__)


# footprints (width, height) by node kind
WIDE_FOOTPRINT = (400.0, 80.0)
NARROW_FOOTPRINT = (350.0, 80.0)
NODE_FOOTPRINTS = {
    NodeKind.trigger: WIDE_FOOTPRINT,
    NodeKind.action: WIDE_FOOTPRINT,
    NodeKind.loop: WIDE_FOOTPRINT,
    NodeKind.condition: NARROW_FOOTPRINT,
    NodeKind.transform: NARROW_FOOTPRINT,
}

NODE_SEPARATION = 60.0  # gap between neighbours in the same rank
RANK_SEPARATION = {
    LayoutDirection.top_to_bottom: 300.0,
    LayoutDirection.left_to_right: 150.0,
}
MARGIN = 50.0
MANUAL_STRIDE = 300.0
GRID_CELL = 300.0
BARYCENTER_SWEEPS = 4

DEFAULT_EDGE_STYLE = EdgeStyle(stroke_width=2.0, stroke="#e5e7eb")
CONDITIONAL_EDGE_STYLE = EdgeStyle(stroke_width=3.0, stroke="#f59e0b")

_NUMERIC_SUFFIX = re.compile(r"(\d+)$")


def footprint(node: Node) -> tuple[float, float]:
    """width and height a node occupies on the canvas."""
    return NODE_FOOTPRINTS.get(node.type, WIDE_FOOTPRINT)


def _main_extent(size: tuple[float, float], direction: LayoutDirection) -> float:
    return size[1] if direction == LayoutDirection.top_to_bottom else size[0]


def _cross_extent(size: tuple[float, float], direction: LayoutDirection) -> float:
    return size[0] if direction == LayoutDirection.top_to_bottom else size[1]


def _to_xy(main: float, cross: float, direction: LayoutDirection) -> tuple[float, float]:
    if direction == LayoutDirection.top_to_bottom:
        return cross, main
    return main, cross


def _build_graph(nodes: list[Node], edges: Iterable[Edge]) -> nx.DiGraph:
    """directed graph of the workflow, keyed by node ID.

    Self-loops and edges with unknown endpoints are ignored; parallel edges
    collapse into one. Raises ValueError on duplicate node IDs.
    """
    node_ids = [node.id for node in nodes]
    if len(set(node_ids)) != len(node_ids):
        raise ValueError("cannot lay out a graph with duplicate node IDs")

    graph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    for edge in edges:
        if edge.source == edge.target:
            continue
        if graph.has_node(edge.source) and graph.has_node(edge.target):
            graph.add_edge(edge.source, edge.target)
    return graph


def _predecessors(graph: nx.DiGraph) -> dict[str, list[str]]:
    return {node_id: list(graph.predecessors(node_id)) for node_id in graph}


def _successors(graph: nx.DiGraph) -> dict[str, list[str]]:
    return {node_id: list(graph.successors(node_id)) for node_id in graph}


def compute_ranks(order: list[str], preds: dict[str, list[str]]) -> dict[str, int]:
    """Longest-path rank of every node, measured from the source nodes.

    Iterative DFS over predecessors. A predecessor that is already on the
    current traversal path closes a cycle and contributes rank 0, so every
    node is entered at most once and cycles terminate.
    """
    ranks: dict[str, int] = {}
    for root in order:
        if root in ranks:
            continue
        on_path = {root}
        stack: list[list] = [[root, iter(preds[root]), 0]]
        while stack:
            frame = stack[-1]
            child = None
            for pred in frame[1]:
                if pred in on_path:
                    continue
                if pred in ranks:
                    frame[2] = max(frame[2], ranks[pred] + 1)
                    continue
                child = pred
                break

            if child is not None:
                on_path.add(child)
                stack.append([child, iter(preds[child]), 0])
                continue

            stack.pop()
            on_path.discard(frame[0])
            ranks[frame[0]] = frame[2]
            if stack:
                stack[-1][2] = max(stack[-1][2], frame[2] + 1)
    return ranks


def _group_layers(order: list[str], ranks: dict[str, int]) -> list[list[str]]:
    layers: list[list[str]] = [[] for _ in range(max(ranks.values()) + 1)]
    for node_id in order:
        layers[ranks[node_id]].append(node_id)
    return [layer for layer in layers if layer]


def _order_layers(
    layers: list[list[str]],
    preds: dict[str, list[str]],
    succs: dict[str, list[str]],
    input_index: dict[str, int],
) -> None:
    """reorder each layer in place by the barycenter of its neighbours."""
    layer_of = {node_id: r for r, layer in enumerate(layers) for node_id in layer}
    slot = {node_id: i for layer in layers for i, node_id in enumerate(layer)}

    for sweep in range(BARYCENTER_SWEEPS):
        downward = sweep % 2 == 0
        if downward:
            rank_indices = range(1, len(layers))
        else:
            rank_indices = range(len(layers) - 2, -1, -1)
        neighbours = preds if downward else succs

        for r in rank_indices:
            adjacent = r - 1 if downward else r + 1

            def sort_key(node_id: str) -> tuple[float, int]:
                linked = [slot[n] for n in neighbours[node_id] if layer_of[n] == adjacent]
                if linked:
                    return sum(linked) / len(linked), input_index[node_id]
                return float(slot[node_id]), input_index[node_id]

            layers[r].sort(key=sort_key)
            for i, node_id in enumerate(layers[r]):
                slot[node_id] = i


def _layered_anchors(
    layers: list[list[str]],
    sizes: dict[str, tuple[float, float]],
    direction: LayoutDirection,
) -> dict[str, tuple[float, float]]:
    """centre point of every node, ranks stacked along the main axis."""
    rank_depth = [
        max(_main_extent(sizes[node_id], direction) for node_id in layer)
        for layer in layers
    ]
    rank_breadth = [
        sum(_cross_extent(sizes[node_id], direction) for node_id in layer)
        + NODE_SEPARATION * (len(layer) - 1)
        for layer in layers
    ]
    centre_line = MARGIN + max(rank_breadth) / 2

    anchors: dict[str, tuple[float, float]] = {}
    main_cursor = MARGIN
    for r, layer in enumerate(layers):
        main_anchor = main_cursor + rank_depth[r] / 2
        cross_cursor = centre_line - rank_breadth[r] / 2
        for node_id in layer:
            cross = _cross_extent(sizes[node_id], direction)
            anchors[node_id] = _to_xy(main_anchor, cross_cursor + cross / 2, direction)
            cross_cursor += cross + NODE_SEPARATION
        main_cursor += rank_depth[r] + RANK_SEPARATION[direction]
    return anchors


def _is_degenerate(anchors: dict[str, tuple[float, float]]) -> bool:
    points = list(anchors.values())
    if any(not math.isfinite(value) for point in points for value in point):
        return True
    return len(set(points)) < len(points)


def _manual_sort_key(item: tuple[int, Node]) -> tuple[int, float, int]:
    index, node = item
    match = _NUMERIC_SUFFIX.search(node.id)
    suffix = int(match.group(1)) if match else math.inf
    return (0 if node.type == NodeKind.trigger else 1, suffix, index)


def manual_anchors(
    nodes: list[Node],
    direction: LayoutDirection,
) -> dict[str, tuple[float, float]]:
    """Single-file anchors along the main axis: triggers first, then by numeric ID suffix."""
    sizes = [footprint(node) for node in nodes]
    depth = max(_main_extent(size, direction) for size in sizes)
    breadth = max(_cross_extent(size, direction) for size in sizes)
    stride = max(MANUAL_STRIDE, depth + NODE_SEPARATION)

    anchors: dict[str, tuple[float, float]] = {}
    ordered = sorted(enumerate(nodes), key=_manual_sort_key)
    for step, (_, node) in enumerate(ordered):
        main = MARGIN + depth / 2 + step * stride
        anchors[node.id] = _to_xy(main, MARGIN + breadth / 2, direction)
    return anchors


def grid_positions(nodes: list[Node]) -> list[Position]:
    """Row-major grid with ceil(sqrt(n)) columns; cells never smaller than a footprint."""
    if not nodes:
        return []
    side = math.ceil(math.sqrt(len(nodes)))
    sizes = [footprint(node) for node in nodes]
    cell_width = max(GRID_CELL, max(w for w, _ in sizes) + NODE_SEPARATION)
    cell_height = max(GRID_CELL, max(h for _, h in sizes) + NODE_SEPARATION)

    positions: list[Position] = []
    for i in range(len(nodes)):
        row, col = divmod(i, side)
        positions.append(Position(x=MARGIN + col * cell_width, y=MARGIN + row * cell_height))
    return positions


def _layered_positions(
    nodes: list[Node],
    edges: list[Edge],
    direction: LayoutDirection,
) -> list[Position]:
    graph = _build_graph(nodes, edges)
    preds, succs = _predecessors(graph), _successors(graph)
    order = [node.id for node in nodes]
    input_index = {node_id: i for i, node_id in enumerate(order)}
    sizes = {node.id: footprint(node) for node in nodes}

    layers = _group_layers(order, compute_ranks(order, preds))
    _order_layers(layers, preds, succs, input_index)
    anchors = _layered_anchors(layers, sizes, direction)

    if _is_degenerate(anchors):
        logger.warning(
            "layered layout produced overlapping anchors for %d nodes, using manual spacing",
            len(nodes),
        )
        anchors = manual_anchors(nodes, direction)

    positions: list[Position] = []
    for node in nodes:
        x, y = anchors[node.id]
        width, height = sizes[node.id]
        positions.append(Position(x=x - width / 2, y=y - height / 2))
    return positions


def style_edge(edge: Edge) -> StyledEdge:
    """Annotate an edge with its render style; conditional edges are heavier and animated."""
    conditional = edge.type == EdgeKind.conditional
    style = CONDITIONAL_EDGE_STYLE if conditional else DEFAULT_EDGE_STYLE
    return StyledEdge(
        **edge.model_dump(exclude={"style", "animated"}),
        style=style.model_copy(),
        animated=conditional,
    )


def layout_graph(
    nodes: list[Node],
    edges: list[Edge],
    direction: LayoutDirection | str = LayoutDirection.top_to_bottom,
) -> LayoutResult:
    """Compute a position for every node and a render style for every edge.

    The input nodes are not modified; positioned copies are returned in the
    input order.
    """
    direction = LayoutDirection(direction)
    nodes = list(nodes)
    edges = list(edges)

    if nodes:
        try:
            positions = _layered_positions(nodes, edges, direction)
        except Exception:
            logger.warning(
                "layered layout failed for %d nodes, falling back to grid",
                len(nodes),
                exc_info=True,
            )
            positions = grid_positions(nodes)
    else:
        positions = []

    return LayoutResult(
        nodes=[
            node.model_copy(deep=True, update={"position": position})
            for node, position in zip(nodes, positions)
        ],
        edges=[style_edge(edge) for edge in edges],
        direction=direction,
    )


def choose_direction(nodes: list[Node], edges: list[Edge]) -> LayoutDirection:
    """Left-to-right when the widest rank holds more than twice as many nodes as there are ranks."""
    nodes = list(nodes)
    if not nodes:
        return LayoutDirection.top_to_bottom
    try:
        preds = _predecessors(_build_graph(nodes, edges))
    except ValueError:
        return LayoutDirection.top_to_bottom

    order = [node.id for node in nodes]
    layers = _group_layers(order, compute_ranks(order, preds))
    widest = max(len(layer) for layer in layers)
    if widest > 2 * len(layers):
        return LayoutDirection.left_to_right
    return LayoutDirection.top_to_bottom


def layout_graph_auto(nodes: list[Node], edges: list[Edge]) -> LayoutResult:
    """layout_graph with the direction picked by choose_direction."""
    return layout_graph(nodes, edges, choose_direction(nodes, edges))


# layout preferences used by the generator ("vertical" | "horizontal" | "auto")
_PREFERENCES = {
    "vertical": LayoutDirection.top_to_bottom,
    "horizontal": LayoutDirection.left_to_right,
}


def resolve_direction(
    preference: str | LayoutDirection,
    nodes: list[Node],
    edges: list[Edge],
) -> LayoutDirection:
    """Map a layout preference or direction code to a concrete direction."""
    if isinstance(preference, LayoutDirection):
        return preference
    key = preference.strip().lower()
    if key == "auto":
        return choose_direction(nodes, edges)
    if key in _PREFERENCES:
        return _PREFERENCES[key]
    try:
        return LayoutDirection(preference.strip().upper())
    except ValueError:
        raise ValueError(
            f"unknown layout preference '{preference}': "
            "expected vertical, horizontal, auto, TB or LR"
        ) from None
