"""FlowCraft workflow core - graph deltas and auto-layout for generated workflows."""

from flowcraft.models.workflow import (
    Edge,
    EdgeKind,
    Node,
    NodeData,
    NodeKind,
    Position,
    WorkflowGraph,
    WorkflowStatus,
)
from flowcraft.models.delta import ApplyOptions, DeltaResult
from flowcraft.models.layout import LayoutDirection, LayoutResult
from flowcraft.engine.delta_applier import GraphDeltaApplier, apply_deltas
from flowcraft.engine.layout import layout_graph, layout_graph_auto
from flowcraft.engine.validation import validate_workflow

__all__ = [
    # Workflow graph
    "Edge",
    "EdgeKind",
    "Node",
    "NodeData",
    "NodeKind",
    "Position",
    "WorkflowGraph",
    "WorkflowStatus",
    # Deltas
    "ApplyOptions",
    "DeltaResult",
    "GraphDeltaApplier",
    "apply_deltas",
    "validate_workflow",
    # Layout
    "LayoutDirection",
    "LayoutResult",
    "layout_graph",
    "layout_graph_auto",
]
