"""Core data models for the FlowCraft workflow core."""

from flowcraft.models.workflow import (
    Edge,
    EdgeData,
    EdgeKind,
    Node,
    NodeData,
    NodeKind,
    Position,
    WorkflowGraph,
    WorkflowStatus,
)
from flowcraft.models.delta import (
    DELTA_TYPES,
    AddEdgeDelta,
    AddNodeDelta,
    ApplyOptions,
    Delta,
    DeltaResult,
    MetadataUpdate,
    ModifyEdgeDelta,
    ModifyNodeDelta,
    RemoveEdgeDelta,
    RemoveNodeDelta,
    UpdateMetadataDelta,
)
from flowcraft.models.layout import (
    EdgeStyle,
    LayoutDirection,
    LayoutResult,
    StyledEdge,
)

__all__ = [
    # Workflow graph
    "Edge",
    "EdgeData",
    "EdgeKind",
    "Node",
    "NodeData",
    "NodeKind",
    "Position",
    "WorkflowGraph",
    "WorkflowStatus",
    # Deltas
    "DELTA_TYPES",
    "AddEdgeDelta",
    "AddNodeDelta",
    "ApplyOptions",
    "Delta",
    "DeltaResult",
    "MetadataUpdate",
    "ModifyEdgeDelta",
    "ModifyNodeDelta",
    "RemoveEdgeDelta",
    "RemoveNodeDelta",
    "UpdateMetadataDelta",
    # Layout
    "EdgeStyle",
    "LayoutDirection",
    "LayoutResult",
    "StyledEdge",
]
