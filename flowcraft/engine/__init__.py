"""Graph mutation, validation and layout for workflow graphs."""

from flowcraft.engine.delta_applier import GraphDeltaApplier, apply_deltas
from flowcraft.engine.layout import (
    choose_direction,
    layout_graph,
    layout_graph_auto,
    resolve_direction,
)
from flowcraft.engine.validation import validate_workflow

__all__ = [
    "GraphDeltaApplier",
    "apply_deltas",
    "choose_direction",
    "layout_graph",
    "layout_graph_auto",
    "resolve_direction",
    "validate_workflow",
]
