"""Data models for layout requests and results."""

from enum import Enum

from pydantic import BaseModel, Field

from flowcraft.models.workflow import Edge, Node


class LayoutDirection(str, Enum):
    """Main flow axis of a layout."""

    top_to_bottom = "TB"
    left_to_right = "LR"


class EdgeStyle(BaseModel):
    """stroke settings consumed by the canvas."""

    stroke_width: float = 2.0
    stroke: str = "#e5e7eb"


class StyledEdge(Edge):
    """an edge annotated with its render style."""

    style: EdgeStyle = Field(default_factory=EdgeStyle)
    animated: bool = False


class LayoutResult(BaseModel):
    """positioned nodes and styled edges, ready to render."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[StyledEdge] = Field(default_factory=list)
    direction: LayoutDirection = LayoutDirection.top_to_bottom
