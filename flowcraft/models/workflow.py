"""Workflow graph models.

A workflow is a directed graph of steps (nodes) joined by edges. The wire
format matches the canvas: node and edge kinds travel in a ``type`` field.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NodeKind(str, Enum):
    """Kinds of workflow steps."""

    trigger = "trigger"
    action = "action"
    condition = "condition"
    transform = "transform"
    loop = "loop"


class EdgeKind(str, Enum):
    """Kinds of connections between steps."""

    default = "default"
    conditional = "conditional"
    smoothstep = "smoothstep"


class WorkflowStatus(str, Enum):
    """Lifecycle status of a workflow."""

    draft = "draft"
    active = "active"
    paused = "paused"
    error = "error"


class Position(BaseModel):
    """top-left corner of a node on the canvas."""

    x: float = 0.0
    y: float = 0.0


class NodeData(BaseModel):
    """user-facing content of a node."""

    # the generator attaches presentation keys we do not model
    model_config = {"extra": "allow"}

    label: str
    description: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    service: str | None = None  # e.g. "gmail", "slack"
    operation: str | None = None  # e.g. "send_message"


class Node(BaseModel):
    """a single step of the workflow."""

    id: str
    type: NodeKind
    position: Position = Field(default_factory=Position)
    data: NodeData


class EdgeData(BaseModel):
    model_config = {"extra": "allow"}

    condition: str | None = None


class Edge(BaseModel):
    """a directed connection from one step to another."""

    id: str
    source: str
    target: str
    type: EdgeKind = EdgeKind.default
    label: str | None = None
    data: EdgeData | None = None


class WorkflowGraph(BaseModel):
    """a complete workflow: metadata plus its node and edge lists."""

    id: str
    name: str
    description: str = ""
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    status: WorkflowStatus = WorkflowStatus.draft
    created_at: str
    updated_at: str
    original_prompt: str | None = None

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def edge_ids(self) -> set[str]:
        return {edge.id for edge in self.edges}

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Edge | None:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None
