"""API routes for stateless graph layout."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from flowcraft.engine.layout import layout_graph, resolve_direction
from flowcraft.models.layout import LayoutResult
from flowcraft.models.workflow import Edge, Node

router = APIRouter()


class LayoutRequest(BaseModel):
    """request body for laying out nodes that are not stored."""

    nodes: list[Node]
    edges: list[Edge] = []
    direction: str = "vertical"  # "vertical", "horizontal", "auto", "TB" or "LR"


@router.post("/layout")
def layout(request: LayoutRequest) -> LayoutResult:
    """position nodes and style edges for the canvas."""
    try:
        direction = resolve_direction(request.direction, request.nodes, request.edges)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return layout_graph(request.nodes, request.edges, direction)
