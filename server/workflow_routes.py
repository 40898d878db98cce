"""API routes for workflow storage, edits and re-layout."""

import threading
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from flowcraft.engine.delta_applier import apply_deltas
from flowcraft.engine.layout import layout_graph, resolve_direction
from flowcraft.engine.validation import validate_workflow
from flowcraft.models.delta import ApplyOptions, DeltaResult
from flowcraft.models.layout import LayoutResult
from flowcraft.models.workflow import Edge, Node, WorkflowGraph, WorkflowStatus
from flowcraft.sdk.parsing import parse_workflow_response
from flowcraft.utils.identifiers import utc_timestamp
from server.workflow_db import (
    delete_workflow as db_delete_workflow,
    list_workflows as db_list_workflows,
    load_workflow,
    save_workflow,
)

router = APIRouter()

# one edit in flight per workflow
_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _workflow_lock(workflow_id: str) -> threading.Lock:
    with _locks_guard:
        return _locks.setdefault(workflow_id, threading.Lock())


def _release_lock(workflow_id: str) -> None:
    with _locks_guard:
        _locks.pop(workflow_id, None)


def _require_workflow(workflow_id: str) -> WorkflowGraph:
    workflow = load_workflow(workflow_id)
    if not workflow:
        raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")
    return workflow


class UpsertWorkflowRequest(BaseModel):
    """request body for creating or updating a workflow."""

    name: str
    description: str = ""
    nodes: list[Node] = []
    edges: list[Edge] = []
    status: WorkflowStatus = WorkflowStatus.draft
    original_prompt: str | None = None


class ApplyDeltasRequest(BaseModel):
    """request body for a batch of edits.

    ``changes`` is passed through untyped; the applier reports bad items.
    """

    changes: Any
    options: ApplyOptions | None = None


class RelayoutRequest(BaseModel):
    direction: str = "vertical"  # "vertical", "horizontal", "auto", "TB" or "LR"


class ParseWorkflowRequest(BaseModel):
    text: str
    direction: str = "vertical"


@router.get("/workflows")
def list_workflows(status: WorkflowStatus | None = None) -> list[WorkflowGraph]:
    """list stored workflows, optionally only those with the given status."""
    return db_list_workflows(status)


@router.post("/workflows/parse")
def parse_workflow(request: ParseWorkflowRequest) -> WorkflowGraph:
    """parse a completion into a workflow and lay it out (not stored)."""
    try:
        workflow = parse_workflow_response(request.text)
        direction = resolve_direction(request.direction, workflow.nodes, workflow.edges)
    except ValueError as exc:
        # ResponseParseError or an unknown layout preference
        raise HTTPException(status_code=422, detail=str(exc))

    result = layout_graph(workflow.nodes, workflow.edges, direction)
    workflow.nodes = result.nodes
    return workflow


@router.get("/workflows/{workflow_id}")
def get_workflow(workflow_id: str) -> WorkflowGraph:
    """get a specific workflow."""
    return _require_workflow(workflow_id)


@router.put("/workflows/{workflow_id}")
def upsert_workflow(workflow_id: str, request: UpsertWorkflowRequest) -> WorkflowGraph:
    """create or replace a workflow.

    Rejected with 422 when the graph breaks ID uniqueness or has dangling edges.
    """
    now = utc_timestamp()
    with _workflow_lock(workflow_id):
        existing = load_workflow(workflow_id)
        workflow = WorkflowGraph(
            id=workflow_id,
            name=request.name,
            description=request.description,
            nodes=request.nodes,
            edges=request.edges,
            status=request.status,
            original_prompt=request.original_prompt,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        errors = validate_workflow(workflow)
        if errors:
            raise HTTPException(status_code=422, detail=errors)
        save_workflow(workflow)
    return workflow


@router.delete("/workflows/{workflow_id}")
def delete_workflow(workflow_id: str) -> dict:
    """delete a workflow.

    Waits for any edit in flight on the same workflow so the edit cannot
    write the workflow back afterwards.
    """
    with _workflow_lock(workflow_id):
        deleted = db_delete_workflow(workflow_id)
        _release_lock(workflow_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")
    return {"deleted": workflow_id}


@router.post("/workflows/{workflow_id}/deltas")
def apply_workflow_deltas(workflow_id: str, request: ApplyDeltasRequest) -> DeltaResult:
    """apply a batch of edits to a stored workflow and save the result.

    Nothing is saved when the batch could not be processed at all.
    """
    with _workflow_lock(workflow_id):
        workflow = _require_workflow(workflow_id)
        result = apply_deltas(workflow, request.changes, request.options)
        if result.workflow is not workflow and isinstance(result.workflow, WorkflowGraph):
            save_workflow(result.workflow)
    return result


@router.post("/workflows/{workflow_id}/layout")
def relayout_workflow(workflow_id: str, request: RelayoutRequest) -> LayoutResult:
    """recompute node positions of a stored workflow and save them."""
    with _workflow_lock(workflow_id):
        workflow = _require_workflow(workflow_id)
        try:
            direction = resolve_direction(request.direction, workflow.nodes, workflow.edges)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

        result = layout_graph(workflow.nodes, workflow.edges, direction)
        workflow.nodes = result.nodes
        workflow.updated_at = utc_timestamp()
        save_workflow(workflow)
    return result
