"""Apply structured edits (deltas) to a workflow graph.

Each delta in a batch succeeds or is rejected on its own; a rejected delta
does not roll back the ones before it. Rejections are reported as error
strings in the result, never raised.

Usage:

    from flowcraft.engine.delta_applier import apply_deltas
    result = apply_deltas(workflow, [{"type": "remove_node", "nodeId": "t1"}])
    if result.errors:
        ...
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ValidationError

from flowcraft.engine.layout import layout_graph
from flowcraft.engine.validation import validate_workflow
from flowcraft.models.delta import (
    DELTA_ADAPTER,
    DELTA_TYPES,
    AddEdgeDelta,
    AddNodeDelta,
    ApplyOptions,
    DeltaResult,
    ModifyEdgeDelta,
    ModifyNodeDelta,
    RemoveEdgeDelta,
    RemoveNodeDelta,
    UpdateMetadataDelta,
)
from flowcraft.models.layout import LayoutDirection
from flowcraft.models.workflow import Edge, Node, WorkflowGraph
from flowcraft.utils.identifiers import generate_id_suffix, utc_timestamp

logger = logging.getLogger(__name__)


class DeltaRejected(ValueError):
    """a single delta could not be applied; the batch continues."""


def _summarize(changes: list[str], errors: list[str], warnings: list[str]) -> str:
    summary = f"Applied {len(changes)} changes successfully"
    if errors:
        summary += f" with {len(errors)} errors"
    if warnings:
        summary += f" and {len(warnings)} warnings"
    return summary


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(loc) for loc in err["loc"]) or "change"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


class GraphDeltaApplier:
    """Applies batches of deltas to workflow graphs.

    Args:
        id_generator: returns a fresh suffix for colliding node/edge IDs.
        clock: returns the timestamp stamped on ``updated_at``.
    """

    def __init__(
        self,
        id_generator: Callable[[], str] | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.id_generator = id_generator or generate_id_suffix
        self.clock = clock or utc_timestamp

    def apply(
        self,
        graph: WorkflowGraph | Mapping[str, Any],
        deltas: Any,
        options: ApplyOptions | Mapping[str, Any] | None = None,
    ) -> DeltaResult:
        """Apply ``deltas`` in order and return the new graph with a report.

        The input graph is never modified. Malformed deltas are reported in
        ``errors``; if the batch as a whole is unusable the original graph is
        returned with a single error.
        """
        if not isinstance(graph, (WorkflowGraph, Mapping)):
            raise TypeError(
                f"graph must be a WorkflowGraph or a mapping, got {type(graph).__name__}"
            )
        options = self._coerce_options(options)

        try:
            if not isinstance(deltas, list):
                raise TypeError(f"changes must be a list, got {type(deltas).__name__}")
            if isinstance(graph, WorkflowGraph):
                workflow = graph.model_copy(deep=True)
            else:
                workflow = WorkflowGraph.model_validate(graph).model_copy(deep=True)
            return self._apply_batch(workflow, deltas, options)
        except Exception as exc:
            logger.exception("workflow delta application failed")
            # the caller's graph is handed back as given, not re-validated
            return DeltaResult.model_construct(
                workflow=graph,
                changes_applied=[],
                errors=[f"Failed to apply changes: {exc}"],
                warnings=[],
                summary="No changes were applied due to processing error",
            )

    @staticmethod
    def _coerce_options(options: ApplyOptions | Mapping[str, Any] | None) -> ApplyOptions:
        if options is None:
            return ApplyOptions()
        if isinstance(options, ApplyOptions):
            return options
        if isinstance(options, Mapping):
            # null values from JSON fall back to the defaults
            try:
                return ApplyOptions.model_validate(
                    {key: value for key, value in options.items() if value is not None}
                )
            except ValidationError as exc:
                raise TypeError(f"invalid options: {_format_validation_error(exc)}") from exc
        raise TypeError(f"options must be ApplyOptions or a mapping, got {type(options).__name__}")

    def _apply_batch(
        self,
        workflow: WorkflowGraph,
        deltas: list[Any],
        options: ApplyOptions,
    ) -> DeltaResult:
        changes: list[str] = []
        errors: list[str] = []
        warnings: list[str] = []

        for index, raw in enumerate(deltas):
            change_type = self._change_type(raw)
            try:
                delta = self._parse_delta(index, raw, change_type)
                self._apply_one(workflow, delta, options, changes, warnings)
            except DeltaRejected as exc:
                errors.append(str(exc))
            except ValidationError as exc:
                errors.append(
                    f"Error applying change {change_type}: {_format_validation_error(exc)}"
                )

        if options.auto_layout:
            laid_out = layout_graph(
                workflow.nodes, workflow.edges, LayoutDirection.top_to_bottom
            )
            workflow.nodes = laid_out.nodes
            changes.append("Applied automatic layout")

        if options.validate_connections:
            errors.extend(validate_workflow(workflow))

        workflow.updated_at = self.clock()

        summary = _summarize(changes, errors, warnings)
        logger.debug("delta batch on workflow %s: %s", workflow.id, summary)
        return DeltaResult(
            workflow=workflow,
            changes_applied=changes,
            errors=errors,
            warnings=warnings,
            summary=summary,
        )

    @staticmethod
    def _change_type(raw: Any) -> str:
        if isinstance(raw, BaseModel):
            return str(getattr(raw, "type", type(raw).__name__))
        if isinstance(raw, Mapping):
            return str(raw.get("type"))
        return type(raw).__name__

    @staticmethod
    def _parse_delta(index: int, raw: Any, change_type: str):
        if isinstance(raw, BaseModel):
            raw = raw.model_dump(by_alias=False)
        if not isinstance(raw, Mapping):
            raise DeltaRejected(f"Change at index {index} is not an object")
        if raw.get("type") is None:
            raise DeltaRejected(f"Change at index {index} is missing its type")
        if change_type not in DELTA_TYPES:
            raise DeltaRejected(f"Unknown change type: {change_type}")
        return DELTA_ADAPTER.validate_python(raw)

    def _apply_one(
        self,
        workflow: WorkflowGraph,
        delta: Any,
        options: ApplyOptions,
        changes: list[str],
        warnings: list[str],
    ) -> None:
        if isinstance(delta, AddNodeDelta):
            self._add_node(workflow, delta, options, changes, warnings)
        elif isinstance(delta, ModifyNodeDelta):
            self._modify_node(workflow, delta, changes)
        elif isinstance(delta, RemoveNodeDelta):
            self._remove_node(workflow, delta, changes)
        elif isinstance(delta, AddEdgeDelta):
            self._add_edge(workflow, delta, changes, warnings)
        elif isinstance(delta, ModifyEdgeDelta):
            self._modify_edge(workflow, delta, changes)
        elif isinstance(delta, RemoveEdgeDelta):
            self._remove_edge(workflow, delta, changes)
        elif isinstance(delta, UpdateMetadataDelta):
            self._update_metadata(workflow, delta, changes)
        else:
            raise DeltaRejected(f"Unknown change type: {getattr(delta, 'type', delta)}")

    def _unique_id(self, base: str, taken: set[str]) -> str:
        candidate = f"{base}-{self.id_generator()}"
        while candidate in taken:
            candidate = f"{base}-{self.id_generator()}"
        return candidate

    # --- Nodes ---

    def _add_node(
        self,
        workflow: WorkflowGraph,
        delta: AddNodeDelta,
        options: ApplyOptions,
        changes: list[str],
        warnings: list[str],
    ) -> None:
        if delta.node is None:
            raise DeltaRejected("add_node change missing node data")
        node = delta.node.model_copy(deep=True)

        taken = workflow.node_ids()
        if node.id in taken:
            if not options.preserve_ids:
                raise DeltaRejected(f"Node with ID {node.id} already exists")
            node.id = self._unique_id(node.id, taken)
            warnings.append(f"Node ID was duplicated, renamed to {node.id}")

        workflow.nodes.append(node)
        changes.append(f"Added node: {node.data.label or node.id}")

    def _modify_node(
        self,
        workflow: WorkflowGraph,
        delta: ModifyNodeDelta,
        changes: list[str],
    ) -> None:
        if not delta.node_id or delta.updates is None:
            raise DeltaRejected("modify_node change missing nodeId or updates")

        index = next(
            (i for i, node in enumerate(workflow.nodes) if node.id == delta.node_id), None
        )
        if index is None:
            raise DeltaRejected(f"Node with ID {delta.node_id} not found")

        updates = dict(delta.updates)
        if "id" in updates and updates["id"] != delta.node_id:
            raise DeltaRejected(
                f"Cannot change ID of node {delta.node_id}; remove and re-add it instead"
            )

        current = workflow.nodes[index].model_dump()
        data_updates = updates.pop("data", None) or {}
        if not isinstance(data_updates, Mapping):
            raise DeltaRejected(f"modify_node data for {delta.node_id} must be an object")

        merged = {**current, **updates, "data": {**current["data"], **data_updates}}
        workflow.nodes[index] = Node.model_validate(merged)
        changes.append(f"Modified node: {delta.node_id}")

    def _remove_node(
        self,
        workflow: WorkflowGraph,
        delta: RemoveNodeDelta,
        changes: list[str],
    ) -> None:
        if not delta.node_id:
            raise DeltaRejected("remove_node change missing nodeId")

        node = workflow.get_node(delta.node_id)
        if node is None:
            raise DeltaRejected(f"Node with ID {delta.node_id} not found")

        workflow.nodes = [n for n in workflow.nodes if n.id != delta.node_id]
        kept = [
            e for e in workflow.edges
            if e.source != delta.node_id and e.target != delta.node_id
        ]
        removed_edges = len(workflow.edges) - len(kept)
        workflow.edges = kept

        changes.append(f"Removed node: {node.data.label or delta.node_id}")
        if removed_edges > 0:
            changes.append(f"Removed {removed_edges} connected edges")

    # --- Edges ---

    @staticmethod
    def _check_endpoints(workflow: WorkflowGraph, edge: Edge) -> None:
        node_ids = workflow.node_ids()
        if edge.source not in node_ids:
            raise DeltaRejected(f"Source node {edge.source} does not exist")
        if edge.target not in node_ids:
            raise DeltaRejected(f"Target node {edge.target} does not exist")

    def _add_edge(
        self,
        workflow: WorkflowGraph,
        delta: AddEdgeDelta,
        changes: list[str],
        warnings: list[str],
    ) -> None:
        if delta.edge is None:
            raise DeltaRejected("add_edge change missing edge data")
        edge = delta.edge.model_copy(deep=True)
        self._check_endpoints(workflow, edge)

        taken = workflow.edge_ids()
        if edge.id in taken:
            edge.id = self._unique_id(edge.id, taken)
            warnings.append(f"Edge ID was duplicated, renamed to {edge.id}")

        workflow.edges.append(edge)
        changes.append(f"Added edge: {edge.source} → {edge.target}")

    def _modify_edge(
        self,
        workflow: WorkflowGraph,
        delta: ModifyEdgeDelta,
        changes: list[str],
    ) -> None:
        if not delta.edge_id or delta.updates is None:
            raise DeltaRejected("modify_edge change missing edgeId or updates")

        index = next(
            (i for i, edge in enumerate(workflow.edges) if edge.id == delta.edge_id), None
        )
        if index is None:
            raise DeltaRejected(f"Edge with ID {delta.edge_id} not found")

        updates = dict(delta.updates)
        if "id" in updates and updates["id"] != delta.edge_id:
            raise DeltaRejected(
                f"Cannot change ID of edge {delta.edge_id}; remove and re-add it instead"
            )

        edge = Edge.model_validate({**workflow.edges[index].model_dump(), **updates})
        self._check_endpoints(workflow, edge)
        workflow.edges[index] = edge
        changes.append(f"Modified edge: {delta.edge_id}")

    def _remove_edge(
        self,
        workflow: WorkflowGraph,
        delta: RemoveEdgeDelta,
        changes: list[str],
    ) -> None:
        if not delta.edge_id:
            raise DeltaRejected("remove_edge change missing edgeId")

        edge = workflow.get_edge(delta.edge_id)
        if edge is None:
            raise DeltaRejected(f"Edge with ID {delta.edge_id} not found")

        workflow.edges = [e for e in workflow.edges if e.id != delta.edge_id]
        changes.append(f"Removed edge: {edge.source} → {edge.target}")

    # --- Metadata ---

    @staticmethod
    def _update_metadata(
        workflow: WorkflowGraph,
        delta: UpdateMetadataDelta,
        changes: list[str],
    ) -> None:
        if delta.metadata is None:
            raise DeltaRejected("update_metadata change missing metadata")

        fields = delta.metadata.model_dump(exclude_none=True)
        for name, value in fields.items():
            setattr(workflow, name, value)
        changes.append("Updated workflow metadata")


def apply_deltas(
    graph: WorkflowGraph | Mapping[str, Any],
    deltas: Any,
    options: ApplyOptions | Mapping[str, Any] | None = None,
    *,
    id_generator: Callable[[], str] | None = None,
    clock: Callable[[], str] | None = None,
) -> DeltaResult:
    """Apply a batch of deltas with a one-off GraphDeltaApplier."""
    applier = GraphDeltaApplier(id_generator=id_generator, clock=clock)
    return applier.apply(graph, deltas, options)
