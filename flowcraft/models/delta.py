"""Delta models: structured edit instructions for a workflow graph.

Deltas usually come from a text-completion call, so they are parsed from
untrusted JSON. Payload fields are optional at the model level; the applier
reports a missing payload as an error for that delta instead of failing the
whole batch.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter

from flowcraft.models.workflow import Edge, Node, WorkflowGraph, WorkflowStatus


class AddNodeDelta(BaseModel):
    type: Literal["add_node"] = "add_node"
    node: Node | None = None


class ModifyNodeDelta(BaseModel):
    type: Literal["modify_node"] = "modify_node"
    node_id: str | None = Field(
        default=None, validation_alias=AliasChoices("node_id", "nodeId")
    )
    updates: dict[str, Any] | None = None


class RemoveNodeDelta(BaseModel):
    type: Literal["remove_node"] = "remove_node"
    node_id: str | None = Field(
        default=None, validation_alias=AliasChoices("node_id", "nodeId")
    )


class AddEdgeDelta(BaseModel):
    type: Literal["add_edge"] = "add_edge"
    edge: Edge | None = None


class ModifyEdgeDelta(BaseModel):
    type: Literal["modify_edge"] = "modify_edge"
    edge_id: str | None = Field(
        default=None, validation_alias=AliasChoices("edge_id", "edgeId")
    )
    updates: dict[str, Any] | None = None


class RemoveEdgeDelta(BaseModel):
    type: Literal["remove_edge"] = "remove_edge"
    edge_id: str | None = Field(
        default=None, validation_alias=AliasChoices("edge_id", "edgeId")
    )


class MetadataUpdate(BaseModel):
    """partial update of the graph-level fields; unset fields are left alone."""

    name: str | None = None
    description: str | None = None
    status: WorkflowStatus | None = None


class UpdateMetadataDelta(BaseModel):
    type: Literal["update_metadata"] = "update_metadata"
    metadata: MetadataUpdate | None = None


Delta = Annotated[
    Union[
        AddNodeDelta,
        ModifyNodeDelta,
        RemoveNodeDelta,
        AddEdgeDelta,
        ModifyEdgeDelta,
        RemoveEdgeDelta,
        UpdateMetadataDelta,
    ],
    Field(discriminator="type"),
]

DELTA_ADAPTER: TypeAdapter = TypeAdapter(Delta)

# every value accepted in a delta's "type" field
DELTA_TYPES = frozenset({
    "add_node",
    "modify_node",
    "remove_node",
    "add_edge",
    "modify_edge",
    "remove_edge",
    "update_metadata",
})


class ApplyOptions(BaseModel):
    """options for a batch of deltas."""

    validate_connections: bool = Field(
        default=True,
        validation_alias=AliasChoices("validate_connections", "validateConnections"),
    )
    auto_layout: bool = Field(
        default=False, validation_alias=AliasChoices("auto_layout", "autoLayout")
    )
    preserve_ids: bool = Field(
        default=True, validation_alias=AliasChoices("preserve_ids", "preserveIds")
    )


class DeltaResult(BaseModel):
    """outcome of applying a batch of deltas.

    ``workflow`` is the updated graph, or the caller's original input when the
    batch could not be processed at all.
    """

    workflow: WorkflowGraph | dict[str, Any] | None
    changes_applied: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: str

    @property
    def ok(self) -> bool:
        return not self.errors
