"""Utility functions for the FlowCraft workflow core."""

from flowcraft.utils.identifiers import (
    generate_id_suffix,
    generate_workflow_id,
    utc_timestamp,
)

__all__ = [
    "generate_id_suffix",
    "generate_workflow_id",
    "utc_timestamp",
]
