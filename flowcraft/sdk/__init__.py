"""Helpers for feeding completion output into the workflow core."""

from flowcraft.sdk.parsing import (
    ResponseParseError,
    extract_json,
    parse_delta_response,
    parse_workflow_response,
    strip_code_fences,
)

__all__ = [
    "ResponseParseError",
    "extract_json",
    "parse_delta_response",
    "parse_workflow_response",
    "strip_code_fences",
]
