"""Turn text-completion output into validated workflow data.

Completions are untrusted: they may wrap JSON in markdown fences, surround it
with prose, or leave out fields. These helpers clean the text up, fill in the
fields the canvas needs, and validate the result with the workflow models.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from flowcraft.models.workflow import WorkflowGraph
from flowcraft.utils.identifiers import generate_workflow_id, utc_timestamp


_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class ResponseParseError(ValueError):
    """completion text could not be turned into the expected structure."""


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and its closing fence."""
    content = text.strip()
    if content.startswith("```"):
        content = _FENCE_OPEN.sub("", content)
        content = _FENCE_CLOSE.sub("", content)
    return content


def extract_json(text: str) -> Any:
    """Parse JSON from completion text.

    Tries the fence-stripped text first, then the outermost ``{...}`` block.
    """
    content = strip_code_fences(text)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    match = _JSON_BLOCK.search(content)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ResponseParseError(f"completion contains malformed JSON: {exc}") from exc
    raise ResponseParseError("completion does not contain a JSON object")


def _load(payload: str | Mapping[str, Any] | list) -> Any:
    if isinstance(payload, str):
        return extract_json(payload)
    return payload


def parse_workflow_response(
    payload: str | Mapping[str, Any],
    id_generator: Callable[[], str] | None = None,
    clock: Callable[[], str] | None = None,
) -> WorkflowGraph:
    """Build a WorkflowGraph from completion text or an already-decoded mapping.

    Accepts either the workflow object itself or an envelope with a
    ``workflow`` key. Missing ``id``, ``status``, ``description`` and
    timestamps are filled in; edges without a type become ``default``.
    """
    data = _load(payload)
    if isinstance(data, Mapping) and isinstance(data.get("workflow"), Mapping):
        data = data["workflow"]
    if not isinstance(data, Mapping):
        raise ResponseParseError("workflow must be a JSON object")

    now = (clock or utc_timestamp)()
    workflow = dict(data)
    workflow["id"] = workflow.get("id") or (id_generator or generate_workflow_id)()
    workflow["status"] = workflow.get("status") or "draft"
    workflow["description"] = workflow.get("description") or ""
    workflow["created_at"] = workflow.get("created_at") or workflow.get("createdAt") or now
    workflow["updated_at"] = now
    if "original_prompt" not in workflow and "originalPrompt" in workflow:
        workflow["original_prompt"] = workflow["originalPrompt"]

    edges = workflow.get("edges") or []
    if isinstance(edges, list):
        workflow["edges"] = [
            {**edge, "type": edge.get("type") or "default"} if isinstance(edge, Mapping) else edge
            for edge in edges
        ]

    try:
        return WorkflowGraph.model_validate(workflow)
    except ValidationError as exc:
        raise ResponseParseError(f"invalid workflow: {exc}") from exc


def parse_delta_response(payload: str | Mapping[str, Any] | list) -> list[Any]:
    """Extract the raw list of deltas from a completion.

    Accepts a bare list or an object with a ``changes`` list. Individual
    deltas are left unvalidated; the delta applier rejects bad items.
    """
    data = _load(payload)
    if isinstance(data, Mapping):
        data = data.get("changes")
    if not isinstance(data, list):
        raise ResponseParseError("completion does not contain a list of changes")
    return data
