"""Integrity checks for workflow graphs."""

from collections import Counter

from flowcraft.models.workflow import WorkflowGraph


def _duplicates(ids: list[str]) -> list[str]:
    counts = Counter(ids)
    return [value for value, count in counts.items() if count > 1]


def validate_workflow(graph: WorkflowGraph) -> list[str]:
    """Return a list of integrity problems found in the graph (empty when valid).

    Checks node ID uniqueness, edge ID uniqueness, and that every edge
    endpoint resolves to a node of the same graph.
    """
    errors: list[str] = []

    node_ids = [node.id for node in graph.nodes]
    duplicate_nodes = _duplicates(node_ids)
    if duplicate_nodes:
        errors.append(f"Duplicate node IDs found: {', '.join(duplicate_nodes)}")

    duplicate_edges = _duplicates([edge.id for edge in graph.edges])
    if duplicate_edges:
        errors.append(f"Duplicate edge IDs found: {', '.join(duplicate_edges)}")

    known = set(node_ids)
    for edge in graph.edges:
        if edge.source not in known:
            errors.append(
                f"Edge {edge.id} references non-existent source node: {edge.source}"
            )
        if edge.target not in known:
            errors.append(
                f"Edge {edge.id} references non-existent target node: {edge.target}"
            )

    return errors
