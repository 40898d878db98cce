"""Tests for the layered auto-layout."""

import pytest

from flowcraft.engine import layout as layout_module
from flowcraft.engine.layout import (
    choose_direction,
    compute_ranks,
    footprint,
    grid_positions,
    layout_graph,
    layout_graph_auto,
    resolve_direction,
)
from flowcraft.models.layout import LayoutDirection
from flowcraft.models.workflow import Edge, EdgeKind, Node


def _node(node_id: str, kind: str = "action") -> Node:
    return Node.model_validate({"id": node_id, "type": kind, "data": {"label": node_id}})


def _edge(source: str, target: str, kind: str = "default") -> Edge:
    return Edge(id=f"{source}->{target}", source=source, target=target, type=kind)


def _overlaps(a: Node, b: Node) -> bool:
    aw, ah = footprint(a)
    bw, bh = footprint(b)
    return (
        a.position.x < b.position.x + bw
        and b.position.x < a.position.x + aw
        and a.position.y < b.position.y + bh
        and b.position.y < a.position.y + ah
    )


def _assert_no_overlap(nodes: list[Node]) -> None:
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            assert not _overlaps(a, b), f"{a.id} overlaps {b.id}"


def _positions(result) -> dict[str, tuple[float, float]]:
    return {node.id: (node.position.x, node.position.y) for node in result.nodes}


class TestLayeredLayout:
    def test_chain_top_to_bottom(self):
        """trigger -> action1 -> action2 stacks downward in one column."""
        nodes = [_node("trigger", "trigger"), _node("action1"), _node("action2")]
        edges = [_edge("trigger", "action1"), _edge("action1", "action2")]

        result = layout_graph(nodes, edges, LayoutDirection.top_to_bottom)

        ys = [node.position.y for node in result.nodes]
        xs = {node.position.x for node in result.nodes}
        assert ys[0] < ys[1] < ys[2]
        assert len(xs) == 1
        assert _positions(result) == {
            "trigger": (50.0, 50.0),
            "action1": (50.0, 430.0),
            "action2": (50.0, 810.0),
        }

    def test_chain_left_to_right(self):
        nodes = [_node("t", "trigger"), _node("a")]
        result = layout_graph(nodes, [_edge("t", "a")], "LR")
        assert _positions(result) == {"t": (50.0, 50.0), "a": (600.0, 50.0)}
        assert result.direction == LayoutDirection.left_to_right

    def test_fan_out_is_centred_under_parent(self):
        nodes = [_node("t", "trigger"), _node("a"), _node("b"), _node("c")]
        edges = [_edge("t", "a"), _edge("t", "b"), _edge("t", "c")]

        result = layout_graph(nodes, edges)

        positions = _positions(result)
        assert positions["t"] == (510.0, 50.0)
        assert [positions[n][0] for n in "abc"] == [50.0, 510.0, 970.0]
        assert len({positions[n][1] for n in "abc"}) == 1
        _assert_no_overlap(result.nodes)

    def test_narrow_nodes_centre_on_same_axis(self):
        nodes = [_node("t", "trigger"), _node("c", "condition")]
        result = layout_graph(nodes, [_edge("t", "c")])
        positions = _positions(result)
        # 400 wide vs 350 wide, same centre line
        assert positions["c"][0] - positions["t"][0] == 25.0

    def test_longest_path_ranking(self):
        """A node reachable by a short and a long path sits below the long one."""
        preds = {"t": [], "a": ["t"], "b": ["a"], "c": ["t", "b"]}
        assert compute_ranks(["t", "a", "b", "c"], preds) == {"t": 0, "a": 1, "b": 2, "c": 3}

    def test_barycenter_follows_parent_order(self):
        """Children are ordered under their parents, not by input order."""
        nodes = [_node("p1", "trigger"), _node("p2", "trigger"), _node("c2"), _node("c1")]
        edges = [_edge("p1", "c1"), _edge("p2", "c2")]
        positions = _positions(layout_graph(nodes, edges))
        assert positions["c1"][0] < positions["c2"][0]

    def test_deterministic(self):
        nodes = [_node("t", "trigger"), _node("a"), _node("b", "condition"), _node("c", "loop")]
        edges = [_edge("t", "a"), _edge("t", "b"), _edge("b", "c"), _edge("c", "t")]
        first = layout_graph(nodes, edges)
        second = layout_graph(nodes, edges)
        assert first.model_dump() == second.model_dump()

    def test_input_is_not_modified(self):
        nodes = [_node("t", "trigger"), _node("a")]
        layout_graph(nodes, [_edge("t", "a")])
        assert all(node.position.x == 0 and node.position.y == 0 for node in nodes)

    def test_empty_graph(self):
        result = layout_graph([], [])
        assert result.nodes == []
        assert result.edges == []

    def test_unconnected_nodes_do_not_overlap(self):
        nodes = [_node(f"n{i}", kind) for i, kind in enumerate(
            ["trigger", "action", "condition", "transform", "loop"]
        )]
        result = layout_graph(nodes, [])
        assert len({node.position.y for node in result.nodes}) == 1
        _assert_no_overlap(result.nodes)


class TestCycles:
    def test_two_node_cycle_terminates(self):
        nodes = [_node("a"), _node("b")]
        result = layout_graph(nodes, [_edge("a", "b"), _edge("b", "a")])
        assert len(result.nodes) == 2
        _assert_no_overlap(result.nodes)

    def test_cycle_ranks(self):
        preds = {"a": ["b"], "b": ["a"]}
        assert compute_ranks(["a", "b"], preds) == {"a": 1, "b": 0}

    def test_self_loop_is_ignored(self):
        nodes = [_node("t", "trigger"), _node("a")]
        result = layout_graph(nodes, [_edge("t", "a"), _edge("a", "a")])
        positions = _positions(result)
        assert positions["t"][1] < positions["a"][1]
        assert len(result.edges) == 2

    def test_parallel_edges_collapse(self):
        graph = layout_module._build_graph(
            [_node("t", "trigger"), _node("a")],
            [_edge("t", "a"), _edge("t", "a"), _edge("a", "a"), _edge("a", "ghost")],
        )
        assert list(graph.edges) == [("t", "a")]

    def test_long_cycle(self):
        ids = [f"n{i}" for i in range(50)]
        nodes = [_node(node_id) for node_id in ids]
        edges = [_edge(ids[i], ids[(i + 1) % 50]) for i in range(50)]
        result = layout_graph(nodes, edges)
        _assert_no_overlap(result.nodes)


class TestFallbacks:
    def test_duplicate_ids_fall_back_to_grid(self):
        nodes = [_node("t1", "trigger"), _node("t1"), _node("a2")]
        result = layout_graph(nodes, [])
        assert [(n.position.x, n.position.y) for n in result.nodes] == [
            (50.0, 50.0),
            (510.0, 50.0),
            (50.0, 350.0),
        ]

    def test_grid_side_is_ceil_sqrt(self):
        positions = grid_positions([_node(f"n{i}") for i in range(10)])
        columns = {p.x for p in positions}
        rows = {p.y for p in positions}
        assert len(columns) == 4
        assert len(rows) == 3

    def test_degenerate_layout_uses_manual_spacing(self, monkeypatch):
        """Coinciding anchors trigger single-file spacing, triggers first."""
        def collapsed(layers, sizes, direction):
            return {node_id: (100.0, 100.0) for layer in layers for node_id in layer}

        monkeypatch.setattr(layout_module, "_layered_anchors", collapsed)
        nodes = [_node("step-2"), _node("start", "trigger"), _node("step-1")]

        positions = _positions(layout_graph(nodes, []))

        assert positions == {
            "start": (50.0, 50.0),
            "step-1": (50.0, 350.0),
            "step-2": (50.0, 650.0),
        }

    def test_manual_spacing_clears_wide_nodes_horizontally(self):
        nodes = [_node("a1"), _node("a2")]
        anchors = layout_module.manual_anchors(nodes, LayoutDirection.left_to_right)
        assert anchors["a2"][0] - anchors["a1"][0] == 460.0

    def test_unexpected_error_falls_back_to_grid(self, monkeypatch):
        def broken(layers, sizes, direction):
            raise RuntimeError("boom")

        monkeypatch.setattr(layout_module, "_layered_anchors", broken)
        result = layout_graph([_node("a"), _node("b")], [_edge("a", "b")])
        assert _positions(result) == {"a": (50.0, 50.0), "b": (510.0, 50.0)}


class TestEdgeStyles:
    def test_conditional_edges_are_heavier(self):
        nodes = [_node("c", "condition"), _node("yes"), _node("no")]
        edges = [_edge("c", "yes", EdgeKind.conditional), _edge("c", "no")]

        result = layout_graph(nodes, edges)

        conditional, plain = result.edges
        assert conditional.style.stroke_width > plain.style.stroke_width
        assert conditional.animated is True
        assert plain.animated is False
        assert plain.style.stroke == "#e5e7eb"

    def test_edges_keep_their_fields(self):
        edge = Edge(id="e1", source="a", target="b", label="then", data={"condition": "x > 1"})
        result = layout_graph([_node("a"), _node("b")], [edge])
        styled = result.edges[0]
        assert styled.id == "e1"
        assert styled.label == "then"
        assert styled.data.condition == "x > 1"

    def test_dangling_edges_are_styled_but_ignored_for_ranking(self):
        result = layout_graph([_node("a")], [_edge("a", "ghost")])
        assert len(result.edges) == 1
        assert _positions(result) == {"a": (50.0, 50.0)}


class TestDirectionSelection:
    def test_wide_graph_goes_left_to_right(self):
        nodes = [_node("t", "trigger")] + [_node(f"a{i}") for i in range(5)]
        edges = [_edge("t", f"a{i}") for i in range(5)]
        assert choose_direction(nodes, edges) == LayoutDirection.left_to_right
        assert layout_graph_auto(nodes, edges).direction == LayoutDirection.left_to_right

    def test_deep_graph_stays_top_to_bottom(self):
        nodes = [_node("t", "trigger"), _node("a"), _node("b")]
        edges = [_edge("t", "a"), _edge("a", "b")]
        assert choose_direction(nodes, edges) == LayoutDirection.top_to_bottom

    def test_empty_graph_is_top_to_bottom(self):
        assert choose_direction([], []) == LayoutDirection.top_to_bottom

    @pytest.mark.parametrize(
        "preference, expected",
        [
            ("vertical", LayoutDirection.top_to_bottom),
            ("horizontal", LayoutDirection.left_to_right),
            ("TB", LayoutDirection.top_to_bottom),
            ("lr", LayoutDirection.left_to_right),
            (LayoutDirection.left_to_right, LayoutDirection.left_to_right),
        ],
    )
    def test_resolve_direction(self, preference, expected):
        assert resolve_direction(preference, [], []) == expected

    def test_resolve_auto(self):
        nodes = [_node(f"n{i}") for i in range(3)]
        assert resolve_direction("auto", nodes, []) == LayoutDirection.left_to_right

    def test_resolve_unknown_preference(self):
        with pytest.raises(ValueError, match="unknown layout preference"):
            resolve_direction("diagonal", [], [])
