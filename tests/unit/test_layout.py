"""Tests for the center and top layout engines."""

import pytest

from layout import (
    LayoutSettings,
    center_layout,
    compute_layout,
    hit_test,
    next_layout_mode,
    node_size,
    top_layout,
)
from node_models import Node, Position
from tree_store import TreeStore


def test_node_size_has_minimum_width() -> None:
    assert node_size("A") == (100, 40)
    assert node_size("x" * 20) == (160, 40)


def test_empty_tree_has_no_positions() -> None:
    assert center_layout({}) == {}
    assert top_layout({}) == {}


def test_center_single_node_at_anchor(store: TreeStore) -> None:
    store.create_node(None, "only")
    assert center_layout(store.nodes) == {"n1": Position(800, 400, 100, 40)}


def test_center_alternates_tier_one_sides(scenario_store: TreeStore) -> None:
    positions = center_layout(scenario_store.nodes)
    assert positions["n1"] == Position(800, 400, 100, 40)
    assert positions["n2"] == Position(600, 360, 100, 40)
    assert positions["n3"] == Position(1000, 440, 100, 40)
    assert positions["n2"].x < positions["n1"].x < positions["n3"].x


def test_center_deeper_tiers_inherit_side(deep_store: TreeStore) -> None:
    positions = center_layout(deep_store.nodes)
    # a (left branch) and its children
    assert positions["n2"] == Position(600, 360, 100, 40)
    assert positions["n3"] == Position(350, 320, 100, 40)
    assert positions["n4"] == Position(350, 400, 100, 40)
    # b (right branch) keeps going right even though b1 is index 0
    assert positions["n5"] == Position(1000, 440, 100, 40)
    assert positions["n6"] == Position(1250, 440, 100, 40)


def test_center_tier_three_distance(store: TreeStore) -> None:
    root = store.create_node(None, "r")
    a = store.create_node(root, "a")
    b = store.create_node(a, "b")
    c = store.create_node(b, "c")
    positions = center_layout(store.nodes)
    assert positions[b].x == positions[a].x - 250
    assert positions[c].x == positions[b].x - 300


def test_top_single_node(store: TreeStore) -> None:
    store.create_node(None, "only")
    assert top_layout(store.nodes) == {"n1": Position(800, 100, 100, 40)}


def test_top_rows_follow_discovery_order(deep_store: TreeStore) -> None:
    positions = top_layout(deep_store.nodes)
    assert positions["n1"] == Position(800, 100, 100, 40)
    assert (positions["n2"].x, positions["n2"].y) == (720, 220)
    assert (positions["n5"].x, positions["n5"].y) == (880, 220)
    assert [positions[node_id].x for node_id in ("n3", "n4", "n6")] == [640, 800, 960]
    assert {positions[node_id].y for node_id in ("n3", "n4", "n6")} == {340}


def test_top_row_width_uses_node_widths(store: TreeStore) -> None:
    settings = LayoutSettings(char_width=10)
    root = store.create_node(None, "root")
    store.create_node(root, "short")
    store.create_node(root, "x" * 12)
    store.create_node(root, "y" * 14)
    positions = top_layout(store.nodes, settings)
    row = [positions[node_id] for node_id in ("n2", "n3", "n4")]
    assert [pos.width for pos in row] == [100, 120, 140]
    assert row[0].left == 800 - 240
    assert row[-1].right == 800 + 240
    assert [pos.x for pos in row] == [610, 780, 970]


@pytest.mark.parametrize("mode", ["center", "top"])
def test_layout_is_deterministic(deep_store: TreeStore, mode: str) -> None:
    first = compute_layout(deep_store.nodes, mode)
    second = compute_layout(deep_store.nodes, mode)
    assert first == second
    assert list(first) == list(second)
    assert set(first) == set(deep_store.nodes)


def test_layout_does_not_mutate_nodes(deep_store: TreeStore) -> None:
    snapshot = {node_id: node.to_dict() for node_id, node in deep_store.nodes.items()}
    compute_layout(deep_store.nodes, "center")
    compute_layout(deep_store.nodes, "top")
    assert {node_id: node.to_dict() for node_id, node in deep_store.nodes.items()} == snapshot


@pytest.mark.parametrize("engine", [center_layout, top_layout])
def test_dangling_references_are_skipped_and_logged(engine, log_messages) -> None:
    nodes = {
        "r": Node(id="r", text="root", children=["a", "ghost"]),
        "a": Node(id="a", text="a", parent="r"),
        "orphan": Node(id="orphan", text="orphan", parent="missing"),
    }
    positions = engine(nodes)
    assert set(positions) == {"r", "a"}
    assert any("ghost" in message for message in log_messages)
    assert any("orphan" in message for message in log_messages)


def test_cycle_does_not_loop(log_messages) -> None:
    nodes = {
        "r": Node(id="r", text="root", children=["a"]),
        "a": Node(id="a", text="a", parent="r", children=["b"]),
        "b": Node(id="b", text="b", parent="a", children=["a"]),
    }
    assert set(center_layout(nodes)) == {"r", "a", "b"}
    assert set(top_layout(nodes)) == {"r", "a", "b"}


def test_unknown_mode_falls_back_to_center(scenario_store: TreeStore, log_messages) -> None:
    positions = compute_layout(scenario_store.nodes, "radial")  # type: ignore[arg-type]
    assert positions == center_layout(scenario_store.nodes)
    assert log_messages


def test_next_layout_mode_toggles() -> None:
    assert next_layout_mode("center") == "top"
    assert next_layout_mode("top") == "center"


def test_hit_test(scenario_store: TreeStore) -> None:
    positions = center_layout(scenario_store.nodes)
    assert hit_test(positions, 600, 360) == "n2"
    assert hit_test(positions, 1040, 455) == "n3"
    assert hit_test(positions, 0, 0) is None
