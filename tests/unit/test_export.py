"""Tests for PNG export."""

from pathlib import Path

import pytest
from PIL import Image

from export import BACKGROUND, export_png, render_image
from layout import compute_layout
from node_models import Position
from tree_store import TreeStore


def test_render_uses_default_canvas(scenario_store: TreeStore) -> None:
    positions = compute_layout(scenario_store.nodes, "center")
    image = render_image(scenario_store.nodes, positions, scale=1)
    assert image.size == (1600, 800)
    assert image.getpixel((0, 0)) == Image.new("RGB", (1, 1), BACKGROUND).getpixel((0, 0))


def test_render_grows_to_fit_far_nodes(scenario_store: TreeStore) -> None:
    positions = compute_layout(scenario_store.nodes, "center")
    positions["n3"] = Position(2000, 400, 100, 40)
    image = render_image(scenario_store.nodes, positions, scale=1)
    assert image.size == (2090, 800)


def test_repeated_exports_are_identical(deep_store: TreeStore, tmp_path: Path) -> None:
    positions = compute_layout(deep_store.nodes, "top")
    first = export_png(tmp_path / "first.png", deep_store.nodes, positions, "n2")
    second = export_png(tmp_path / "second.png", deep_store.nodes, compute_layout(deep_store.nodes, "top"), "n2")
    with Image.open(first) as a, Image.open(second) as b:
        assert a.size == (3200, 1600)
        assert a.tobytes() == b.tobytes()


def test_selection_changes_output(scenario_store: TreeStore) -> None:
    positions = compute_layout(scenario_store.nodes, "center")
    plain = render_image(scenario_store.nodes, positions, None, scale=1)
    selected = render_image(scenario_store.nodes, positions, "n2", scale=1)
    assert plain.tobytes() != selected.tobytes()


def test_empty_layout_cannot_be_exported() -> None:
    with pytest.raises(ValueError):
        render_image({}, {})
