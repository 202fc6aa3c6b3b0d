"""Layout engines turning tree structure into node positions.

Both layouts are pure: they read the node map, never mutate it, and return a
fresh ``{id: Position}`` dictionary. Calling them twice on the same input
returns equal results, which is what lets positions stay a derived view.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Mapping, Optional

from loguru import logger

from node_models import LAYOUT_MODES, LayoutMode, Node, Position


@dataclass(frozen=True)
class LayoutSettings:
    center_x: float = 800
    center_y: float = 400
    min_width: float = 100
    char_width: float = 8
    node_height: float = 40
    # center layout
    base_distance: float = 200
    tier_increment: float = 50
    sibling_spacing: float = 80
    # top layout
    base_y: float = 100
    tier_vertical_spacing: float = 120
    min_spacing: float = 60


DEFAULT_SETTINGS = LayoutSettings()


def node_size(text: str, settings: LayoutSettings = DEFAULT_SETTINGS) -> tuple[float, float]:
    width = max(settings.min_width, settings.char_width * len(text))
    return width, settings.node_height


def find_root(nodes: Mapping[str, Node]) -> Optional[str]:
    roots = [node_id for node_id, node in nodes.items() if node.parent is None]
    if not roots:
        return None
    if len(roots) > 1:
        logger.warning("found {} parentless nodes; laying out from {}", len(roots), roots[0])
    return roots[0]


def _resolve_child(nodes: Mapping[str, Node], parent_id: str, child_id: str, seen: set[str]) -> Optional[Node]:
    child = nodes.get(child_id)
    if child is None:
        logger.warning("node {} lists missing child {}; skipped", parent_id, child_id)
        return None
    if child.parent != parent_id:
        logger.warning("child {} of {} points at parent {}; skipped", child_id, parent_id, child.parent)
        return None
    if child_id in seen:
        logger.warning("node {} reached twice; skipped", child_id)
        return None
    return child


def _report_unreachable(nodes: Mapping[str, Node], placed: Mapping[str, Position]) -> None:
    if len(placed) == len(nodes):
        return
    missing = [node_id for node_id in nodes if node_id not in placed]
    logger.warning("{} node(s) unreachable from the root: {}", len(missing), ", ".join(missing))


def center_layout(
    nodes: Mapping[str, Node],
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> dict[str, Position]:
    """Mind-map layout: root in the middle, two half-trees to either side.

    Tier-1 children alternate left (even index) and right (odd index); deeper
    nodes keep their branch's side and move further out per tier. Siblings
    are stacked vertically, centred on their parent.
    """
    root_id = find_root(nodes)
    if root_id is None:
        return {}
    root = nodes[root_id]
    width, height = node_size(root.text, settings)
    positions: dict[str, Position] = {
        root_id: Position(settings.center_x, settings.center_y, width, height)
    }
    seen = {root_id}
    # (node id, tier, side) with side -1 = left, +1 = right, 0 = root
    stack: list[tuple[str, int, int]] = [(root_id, 0, 0)]
    while stack:
        parent_id, tier, side = stack.pop()
        parent_pos = positions[parent_id]
        children: list[Node] = []
        for child_id in nodes[parent_id].children:
            child = _resolve_child(nodes, parent_id, child_id, seen)
            if child is not None:
                children.append(child)
        count = len(children)
        child_tier = tier + 1
        pending: list[tuple[str, int, int]] = []
        for index, child in enumerate(children):
            if child.id in seen:
                logger.warning("node {} reached twice; skipped", child.id)
                continue
            seen.add(child.id)
            child_side = (-1 if index % 2 == 0 else 1) if child_tier == 1 else side
            distance = settings.base_distance + (child_tier - 1) * settings.tier_increment
            x = parent_pos.x + child_side * distance
            y = (
                parent_pos.y
                + index * settings.sibling_spacing
                - (count - 1) * settings.sibling_spacing / 2
            )
            child_width, child_height = node_size(child.text, settings)
            positions[child.id] = Position(x, y, child_width, child_height)
            pending.append((child.id, child_tier, child_side))
        stack.extend(reversed(pending))
    _report_unreachable(nodes, positions)
    return positions


def depth_rows(nodes: Mapping[str, Node], root_id: str) -> list[list[str]]:
    """Breadth-first rows of ids; order within a row is discovery order."""
    rows: list[list[str]] = []
    seen = {root_id}
    queue: deque[tuple[str, int]] = deque([(root_id, 0)])
    while queue:
        node_id, depth = queue.popleft()
        if depth == len(rows):
            rows.append([])
        rows[depth].append(node_id)
        for child_id in nodes[node_id].children:
            child = _resolve_child(nodes, node_id, child_id, seen)
            if child is None:
                continue
            seen.add(child_id)
            queue.append((child_id, depth + 1))
    return rows


def top_layout(
    nodes: Mapping[str, Node],
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> dict[str, Position]:
    """Hierarchical layout: one horizontal row per tier, centred on ``center_x``."""
    root_id = find_root(nodes)
    if root_id is None:
        return {}
    positions: dict[str, Position] = {}
    for depth, row in enumerate(depth_rows(nodes, root_id)):
        y = settings.base_y + depth * settings.tier_vertical_spacing
        sizes = [node_size(nodes[node_id].text, settings) for node_id in row]
        total_width = sum(width for width, _ in sizes) + (len(row) - 1) * settings.min_spacing
        cursor = settings.center_x - total_width / 2
        for node_id, (width, height) in zip(row, sizes):
            positions[node_id] = Position(cursor + width / 2, y, width, height)
            cursor += width + settings.min_spacing
    _report_unreachable(nodes, positions)
    return positions


_ENGINES = {
    "center": center_layout,
    "top": top_layout,
}


def compute_layout(
    nodes: Mapping[str, Node],
    mode: LayoutMode,
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> dict[str, Position]:
    engine = _ENGINES.get(mode)
    if engine is None:
        logger.warning("unknown layout mode {!r}; using center", mode)
        engine = center_layout
    return engine(nodes, settings)


def next_layout_mode(mode: LayoutMode) -> LayoutMode:
    try:
        index = LAYOUT_MODES.index(mode)
    except ValueError:
        return LAYOUT_MODES[0]
    return LAYOUT_MODES[(index + 1) % len(LAYOUT_MODES)]


def hit_test(positions: Mapping[str, Position], x: float, y: float) -> Optional[str]:
    hit: Optional[str] = None
    for node_id, position in positions.items():
        if position.contains(x, y):
            hit = node_id
    return hit
