"""Raster export of the current diagram to PNG via Pillow."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from loguru import logger
from PIL import Image, ImageDraw, ImageFont

from node_models import Node, Position, now_ms


BACKGROUND = "#0f172a"
CONNECTOR = "#64748b"
NODE_FILL = "#334155"
NODE_OUTLINE = "#64748b"
SELECTED_FILL = "#1e293b"
SELECTED_OUTLINE = "#3b82f6"
TEXT_COLOR = "white"
CORNER_RADIUS = 8
CANVAS_WIDTH = 1600
CANVAS_HEIGHT = 800
MARGIN = 40


def default_export_path(directory: Path | None = None) -> Path:
    return (directory or Path(".")) / f"mapitout-{now_ms()}.png"


def _canvas_bounds(positions: Mapping[str, Position]) -> tuple[float, float, float, float]:
    left = min(0.0, min(pos.left for pos in positions.values()) - MARGIN)
    top = min(0.0, min(pos.top for pos in positions.values()) - MARGIN)
    right = max(float(CANVAS_WIDTH), max(pos.right for pos in positions.values()) + MARGIN)
    bottom = max(float(CANVAS_HEIGHT), max(pos.bottom for pos in positions.values()) + MARGIN)
    return left, top, right, bottom


def render_image(
    nodes: Mapping[str, Node],
    positions: Mapping[str, Position],
    selected_id: Optional[str] = None,
    *,
    scale: int = 2,
) -> Image.Image:
    """Draw connectors, then node boxes, onto a fresh image.

    The canvas is the default 1600x800 area, grown to fit any node that
    falls outside it, then multiplied by ``scale``. Output depends only on
    the arguments, so repeated exports of an unchanged tree are identical.
    """
    if not positions:
        raise ValueError("nothing to export: the layout is empty")
    left, top, right, bottom = _canvas_bounds(positions)
    size = (int(round((right - left) * scale)), int(round((bottom - top) * scale)))
    image = Image.new("RGB", size, BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    def px(x: float, y: float) -> tuple[float, float]:
        return ((x - left) * scale, (y - top) * scale)

    for node_id, node in nodes.items():
        if node.parent is None:
            continue
        child_pos = positions.get(node_id)
        parent_pos = positions.get(node.parent)
        if child_pos is None or parent_pos is None:
            continue
        draw.line([px(parent_pos.x, parent_pos.y), px(child_pos.x, child_pos.y)], fill=CONNECTOR, width=2 * scale)

    for node_id, pos in positions.items():
        node = nodes.get(node_id)
        if node is None:
            continue
        selected = node_id == selected_id
        box = [*px(pos.left, pos.top), *px(pos.right, pos.bottom)]
        draw.rounded_rectangle(
            box,
            radius=CORNER_RADIUS * scale,
            fill=SELECTED_FILL if selected else NODE_FILL,
            outline=SELECTED_OUTLINE if selected else NODE_OUTLINE,
            width=(2 if selected else 1) * scale,
        )
        label = " ".join(node.text.split())
        if not label:
            continue
        bbox = draw.textbbox((0, 0), label, font=font)
        text_w, text_h = bbox[2] - bbox[0], bbox[3] - bbox[1]
        cx, cy = px(pos.x, pos.y)
        draw.text((cx - text_w / 2, cy - text_h / 2), label, fill=TEXT_COLOR, font=font)
    return image


def export_png(
    path: Path | None,
    nodes: Mapping[str, Node],
    positions: Mapping[str, Position],
    selected_id: Optional[str] = None,
    *,
    scale: int = 2,
) -> Path:
    target = Path(path).expanduser() if path else default_export_path()
    image = render_image(nodes, positions, selected_id, scale=scale)
    image.save(target, format="PNG")
    logger.info("exported {} nodes to {}", len(positions), target)
    return target
