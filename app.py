from __future__ import annotations

import os
from pathlib import Path
import sys
from typing import Optional

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import Footer, Header, Input, Static, TextArea
from rich.text import Text

from export import export_png
from interaction import Command, Frame, InteractionController, Mode
from layout import DEFAULT_SETTINGS, LayoutSettings, hit_test
from logging_config import configure_logging
from node_models import LAYOUT_MODES, LayoutMode
import snapshot_io


# Canvas units per terminal cell; with the default sizing one column holds
# one character of node text.
SCALE_X = 8
SCALE_Y = 20
CARET = "▌"
CONNECTOR_CHAR = "·"
CONNECTOR_STYLE = "grey50"
# Root and tier 1 share a colour; deeper tiers get their own, capped at the last.
TIER_STYLES = [
    "bold dark_orange",
    "dark_orange",
    "red",
    "dodger_blue2",
    "green3",
    "medium_purple",
    "orange1",
]
DEFAULT_SNAPSHOT_PATH = Path("mapitout.json")


def tier_style(tier: int) -> str:
    return TIER_STYLES[min(tier, len(TIER_STYLES) - 1)]


def _initial_layout_mode() -> LayoutMode:
    mode = os.getenv("MAPITOUT_LAYOUT", "center").strip().lower()
    return mode if mode in LAYOUT_MODES else "center"  # type: ignore[return-value]


def _line_cells(start: tuple[int, int], end: tuple[int, int]) -> list[tuple[int, int]]:
    (x0, y0), (x1, y1) = start, end
    dx, dy = abs(x1 - x0), -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    error = dx + dy
    cells: list[tuple[int, int]] = []
    while True:
        cells.append((x0, y0))
        if x0 == x1 and y0 == y1:
            return cells
        doubled = 2 * error
        if doubled >= dy:
            error += dy
            x0 += sx
        if doubled <= dx:
            error += dx
            y0 += sy


class MapCanvas(Widget):
    """Projects a ``Frame`` onto the terminal grid; owns the pan offset."""

    can_focus = True

    DEFAULT_CSS = """
    MapCanvas {
        width: 1fr;
        height: 1fr;
    }
    """

    def __init__(self, settings: LayoutSettings = DEFAULT_SETTINGS, **kwargs) -> None:
        super().__init__(**kwargs)
        self.settings = settings
        self.frame: Optional[Frame] = None
        self.offset_x = 0
        self.offset_y = 0
        self._drag_origin: Optional[tuple[int, int]] = None

    def show_frame(self, frame: Frame) -> None:
        self.frame = frame
        self.refresh()

    def to_cell(self, x: float, y: float) -> tuple[int, int]:
        width, height = self.size
        col = (x - self.settings.center_x) / SCALE_X + width / 2 + self.offset_x
        row = (y - self.settings.center_y) / SCALE_Y + height / 2 + self.offset_y
        return int(round(col)), int(round(row))

    def to_canvas(self, col: int, row: int) -> tuple[float, float]:
        width, height = self.size
        x = (col - width / 2 - self.offset_x) * SCALE_X + self.settings.center_x
        y = (row - height / 2 - self.offset_y) * SCALE_Y + self.settings.center_y
        return x, y

    def _label(self, node_id: str) -> str:
        frame = self.frame
        node = frame.nodes[node_id]
        edit = frame.edit
        if frame.mode is Mode.EDITING and edit is not None and edit.node_id == node_id:
            text = edit.text[: edit.cursor] + CARET + edit.text[edit.cursor :]
        else:
            text = node.text
        return " ".join(text.replace("\n", " ⏎ ").split()) or " "

    def render(self) -> Text:
        width, height = self.size
        if self.frame is None or width <= 0 or height <= 0:
            return Text()
        chars = [[" "] * width for _ in range(height)]
        styles: list[list[Optional[str]]] = [[None] * width for _ in range(height)]

        def put(col: int, row: int, char: str, style: Optional[str]) -> None:
            if 0 <= col < width and 0 <= row < height:
                chars[row][col] = char
                styles[row][col] = style

        frame = self.frame
        positions = frame.positions
        for node_id, node in frame.nodes.items():
            if node.parent is None or node_id not in positions or node.parent not in positions:
                continue
            parent_pos = positions[node.parent]
            child_pos = positions[node_id]
            start = self.to_cell(parent_pos.x, parent_pos.y)
            end = self.to_cell(child_pos.x, child_pos.y)
            for col, row in _line_cells(start, end):
                put(col, row, CONNECTOR_CHAR, CONNECTOR_STYLE)

        for node_id, pos in positions.items():
            if node_id not in frame.nodes:
                continue
            style = tier_style(frame.tiers.get(node_id, 0))
            if node_id == frame.selected_id:
                style = f"{style} reverse"
            cells = max(1, int(round(pos.width / SCALE_X)))
            label = self._label(node_id)
            if len(label) > cells - 2:
                label = label[: max(0, cells - 3)] + "…"
            boxed = f"[{label.center(cells - 2)}]"
            left, row = self.to_cell(pos.left, pos.y)
            for index, char in enumerate(boxed):
                put(left + index, row, char, style)

        rendered = Text(no_wrap=True, overflow="crop")
        for row_index in range(height):
            for char, style in zip(chars[row_index], styles[row_index]):
                rendered.append(char, style=style)
            if row_index != height - 1:
                rendered.append("\n")
        return rendered

    def on_mouse_down(self, event: events.MouseDown) -> None:
        app = self.app
        if not isinstance(app, MapitoutApp):
            return
        controller = app.controller
        x, y = self.to_canvas(event.x, event.y)
        hit = hit_test(self.frame.positions, x, y) if self.frame is not None else None
        if hit is not None:
            controller.select(hit)
        elif controller.dispatch(Command.BEGIN_PAN):
            self._drag_origin = (event.screen_x, event.screen_y)
            self.capture_mouse()
        app.show_status()
        event.stop()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        app = self.app
        if self._drag_origin is None or not isinstance(app, MapitoutApp):
            return
        if app.controller.mode is not Mode.PANNING:
            return
        origin_x, origin_y = self._drag_origin
        self.offset_x += event.screen_x - origin_x
        self.offset_y += event.screen_y - origin_y
        self._drag_origin = (event.screen_x, event.screen_y)
        self.refresh()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        app = self.app
        if self._drag_origin is None or not isinstance(app, MapitoutApp):
            return
        self._drag_origin = None
        self.release_mouse()
        app.controller.dispatch(Command.END_PAN)
        app.show_status()
        event.stop()

    def reset_view(self) -> None:
        self.offset_x = 0
        self.offset_y = 0
        self.refresh()


SHORTCUTS = [
    ("Tab", "Add a child to the selected node"),
    ("Enter", "Add a sibling to the selected node"),
    ("Shift+Space / F2", "Edit the selected node"),
    ("Enter (editing)", "Save the text"),
    ("Shift+Enter / Ctrl+J", "New line while editing"),
    ("Esc", "Cancel editing, or clear the selection"),
    ("Delete / Backspace", "Delete the selected node and its children"),
    ("Arrows", "Parent, first child, previous and next sibling"),
    ("L", "Switch between center and top layouts"),
    ("Drag", "Pan the canvas; Home recenters"),
    ("Ctrl+S / Ctrl+O", "Save or open the snapshot"),
    ("Ctrl+E", "Export a PNG image"),
    ("Ctrl+R", "Reset the canvas"),
]


class HelpScreen(ModalScreen[None]):
    """Keyboard shortcut reference; Esc or ? closes it."""

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
        background: transparent;
    }

    #help-text {
        width: 72;
        height: auto;
        border: round $secondary;
        background: $surface;
        padding: 1 2;
    }
    """

    def compose(self) -> ComposeResult:
        text = Text("Keyboard Shortcuts\n\n", style="bold")
        for keys, description in SHORTCUTS:
            text.append(f"{keys:<22}", style="bold dark_orange")
            text.append(f"{description}\n")
        yield Static(text, id="help-text")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            event.stop()
            self.dismiss(None)


class MapitoutApp(App[None]):
    """Textual user interface for the keyboard-driven tree map."""

    TITLE = "mapitout"

    BINDINGS = [
        Binding("q", "quit", "Quit", show=False),
        Binding("ctrl+s", "save", "Save"),
        Binding("ctrl+o", "open", "Open"),
        Binding("ctrl+e", "export_png", "Export PNG"),
        Binding("ctrl+r", "reset_canvas", "Reset"),
        Binding("home", "reset_view", "Recenter", show=False),
        Binding("l", "switch_layout", "Layout"),
        Binding("question_mark", "toggle_help", "Help", key_display="?"),
    ]

    def __init__(
        self,
        initial_snapshot_path: str | Path | None = None,
        *,
        layout_mode: LayoutMode | None = None,
        export_dir: Path | None = None,
    ) -> None:
        super().__init__()
        self.title = "mapitout"
        self.controller = InteractionController(layout_mode=layout_mode or _initial_layout_mode())
        self._canvas: Optional[MapCanvas] = None
        self._export_dir = export_dir
        self._active_path: Optional[Path] = None
        self._initial_load_path: Optional[Path] = (
            Path(initial_snapshot_path).expanduser() if initial_snapshot_path else None
        )

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        canvas = MapCanvas(self.controller.settings, id="map-canvas")
        self._canvas = canvas
        yield canvas
        yield Footer()

    def on_mount(self) -> None:
        canvas = self.require_canvas()
        self.controller.subscribe(canvas.show_frame)
        canvas.focus()
        if self._initial_load_path:
            self._load_snapshot(self._initial_load_path)
        else:
            self.show_status()

    def require_canvas(self) -> MapCanvas:
        if self._canvas is None:
            raise RuntimeError("Canvas widget not initialised")
        return self._canvas

    def _text_input_focused(self) -> bool:
        return isinstance(self.focused, (Input, TextArea))

    async def on_event(self, event: events.Event) -> None:
        if isinstance(event, events.Key) and not isinstance(self.screen, ModalScreen):
            consumed = self.controller.handle_key(
                event.key,
                event.character,
                text_input_focused=self._text_input_focused(),
            )
            if consumed:
                event.stop()
                event.prevent_default()
                self.show_status()
                return
        await super().on_event(event)

    def show_status(self, message: str | None = None) -> None:
        controller = self.controller
        parts = [
            f"Layout: {controller.layout_mode}",
            f"{len(controller.store)} nodes",
        ]
        if controller.mode is Mode.EDITING:
            parts.append("Editing… Enter to save, Shift+Enter for a new line, Esc to cancel")
        elif controller.mode is Mode.PANNING:
            parts.append("Panning")
        if message:
            parts.append(message)
        self.sub_title = " · ".join(parts)

    def _default_snapshot_path(self) -> Path:
        return self._active_path or DEFAULT_SNAPSHOT_PATH

    def _load_snapshot(self, path: Path) -> bool:
        target = path.expanduser()
        if not target.exists():
            self.bell()
            self.show_status(f"{target} not found.")
            return False
        try:
            store, layout_mode = snapshot_io.load(target)
        except (OSError, ValueError) as exc:
            self.bell()
            self.show_status(f"Failed to load {target}: {exc}")
            return False
        self._active_path = target
        self.controller.load(store, layout_mode)
        self.require_canvas().reset_view()
        self.show_status(f"Loaded {target}")
        return True

    def action_save(self) -> None:
        path = self._default_snapshot_path()
        try:
            saved = snapshot_io.save(path, self.controller.store, self.controller.layout_mode)
        except OSError as exc:
            self.bell()
            self.show_status(f"Failed to save {path}: {exc}")
            return
        self._active_path = saved
        self.show_status(f"Saved to {saved}")

    def action_open(self) -> None:
        self._load_snapshot(self._default_snapshot_path())

    def action_export_png(self) -> None:
        frame = self.controller.frame()
        target = None
        if self._export_dir is not None:
            target = self._export_dir / f"{self._default_snapshot_path().stem}.png"
        try:
            path = export_png(target, frame.nodes, frame.positions, frame.selected_id)
        except (OSError, ValueError) as exc:
            self.bell()
            self.show_status(f"Export failed: {exc}")
            return
        self.show_status(f"Exported {path}")

    def action_reset_canvas(self) -> None:
        self.controller.reset()
        self.require_canvas().reset_view()
        self.show_status("Canvas reset.")

    def action_reset_view(self) -> None:
        self.require_canvas().reset_view()

    def action_switch_layout(self) -> None:
        self.controller.dispatch(Command.SWITCH_LAYOUT)
        self.show_status()

    def action_toggle_help(self) -> None:
        if isinstance(self.screen, HelpScreen):
            self.screen.dismiss(None)
        else:
            self.push_screen(HelpScreen())


def main() -> None:
    configure_logging(verbose=os.getenv("MAPITOUT_VERBOSE") == "1")
    initial_path = sys.argv[1] if len(sys.argv) > 1 else None
    MapitoutApp(initial_path).run()


if __name__ == "__main__":
    main()
