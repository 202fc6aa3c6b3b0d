from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, Optional

from loguru import logger

from layout import DEFAULT_SETTINGS, LayoutSettings, compute_layout, next_layout_mode
from node_models import DEFAULT_ROOT_TEXT, LAYOUT_MODES, LayoutMode, Node, Position, sanitize_text
from tree_store import TreeStore


def key_name_and_modifiers(key_value: str) -> tuple[str, set[str]]:
    parts = key_value.split("+")
    key_name = parts[-1].lower()
    modifiers = {part.lower() for part in parts[:-1] if part}
    return key_name, modifiers


class Mode(Enum):
    NAVIGATING = "navigating"
    EDITING = "editing"
    PANNING = "panning"


class Command(Enum):
    CREATE_CHILD = "create_child"
    CREATE_SIBLING = "create_sibling"
    START_EDIT = "start_edit"
    COMMIT_EDIT = "commit_edit"
    INSERT_NEWLINE = "insert_newline"
    CANCEL_EDIT = "cancel_edit"
    DELETE = "delete"
    NAVIGATE_UP = "navigate_up"
    NAVIGATE_DOWN = "navigate_down"
    NAVIGATE_LEFT = "navigate_left"
    NAVIGATE_RIGHT = "navigate_right"
    CLEAR_SELECTION = "clear_selection"
    SWITCH_LAYOUT = "switch_layout"
    BEGIN_PAN = "begin_pan"
    END_PAN = "end_pan"


NAVIGATION_KEYS: dict[str, Command] = {
    "tab": Command.CREATE_CHILD,
    "enter": Command.CREATE_SIBLING,
    "shift+space": Command.START_EDIT,
    "f2": Command.START_EDIT,
    "escape": Command.CLEAR_SELECTION,
    "delete": Command.DELETE,
    "backspace": Command.DELETE,
    "up": Command.NAVIGATE_UP,
    "down": Command.NAVIGATE_DOWN,
    "left": Command.NAVIGATE_LEFT,
    "right": Command.NAVIGATE_RIGHT,
    "l": Command.SWITCH_LAYOUT,
}

EDITING_KEYS: dict[str, Command] = {
    "enter": Command.COMMIT_EDIT,
    "shift+enter": Command.INSERT_NEWLINE,
    "ctrl+j": Command.INSERT_NEWLINE,
    "escape": Command.CANCEL_EDIT,
}

# Commands each mode reacts to; anything else is ignored in that mode.
_ALLOWED: dict[Mode, frozenset[Command]] = {
    Mode.NAVIGATING: frozenset(Command) - {Command.COMMIT_EDIT, Command.INSERT_NEWLINE, Command.CANCEL_EDIT, Command.END_PAN},
    Mode.EDITING: frozenset({Command.COMMIT_EDIT, Command.INSERT_NEWLINE, Command.CANCEL_EDIT, Command.SWITCH_LAYOUT}),
    Mode.PANNING: frozenset({Command.END_PAN, Command.SWITCH_LAYOUT}),
}


def command_for_key(key: str, mode: Mode) -> Optional[Command]:
    if mode is Mode.EDITING:
        return EDITING_KEYS.get(key)
    if mode is Mode.NAVIGATING:
        return NAVIGATION_KEYS.get(key)
    return None


class EditBuffer:
    """Text being composed for one node, with a caret and optional selection."""

    def __init__(self, node_id: str, text: str) -> None:
        self.node_id = node_id
        self.text = text
        self.cursor = len(text)
        self.selection_anchor: Optional[int] = 0 if text else None

    def selection_bounds(self) -> tuple[int, int]:
        anchor = self.selection_anchor
        if anchor is None or anchor == self.cursor:
            return (self.cursor, self.cursor)
        return (min(self.cursor, anchor), max(self.cursor, anchor))

    def delete_selection(self) -> bool:
        start, end = self.selection_bounds()
        if start == end:
            return False
        self.text = self.text[:start] + self.text[end:]
        self.cursor = start
        self.selection_anchor = None
        return True

    def insert(self, value: str) -> None:
        if not value:
            return
        self.delete_selection()
        self.text = self.text[: self.cursor] + value + self.text[self.cursor :]
        self.cursor += len(value)
        self.selection_anchor = None

    def backspace(self) -> None:
        if self.delete_selection() or self.cursor == 0:
            return
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1

    def delete_forward(self) -> None:
        if self.delete_selection() or self.cursor >= len(self.text):
            return
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def move_cursor(
        self,
        *,
        delta: Optional[int] = None,
        to: Optional[int] = None,
        extend: bool = False,
    ) -> None:
        if to is None and delta is None:
            return
        target = to if to is not None else self.cursor + (delta or 0)
        target = max(0, min(len(self.text), target))
        if extend:
            if self.selection_anchor is None:
                self.selection_anchor = self.cursor
        else:
            self.selection_anchor = None
        self.cursor = target

    def select_all(self) -> None:
        self.selection_anchor = 0
        self.cursor = len(self.text)


@dataclass(frozen=True)
class Frame:
    """A mutually consistent view handed to renderers after every change."""

    nodes: Mapping[str, Node]
    positions: Mapping[str, Position]
    selected_id: Optional[str]
    layout_mode: LayoutMode
    mode: Mode
    edit: Optional[EditBuffer] = None
    tiers: Mapping[str, int] = field(default_factory=dict)


FrameListener = Callable[[Frame], None]


class InteractionController:
    """Keyboard-driven state machine over a ``TreeStore``.

    Each command either mutates the store and relayouts in the same call, or
    does nothing. Missing targets and refused operations never raise.
    """

    def __init__(
        self,
        store: TreeStore | None = None,
        *,
        layout_mode: LayoutMode = "center",
        settings: LayoutSettings = DEFAULT_SETTINGS,
        root_text: str = DEFAULT_ROOT_TEXT,
    ) -> None:
        self.store = store if store is not None else TreeStore()
        self.layout_mode: LayoutMode = layout_mode if layout_mode in LAYOUT_MODES else "center"
        self.settings = settings
        self.root_text = root_text
        self.mode = Mode.NAVIGATING
        self.edit: Optional[EditBuffer] = None
        self.positions: dict[str, Position] = {}
        self._listeners: list[FrameListener] = []
        if self.store.is_empty():
            self._create_root()
        self._relayout()

    # -- observers -------------------------------------------------------

    def subscribe(self, listener: FrameListener) -> None:
        self._listeners.append(listener)
        listener(self.frame())

    def frame(self) -> Frame:
        return Frame(
            nodes=self.store.nodes,
            positions=self.positions,
            selected_id=self.store.selected_id,
            layout_mode=self.layout_mode,
            mode=self.mode,
            edit=self.edit,
            tiers={node_id: self.store.tier_of(node_id) for node_id in self.positions},
        )

    def _relayout(self) -> None:
        self.positions = compute_layout(self.store.nodes, self.layout_mode, self.settings)
        frame = self.frame()
        for listener in list(self._listeners):
            listener(frame)

    def _create_root(self) -> None:
        self.store.create_node(None, self.root_text)

    # -- whole-document operations --------------------------------------

    def set_layout(self, mode: LayoutMode) -> None:
        if mode not in LAYOUT_MODES:
            return
        self.layout_mode = mode
        self._relayout()

    def load(self, store: TreeStore, layout_mode: LayoutMode | None = None) -> None:
        self.store = store
        if layout_mode in LAYOUT_MODES:
            self.layout_mode = layout_mode
        self.mode = Mode.NAVIGATING
        self.edit = None
        self.store.select_node(None)
        if self.store.is_empty():
            self._create_root()
        self._relayout()

    def reset(self) -> None:
        self.store.clear()
        self.mode = Mode.NAVIGATING
        self.edit = None
        self._create_root()
        self._relayout()

    def select(self, node_id: Optional[str]) -> None:
        if self.mode is not Mode.NAVIGATING:
            return
        self.store.select_node(node_id)
        self._relayout()

    # -- command dispatch ------------------------------------------------

    def dispatch(self, command: Command) -> bool:
        """Apply ``command``; returns True when the mode accepts it."""
        if command not in _ALLOWED[self.mode]:
            return False
        handler = getattr(self, f"_do_{command.value}")
        handler()
        self._relayout()
        return True

    def handle_key(
        self,
        key: str,
        character: Optional[str] = None,
        *,
        text_input_focused: bool = False,
    ) -> bool:
        """Route a Textual key name; returns True when the key was consumed."""
        if text_input_focused:
            return False
        command = command_for_key(key, self.mode)
        if command is not None:
            return self.dispatch(command)
        if self.mode is Mode.EDITING:
            self._handle_edit_key(key, character)
            self._relayout()
            return True
        return False

    def _handle_edit_key(self, key: str, character: Optional[str]) -> None:
        buffer = self.edit
        if buffer is None:
            return
        key_name, modifiers = key_name_and_modifiers(key)
        shift_held = "shift" in modifiers
        control_held = bool({"ctrl", "control", "cmd", "command", "meta"} & modifiers)
        if key_name == "backspace":
            buffer.backspace()
        elif key_name == "delete":
            buffer.delete_forward()
        elif key_name in {"left", "right"}:
            buffer.move_cursor(delta=-1 if key_name == "left" else 1, extend=shift_held)
        elif key_name == "home":
            buffer.move_cursor(to=0, extend=shift_held)
        elif key_name == "end":
            buffer.move_cursor(to=len(buffer.text), extend=shift_held)
        elif key_name == "a" and control_held:
            buffer.select_all()
        elif character and len(character) == 1 and character.isprintable():
            buffer.insert(character)

    # -- command handlers ------------------------------------------------

    def _do_create_child(self) -> None:
        selected = self.store.selected_id
        if selected is not None:
            self.store.create_node(selected)
        elif self.store.is_empty():
            self.store.create_node(None)

    def _do_create_sibling(self) -> None:
        node = self.store.selected_node()
        if node is None or node.parent is None:
            return
        self.store.create_node(node.parent)

    def _do_start_edit(self) -> None:
        node = self.store.selected_node()
        if node is None:
            return
        self.edit = EditBuffer(node.id, node.text)
        self.mode = Mode.EDITING

    def _do_commit_edit(self) -> None:
        buffer = self.edit
        if buffer is not None:
            self.store.update_node(buffer.node_id, text=sanitize_text(buffer.text))
        self.edit = None
        self.mode = Mode.NAVIGATING

    def _do_insert_newline(self) -> None:
        if self.edit is not None:
            self.edit.insert("\n")

    def _do_cancel_edit(self) -> None:
        self.edit = None
        self.mode = Mode.NAVIGATING

    def _do_clear_selection(self) -> None:
        self.store.select_node(None)

    def _do_delete(self) -> None:
        node = self.store.selected_node()
        if node is None or node.parent is None:
            return
        self.store.delete_node(node.id)

    def _do_navigate_up(self) -> None:
        node = self.store.selected_node()
        if node is None or node.parent is None:
            return
        siblings = self._siblings(node)
        index = siblings.index(node.id) if node.id in siblings else -1
        if index > 0:
            self._select_existing(siblings[index - 1])
        else:
            self._select_existing(node.parent)

    def _do_navigate_down(self) -> None:
        node = self.store.selected_node()
        if node is None or node.parent is None:
            return
        siblings = self._siblings(node)
        if node.id not in siblings:
            return
        index = siblings.index(node.id)
        if index + 1 < len(siblings):
            self._select_existing(siblings[index + 1])

    def _do_navigate_left(self) -> None:
        node = self.store.selected_node()
        if node is not None and node.parent is not None:
            self._select_existing(node.parent)

    def _do_navigate_right(self) -> None:
        node = self.store.selected_node()
        if node is not None and node.children:
            self._select_existing(node.children[0])

    def _do_switch_layout(self) -> None:
        self.layout_mode = next_layout_mode(self.layout_mode)
        logger.debug("layout switched to {}", self.layout_mode)

    def _do_begin_pan(self) -> None:
        self.mode = Mode.PANNING

    def _do_end_pan(self) -> None:
        self.mode = Mode.NAVIGATING

    # -- helpers ---------------------------------------------------------

    def _siblings(self, node: Node) -> list[str]:
        parent = self.store.get(node.parent)
        return list(parent.children) if parent is not None else []

    def _select_existing(self, node_id: str) -> None:
        if node_id in self.store:
            self.store.select_node(node_id)
