from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional
import uuid

from loguru import logger

from node_models import (
    DEFAULT_NODE_TEXT,
    Node,
    NodeMetadata,
    now_ms,
    sanitize_text,
)


def _new_id() -> str:
    return uuid.uuid4().hex


class TreeStore:
    """Canonical node collection plus the current selection.

    Every mutation keeps ``parent`` pointers and ``children`` lists in step.
    Invalid input (unknown ids, deleting the root) is ignored rather than
    raised: the editor treats those as caller bugs, not user errors.
    """

    _WRITABLE_FIELDS = {"text", "collapsed"}

    def __init__(
        self,
        *,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._nodes: dict[str, Node] = {}
        self._selected_id: Optional[str] = None
        self._id_factory = id_factory or _new_id
        self._clock = clock or now_ms

    # -- read access -----------------------------------------------------

    @property
    def nodes(self) -> Mapping[str, Node]:
        return MappingProxyType(self._nodes)

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    def selected_node(self) -> Optional[Node]:
        if self._selected_id is None:
            return None
        return self._nodes.get(self._selected_id)

    def get(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def is_empty(self) -> bool:
        return not self._nodes

    @property
    def root_id(self) -> Optional[str]:
        for node_id, node in self._nodes.items():
            if node.parent is None:
                return node_id
        return None

    def tier_of(self, node_id: str) -> int:
        """Depth below the root; a dangling parent ends the walk."""
        node = self._nodes.get(node_id)
        if node is None:
            return 0
        tier = 0
        seen = {node_id}
        while node.parent is not None:
            tier += 1
            parent = self._nodes.get(node.parent)
            if parent is None or parent.id in seen:
                break
            seen.add(parent.id)
            node = parent
        return tier

    def subtree_ids(self, node_id: str) -> list[str]:
        """Ids of ``node_id`` and all of its descendants, pre-order."""
        if node_id not in self._nodes:
            return []
        collected: list[str] = []
        seen: set[str] = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            node = self._nodes.get(current)
            if node is None:
                continue
            seen.add(current)
            collected.append(current)
            stack.extend(reversed(node.children))
        return collected

    # -- mutations -------------------------------------------------------

    def create_node(self, parent_id: Optional[str], text: str = DEFAULT_NODE_TEXT) -> Optional[str]:
        if self.is_empty():
            parent_id = None
        elif parent_id is None or parent_id not in self._nodes:
            return None

        stamp = self._clock()
        node_id = self._id_factory()
        while node_id in self._nodes:
            node_id = self._id_factory()
        node = Node(
            id=node_id,
            text=sanitize_text(text),
            parent=parent_id,
            metadata=NodeMetadata(created=stamp, modified=stamp),
        )
        self._nodes[node_id] = node
        if parent_id is not None:
            parent = self._nodes[parent_id]
            parent.children.append(node_id)
            parent.metadata.modified = stamp
        self._selected_id = node_id
        logger.debug("created node {} under {}", node_id, parent_id)
        return node_id

    def update_node(self, node_id: str, **updates: object) -> bool:
        node = self._nodes.get(node_id)
        if node is None:
            return False
        changed = False
        for key, value in updates.items():
            if key not in self._WRITABLE_FIELDS:
                continue
            if key == "text":
                node.text = sanitize_text(str(value))
            else:
                node.metadata.collapsed = bool(value)
            changed = True
        if changed:
            node.metadata.modified = self._clock()
        return changed

    def delete_node(self, node_id: str) -> list[str]:
        node = self._nodes.get(node_id)
        if node is None or node.parent is None:
            return []
        removed = self.subtree_ids(node_id)
        for member in removed:
            del self._nodes[member]
        parent = self._nodes.get(node.parent)
        if parent is not None:
            parent.children = [child for child in parent.children if child != node_id]
            parent.metadata.modified = self._clock()
        if self._selected_id is not None and self._selected_id not in self._nodes:
            self._selected_id = None
        logger.debug("deleted subtree of {} ({} nodes)", node_id, len(removed))
        return removed

    def select_node(self, node_id: Optional[str]) -> None:
        if node_id is None or node_id in self._nodes:
            self._selected_id = node_id

    def clear(self) -> None:
        self._nodes.clear()
        self._selected_id = None

    # -- persistence boundary -------------------------------------------

    def to_entries(self) -> list[tuple[str, Node]]:
        return [(node_id, node.copy()) for node_id, node in self._nodes.items()]

    @classmethod
    def from_entries(cls, entries: Iterable[tuple[str, Node]], **kwargs) -> "TreeStore":
        store = cls(**kwargs)
        for node_id, node in entries:
            store._nodes[node_id] = node.copy()
        return store

    def find_inconsistencies(self) -> list[str]:
        problems: list[str] = []
        roots = [node_id for node_id, node in self._nodes.items() if node.parent is None]
        if self._nodes and len(roots) != 1:
            problems.append(f"expected one root, found {len(roots)}")
        for node_id, node in self._nodes.items():
            if node.parent is not None:
                parent = self._nodes.get(node.parent)
                if parent is None:
                    problems.append(f"{node_id}: parent {node.parent} is missing")
                elif node_id not in parent.children:
                    problems.append(f"{node_id}: not listed by parent {node.parent}")
            for child_id in node.children:
                child = self._nodes.get(child_id)
                if child is None:
                    problems.append(f"{node_id}: child {child_id} is missing")
                elif child.parent != node_id:
                    problems.append(f"{node_id}: child {child_id} points at {child.parent}")
        return problems
