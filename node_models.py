from dataclasses import dataclass, field, replace
import time
from typing import List, Optional, Literal


LayoutMode = Literal["center", "top"]
LAYOUT_MODES: tuple[LayoutMode, ...] = ("center", "top")

MAX_TEXT_LENGTH = 500
DEFAULT_NODE_TEXT = "New Node"
DEFAULT_ROOT_TEXT = "Start Here"


def now_ms() -> int:
    return int(time.time() * 1000)


def sanitize_text(text: str) -> str:
    """Normalize user text: trim, drop angle brackets, cap the length."""
    cleaned = (text or "").strip().replace("<", "").replace(">", "")
    return cleaned[:MAX_TEXT_LENGTH]


@dataclass
class NodeMetadata:
    created: int = field(default_factory=now_ms)
    modified: int = field(default_factory=now_ms)
    # Reserved; kept through persistence but ignored by the layouts.
    collapsed: bool = False


@dataclass
class Node:
    id: str
    text: str
    parent: Optional[str] = None
    children: List[str] = field(default_factory=list)
    metadata: NodeMetadata = field(default_factory=NodeMetadata)

    def copy(self) -> "Node":
        """Detached copy; children and metadata are not shared."""
        return replace(self, children=list(self.children), metadata=replace(self.metadata))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "parent": self.parent,
            "children": list(self.children),
            "metadata": {
                "created": self.metadata.created,
                "modified": self.metadata.modified,
                "collapsed": self.metadata.collapsed,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        if not isinstance(data, dict):
            raise ValueError("node entry must be an object")
        node_id = data.get("id")
        if not isinstance(node_id, str) or not node_id:
            raise ValueError("node entry is missing an id")
        parent = data.get("parent")
        if parent is not None and not isinstance(parent, str):
            raise ValueError(f"node {node_id} has an invalid parent")
        children = data.get("children") or []
        if not isinstance(children, list) or not all(isinstance(c, str) for c in children):
            raise ValueError(f"node {node_id} has invalid children")
        raw_meta = data.get("metadata") or {}
        if not isinstance(raw_meta, dict):
            raise ValueError(f"node {node_id} has invalid metadata")
        stamp = now_ms()
        metadata = NodeMetadata(
            created=int(raw_meta.get("created", stamp)),
            modified=int(raw_meta.get("modified", stamp)),
            collapsed=bool(raw_meta.get("collapsed", False)),
        )
        return cls(
            id=node_id,
            text=str(data.get("text", "")),
            parent=parent,
            children=list(children),
            metadata=metadata,
        )


@dataclass(frozen=True)
class Position:
    """Derived placement of a node; ``x``/``y`` are the box center."""

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x - self.width / 2

    @property
    def top(self) -> float:
        return self.y - self.height / 2

    @property
    def right(self) -> float:
        return self.x + self.width / 2

    @property
    def bottom(self) -> float:
        return self.y + self.height / 2

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom
