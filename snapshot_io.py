import json
from pathlib import Path
from typing import Optional, Tuple

from loguru import logger

from node_models import LAYOUT_MODES, LayoutMode, Node
from tree_store import TreeStore


SNAPSHOT_VERSION = 1


def dumps(store: TreeStore, layout_mode: LayoutMode = "center") -> str:
    """Serialize the node collection as ordered ``[id, node]`` pairs.

    Only structure is written: positions are always recomputed on load and
    selection is session state, so neither is stored.
    """
    document = {
        "version": SNAPSHOT_VERSION,
        "layout": layout_mode,
        "nodes": [[node_id, node.to_dict()] for node_id, node in store.to_entries()],
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def _parse_entries(raw_nodes: object) -> list[Tuple[str, Node]]:
    if isinstance(raw_nodes, dict):
        # Legacy object form: {"<id>": {...}, ...}
        pairs = list(raw_nodes.items())
    elif isinstance(raw_nodes, list):
        pairs = []
        for item in raw_nodes:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise ValueError("node entries must be [id, node] pairs")
            pairs.append((item[0], item[1]))
    else:
        raise ValueError("snapshot has no node list")

    entries: list[Tuple[str, Node]] = []
    seen: set[str] = set()
    for node_id, raw_node in pairs:
        if not isinstance(node_id, str):
            raise ValueError("node ids must be strings")
        if isinstance(raw_node, dict) and "id" not in raw_node:
            raw_node = {**raw_node, "id": node_id}
        try:
            node = Node.from_dict(raw_node)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid node {node_id}: {exc}") from exc
        if node.id != node_id:
            raise ValueError(f"entry key {node_id} does not match node id {node.id}")
        if node_id in seen:
            raise ValueError(f"duplicate node id {node_id}")
        seen.add(node_id)
        entries.append((node_id, node))
    return entries


def loads(text: str) -> Tuple[TreeStore, Optional[LayoutMode]]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"snapshot is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise ValueError("snapshot must be a JSON object")
    store = TreeStore.from_entries(_parse_entries(document.get("nodes")))
    for problem in store.find_inconsistencies():
        logger.warning("snapshot inconsistency: {}", problem)
    layout_mode = document.get("layout")
    if layout_mode not in LAYOUT_MODES:
        layout_mode = None
    return store, layout_mode


def save(path: Path, store: TreeStore, layout_mode: LayoutMode = "center") -> Path:
    target = Path(path).expanduser()
    target.write_text(dumps(store, layout_mode), encoding="utf-8")
    logger.info("saved {} nodes to {}", len(store), target)
    return target


def load(path: Path) -> Tuple[TreeStore, Optional[LayoutMode]]:
    target = Path(path).expanduser()
    store, layout_mode = loads(target.read_text(encoding="utf-8"))
    logger.info("loaded {} nodes from {}", len(store), target)
    return store, layout_mode
