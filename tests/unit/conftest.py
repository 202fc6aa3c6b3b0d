"""Shared test fixtures."""

from itertools import count

import pytest
from loguru import logger

from tree_store import TreeStore


def _sequential_ids():
    counter = count(1)
    return lambda: f"n{next(counter)}"


@pytest.fixture
def store() -> TreeStore:
    """Empty store with predictable ids (n1, n2, ...) and a fixed clock."""
    return TreeStore(id_factory=_sequential_ids(), clock=lambda: 1_000)


@pytest.fixture
def scenario_store(store: TreeStore) -> TreeStore:
    """A (n1) with children B (n2) and C (n3); C is selected."""
    root = store.create_node(None, "A")
    store.create_node(root, "B")
    store.create_node(root, "C")
    return store


@pytest.fixture
def deep_store(store: TreeStore) -> TreeStore:
    """root -> [a -> [a1, a2], b -> [b1]]."""
    root = store.create_node(None, "root")
    a = store.create_node(root, "a")
    store.create_node(a, "a1")
    store.create_node(a, "a2")
    b = store.create_node(root, "b")
    store.create_node(b, "b1")
    store.select_node(None)
    return store


@pytest.fixture
def log_messages():
    """Collect loguru WARNING+ messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="WARNING")
    yield messages
    logger.remove(handler_id)
