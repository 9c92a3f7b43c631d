"""Shared test fixtures."""

import itertools
from collections.abc import Callable

import pytest

from tests.unit.fakes import MemoryStateStore, build_store
from treetext.core.tree.store import NodeStore
from treetext.core.workspace import Workspace
from treetext.models.document import Document

# root
#   a
#     a1
#     a2
#   b
#   c
TREE = {"root": ["a", "b", "c"], "a": ["a1", "a2"]}


@pytest.fixture
def store() -> NodeStore:
    return build_store(TREE)


@pytest.fixture
def document(store: NodeStore) -> Document:
    return Document(id="doc-1", name="root", store=store, root_id="root", last_modified=1000)


@pytest.fixture
def clock() -> Callable[[], int]:
    """Deterministic millisecond clock: 10000, 10001, ..."""
    counter = itertools.count(10_000)
    return lambda: next(counter)


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def workspace(state_store: MemoryStateStore, clock: Callable[[], int]) -> Workspace:
    """A workspace started from empty storage: one default document, root id "root"."""
    return Workspace(state_store, clock=clock)
