"""Tests for domain models."""

import re

import pytest

from treetext.models.document import Document, UiState
from treetext.models.node import MoveOptions, Node, make_document_id, make_node_id


def test_node_is_frozen() -> None:
    node = Node(id="n", title="t", content="c", parent_id=None)
    with pytest.raises(AttributeError):
        node.title = "changed"  # type: ignore[misc]


def test_document_root_and_count(document: Document) -> None:
    assert document.root is not None
    assert document.root.id == "root"
    assert document.node_count == 6


def test_ui_state_defaults() -> None:
    ui = UiState()
    assert ui.active_document_id is None
    assert ui.expanded_node_ids == ()
    assert ui.active_view == "outline"


def test_ids_are_unique_and_prefixed() -> None:
    ids = {make_node_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(re.fullmatch(r"node-[0-9a-f]{12}", i) for i in ids)
    assert re.fullmatch(r"doc-[0-9a-f]{12}", make_document_id())


def test_move_options_allows() -> None:
    options = MoveOptions(up=True, right=True)
    assert options.allows("up")
    assert options.allows("right")
    assert not options.allows("left")
