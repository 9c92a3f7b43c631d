"""Tests for markdown rendering of subtrees."""

from dataclasses import replace

from treetext.core.tree.markdown import render_subtree_as_markdown
from treetext.core.tree.store import NodeStore


def test_renders_nested_bullets(store: NodeStore) -> None:
    md = render_subtree_as_markdown(store, node_id="a", include_content=False)
    assert md == "- a\n    - a1\n    - a2\n"


def test_content_rendered_as_quote(store: NodeStore) -> None:
    md = render_subtree_as_markdown(store, node_id="b")
    assert md == "- b\n  > b text\n"


def test_multiline_content(store: NodeStore) -> None:
    b = store.get("b")
    assert b is not None
    updated = store.with_node("b", replace(b, content="line one\n\nline two"))
    md = render_subtree_as_markdown(updated, node_id="b")
    assert md == "- b\n  > line one\n  >\n  > line two\n"


def test_content_equal_to_title_is_skipped(store: NodeStore) -> None:
    c = store.get("c")
    assert c is not None
    md = render_subtree_as_markdown(store.with_node("c", replace(c, content="c")), node_id="c")
    assert md == "- c\n"


def test_max_depth_truncates_with_marker(store: NodeStore) -> None:
    md = render_subtree_as_markdown(store, node_id="root", max_depth=1, include_content=False)
    assert "a1" not in md
    assert "    - a\n" in md
    assert "        - ... (2 more children, id=a)\n" in md


def test_unknown_node_renders_empty(store: NodeStore) -> None:
    assert render_subtree_as_markdown(store, node_id="ghost") == ""
