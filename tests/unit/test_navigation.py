"""Tests for tree navigation (breadcrumbs, siblings, subtree, move options)."""

from dataclasses import replace

from treetext.core.tree.navigation import (
    get_breadcrumbs,
    get_children,
    get_node_context,
    get_siblings,
    move_options,
    resolve_node_id,
    subtree_ids,
)
from treetext.core.tree.store import NodeStore
from treetext.models.document import Document
from treetext.models.node import Breadcrumb, MoveOptions


def test_breadcrumbs_for_nested_node(store: NodeStore) -> None:
    """a2 is below root > a -- breadcrumbs exclude the node itself."""
    assert get_breadcrumbs(store, "a2") == (
        Breadcrumb(node_id="root", title="root", depth=0),
        Breadcrumb(node_id="a", title="a", depth=1),
    )


def test_breadcrumbs_for_root_and_unknown(store: NodeStore) -> None:
    assert get_breadcrumbs(store, "root") == ()
    assert get_breadcrumbs(store, "ghost") == ()


def test_subtree_ids(store: NodeStore) -> None:
    assert subtree_ids(store, "a") == {"a", "a1", "a2"}
    assert subtree_ids(store, "root") == set(store)
    assert subtree_ids(store, "ghost") == set()


def test_subtree_skips_dangling_children(store: NodeStore) -> None:
    a = store.get("a")
    assert a is not None
    broken = store.with_node("a", replace(a, children_ids=(*a.children_ids, "ghost")))
    assert subtree_ids(broken, "a") == {"a", "a1", "a2"}


def test_resolve_node_id_falls_back_to_root(store: NodeStore) -> None:
    assert resolve_node_id(store, "root", "a1") == "a1"
    assert resolve_node_id(store, "root", "deleted") == "root"
    assert resolve_node_id(store, "root", None) == "root"


def test_children_in_order_with_limit(store: NodeStore) -> None:
    assert [c.id for c in get_children(store, "root")] == ["a", "b", "c"]
    assert [c.id for c in get_children(store, "root", limit=2)] == ["a", "b"]
    assert get_children(store, "b") == ()


def test_siblings_of_middle_node(store: NodeStore) -> None:
    before, after = get_siblings(store, "b")
    assert [s.id for s in before] == ["a"]
    assert [s.id for s in after] == ["c"]


def test_siblings_respect_count(store: NodeStore) -> None:
    before, after = get_siblings(store, "a", count=1)
    assert before == ()
    assert [s.id for s in after] == ["b"]


def test_node_context(document: Document) -> None:
    ctx = get_node_context(document, "a", child_limit=1)
    assert ctx is not None
    assert ctx.node.id == "a"
    assert [b.node_id for b in ctx.breadcrumbs] == ["root"]
    assert [c.id for c in ctx.children] == ["a1"]
    assert [s.id for s in ctx.siblings_after] == ["b", "c"]
    assert get_node_context(document, "ghost") is None


def test_move_options_follow_tree_shape(store: NodeStore) -> None:
    assert move_options(store, "a") == MoveOptions(up=False, down=True, left=False, right=False)
    assert move_options(store, "b") == MoveOptions(up=True, down=True, left=False, right=True)
    assert move_options(store, "a2") == MoveOptions(up=True, down=False, left=True, right=True)
    assert move_options(store, "root") == MoveOptions()
    assert not move_options(store, "ghost").allows("up")
