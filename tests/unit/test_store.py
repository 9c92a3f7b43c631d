"""Tests for NodeStore snapshots and invariant checking."""

from dataclasses import replace

from tests.unit.fakes import build_store
from treetext.core.tree.store import NodeStore, check_invariants
from treetext.models.node import Node


def test_with_node_leaves_original_untouched(store: NodeStore) -> None:
    a = store.get("a")
    assert a is not None
    updated = store.with_node("a", replace(a, title="changed"))

    assert store.get("a") is a
    assert updated.get("a").title == "changed"  # type: ignore[union-attr]
    # Untouched nodes are shared between snapshots
    assert updated.get("b") is store.get("b")


def test_without_nodes_removes_only_listed(store: NodeStore) -> None:
    smaller = store.without_nodes(["a1", "a2"])
    assert len(smaller) == len(store) - 2
    assert "a1" not in smaller
    assert "a1" in store


def test_get_none_and_unknown(store: NodeStore) -> None:
    assert store.get(None) is None
    assert store.get("nope") is None


def test_equality_is_structural() -> None:
    assert build_store({"root": ["x"]}) == build_store({"root": ["x"]})
    assert build_store({"root": ["x"]}) != build_store({"root": ["y"]})


def test_repr_counts_nodes(store: NodeStore) -> None:
    assert repr(store) == "NodeStore(6 nodes)"


def test_consistent_tree_has_no_problems(store: NodeStore) -> None:
    assert check_invariants(store, "root") == []


def test_missing_root_is_reported() -> None:
    assert check_invariants(NodeStore(), "root") == ["root 'root' not found"]


def test_dangling_child_is_reported(store: NodeStore) -> None:
    root = store.get("root")
    assert root is not None
    broken = store.with_node("root", replace(root, children_ids=(*root.children_ids, "ghost")))
    problems = check_invariants(broken, "root")
    assert any("missing child 'ghost'" in p for p in problems)


def test_parent_mismatch_is_reported(store: NodeStore) -> None:
    b = store.get("b")
    assert b is not None
    broken = store.with_node("b", replace(b, parent_id="a"))
    problems = check_invariants(broken, "root")
    assert any("'b' listed under 'root'" in p for p in problems)
    assert any("does not list 'b'" in p for p in problems)


def test_unreachable_node_is_reported(store: NodeStore) -> None:
    island = Node(id="island", title="island", content="", parent_id=None)
    problems = check_invariants(store.with_node("island", island), "root")
    assert any("'island'" in p for p in problems)


def test_cycle_is_reported() -> None:
    nodes = [
        Node(id="root", title="r", content="", parent_id=None, children_ids=("x",)),
        Node(id="x", title="x", content="", parent_id="root", children_ids=("y",)),
        Node(id="y", title="y", content="", parent_id="x", children_ids=("x",)),
    ]
    problems = check_invariants(NodeStore.from_nodes(nodes), "root")
    assert any("cycle" in p for p in problems)
