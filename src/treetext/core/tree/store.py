"""Immutable id-keyed node store.

Nodes live in a flat mapping from id to ``Node``; parent/child structure is
expressed only through ids. Every mutation returns a new ``NodeStore``. The
id index is shallow-copied, so untouched ``Node`` objects (which are frozen)
are shared between snapshots and a reader holding an older snapshot never
observes a later change.
"""

from collections import deque
from collections.abc import Iterable, Iterator, Mapping

from treetext.models.node import Node


class NodeStore:
    """Snapshot of a document tree's nodes."""

    __slots__ = ("_nodes",)

    def __init__(self, nodes: Mapping[str, Node] | Iterable[tuple[str, Node]] = ()) -> None:
        self._nodes: dict[str, Node] = dict(nodes)

    @classmethod
    def from_nodes(cls, nodes: Iterable[Node]) -> "NodeStore":
        return cls((n.id, n) for n in nodes)

    def get(self, node_id: str | None) -> Node | None:
        """Return the node, or None if the id does not resolve."""
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def with_node(self, node_id: str, node: Node) -> "NodeStore":
        """Return a new store with ``node_id`` mapped to ``node``."""
        nodes = dict(self._nodes)
        nodes[node_id] = node
        return NodeStore(nodes)

    def with_nodes(self, nodes: Iterable[Node]) -> "NodeStore":
        """Return a new store with every given node inserted or replaced."""
        merged = dict(self._nodes)
        for node in nodes:
            merged[node.id] = node
        return NodeStore(merged)

    def without_nodes(self, node_ids: Iterable[str]) -> "NodeStore":
        """Return a new store with all listed ids removed."""
        drop = set(node_ids)
        return NodeStore((k, v) for k, v in self._nodes.items() if k not in drop)

    def items(self) -> Iterator[tuple[str, Node]]:
        return iter(self._nodes.items())

    def values(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeStore):
            return NotImplemented
        return self._nodes == other._nodes

    def __hash__(self) -> int:
        return hash(frozenset(self._nodes.items()))

    def __repr__(self) -> str:
        return f"NodeStore({len(self._nodes)} nodes)"


def check_invariants(store: NodeStore, root_id: str) -> list[str]:
    """Return a list of tree invariant violations; empty when consistent."""
    problems: list[str] = []
    root = store.get(root_id)
    if root is None:
        return [f"root {root_id!r} not found"]
    if root.parent_id is not None:
        problems.append(f"root {root_id!r} has parent {root.parent_id!r}")

    for node_id, node in store.items():
        if node_id != node.id:
            problems.append(f"node stored under {node_id!r} has id {node.id!r}")
        if len(set(node.children_ids)) != len(node.children_ids):
            problems.append(f"{node_id!r} lists a child more than once")
        for child_id in node.children_ids:
            child = store.get(child_id)
            if child is None:
                problems.append(f"{node_id!r} lists missing child {child_id!r}")
            elif child.parent_id != node_id:
                problems.append(
                    f"{child_id!r} listed under {node_id!r} but points at {child.parent_id!r}"
                )
        if node_id == root_id:
            continue
        if node.parent_id is None:
            problems.append(f"{node_id!r} has no parent but is not the root")
            continue
        parent = store.get(node.parent_id)
        if parent is None:
            problems.append(f"{node_id!r} points at missing parent {node.parent_id!r}")
        elif parent.children_ids.count(node_id) != 1:
            problems.append(f"parent {node.parent_id!r} does not list {node_id!r} exactly once")

    # Reachability from the root catches cycles and detached islands.
    seen: set[str] = set()
    todo: deque[str] = deque([root_id])
    while todo:
        current = todo.popleft()
        if current in seen:
            problems.append(f"{current!r} reached twice (cycle)")
            continue
        seen.add(current)
        node = store.get(current)
        if node is not None:
            todo.extend(c for c in node.children_ids if c in store)
    unreachable = sorted(set(store) - seen)
    if unreachable:
        problems.append(f"unreachable nodes: {unreachable!r}")
    return problems
