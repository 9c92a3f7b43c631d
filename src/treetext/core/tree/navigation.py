"""Tree navigation: breadcrumbs, siblings, subtree closure, move options."""

from collections import deque

from treetext.core.tree.store import NodeStore
from treetext.models.document import Document, NodeContext
from treetext.models.node import Breadcrumb, MoveOptions, Node


def subtree_ids(store: NodeStore, node_id: str) -> set[str]:
    """Return ``node_id`` and all of its transitive descendants.

    Breadth-first; children that do not resolve are skipped.
    """
    if node_id not in store:
        return set()
    closure: set[str] = set()
    todo: deque[str] = deque([node_id])
    while todo:
        current = todo.popleft()
        if current in closure:
            continue
        closure.add(current)
        node = store.get(current)
        if node is not None:
            todo.extend(c for c in node.children_ids if c in store)
    return closure


def resolve_node_id(store: NodeStore, root_id: str, node_id: str | None) -> str:
    """Return ``node_id`` if it resolves, otherwise the root id."""
    if node_id is not None and node_id in store:
        return node_id
    return root_id


def get_breadcrumbs(store: NodeStore, node_id: str) -> tuple[Breadcrumb, ...]:
    """Get ancestor breadcrumbs for a node.

    Returns breadcrumbs in order from root to immediate parent (excludes the node itself).
    """
    node = store.get(node_id)
    if node is None:
        return ()

    ancestors: list[Node] = []
    seen = {node_id}
    parent = store.get(node.parent_id)
    while parent is not None and parent.id not in seen:
        seen.add(parent.id)
        ancestors.append(parent)
        parent = store.get(parent.parent_id)

    ancestors.reverse()
    return tuple(
        Breadcrumb(node_id=a.id, title=a.title, depth=depth) for depth, a in enumerate(ancestors)
    )


def get_children(store: NodeStore, node_id: str, *, limit: int = 50) -> tuple[Node, ...]:
    """Get direct children of a node in document order."""
    node = store.get(node_id)
    if node is None:
        return ()
    children = (store.get(c) for c in node.children_ids)
    return tuple(c for c in children if c is not None)[:limit]


def get_siblings(
    store: NodeStore,
    node_id: str,
    *,
    count: int = 3,
) -> tuple[tuple[Node, ...], tuple[Node, ...]]:
    """Get siblings before and after a node.

    Returns (siblings_before, siblings_after) tuples.
    """
    node = store.get(node_id)
    parent = store.get(node.parent_id) if node else None
    if parent is None or node_id not in parent.children_ids:
        return (), ()

    index = parent.children_ids.index(node_id)
    before_ids = parent.children_ids[max(0, index - count) : index]
    after_ids = parent.children_ids[index + 1 : index + 1 + count]

    def resolve(ids: tuple[str, ...]) -> tuple[Node, ...]:
        return tuple(n for n in (store.get(i) for i in ids) if n is not None)

    return resolve(before_ids), resolve(after_ids)


def get_node_context(
    document: Document,
    node_id: str,
    *,
    sibling_count: int = 3,
    child_limit: int = 20,
) -> NodeContext | None:
    """Collect a node together with its ancestors, siblings and children."""
    store = document.store
    node = store.get(node_id)
    if node is None:
        return None
    before, after = get_siblings(store, node_id, count=sibling_count)
    return NodeContext(
        node=node,
        document=document,
        breadcrumbs=get_breadcrumbs(store, node_id),
        children=get_children(store, node_id, limit=child_limit),
        siblings_before=before,
        siblings_after=after,
    )


def move_options(store: NodeStore, node_id: str) -> MoveOptions:
    """Derive which moves are legal for ``node_id`` from the current tree shape."""
    node = store.get(node_id)
    parent = store.get(node.parent_id) if node else None
    if parent is None or node_id not in parent.children_ids:
        return MoveOptions()

    siblings = parent.children_ids
    index = siblings.index(node_id)
    return MoveOptions(
        up=index > 0,
        down=index < len(siblings) - 1,
        left=store.get(parent.parent_id) is not None,
        right=index > 0 and siblings[index - 1] in store,
    )
