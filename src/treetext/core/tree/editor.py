"""Invariant-preserving edit operations on a document tree.

Every function takes a ``NodeStore`` snapshot and returns a new one. Requests
that are reachable through normal interaction but cannot apply (moving the
first child up, editing a node that was just deleted, ...) return the input
store object unchanged instead of raising.
"""

from collections.abc import Sequence
from dataclasses import replace

from loguru import logger

from treetext.core.tree.navigation import subtree_ids
from treetext.core.tree.store import NodeStore
from treetext.errors import StructuralViolation
from treetext.models.document import Document
from treetext.models.node import DIRECTIONS, Direction, Node


def create_node(store: NodeStore, parent_id: str, node: Node) -> NodeStore:
    """Attach ``node`` as the last child of ``parent_id``.

    Returns the unchanged store if the parent does not exist.
    """
    return add_children(store, parent_id, [node])


def add_children(store: NodeStore, parent_id: str, nodes: Sequence[Node]) -> NodeStore:
    """Append ``nodes`` (in order) as children of ``parent_id``."""
    parent = store.get(parent_id)
    if parent is None:
        logger.debug("Parent {} not found, not creating {} node(s)", parent_id, len(nodes))
        return store
    if not nodes:
        return store

    new_ids = [n.id for n in nodes]
    if len(set(new_ids)) != len(new_ids) or any(i in store for i in new_ids):
        msg = f"Node ids already in use: {sorted(i for i in new_ids if i in store)!r}"
        raise StructuralViolation(msg)

    attached = [replace(n, parent_id=parent_id, children_ids=()) for n in nodes]
    updated_parent = replace(parent, children_ids=parent.children_ids + tuple(new_ids))
    return store.with_nodes([*attached, updated_parent])


def delete_subtree(
    store: NodeStore, root_id: str, node_id: str
) -> tuple[NodeStore, frozenset[str]]:
    """Remove ``node_id`` and all of its descendants.

    Returns the new store and the set of removed ids. Deleting the root raises
    StructuralViolation; deleting an unknown node is a no-op.
    """
    if node_id == root_id:
        msg = "Cannot delete root node."
        raise StructuralViolation(msg)

    node = store.get(node_id)
    if node is None:
        return store, frozenset()

    closure = subtree_ids(store, node_id)
    result = store.without_nodes(closure)

    parent = result.get(node.parent_id)
    if parent is not None:
        children = tuple(c for c in parent.children_ids if c != node_id)
        result = result.with_node(parent.id, replace(parent, children_ids=children))

    logger.debug("Deleted subtree {} ({} nodes)", node_id, len(closure))
    return result, frozenset(closure)


def update_node(
    store: NodeStore,
    node_id: str,
    *,
    title: str | None = None,
    content: str | None = None,
) -> NodeStore:
    """Partially update a node's title and/or content."""
    node = store.get(node_id)
    if node is None:
        return store

    changes: dict[str, str] = {}
    if title is not None and title != node.title:
        changes["title"] = title
    if content is not None and content != node.content:
        changes["content"] = content
    if not changes:
        return store
    return store.with_node(node_id, replace(node, **changes))


def rename(store: NodeStore, node_id: str, title: str) -> NodeStore:
    return update_node(store, node_id, title=title)


def set_content(store: NodeStore, node_id: str, content: str) -> NodeStore:
    return update_node(store, node_id, content=content)


def rename_in_document(document: Document, node_id: str, title: str) -> Document:
    """Rename a node; renaming the root also renames the document."""
    store = rename(document.store, node_id, title)
    if store is document.store:
        return document
    if node_id == document.root_id:
        return replace(document, store=store, name=title)
    return replace(document, store=store)


def move(store: NodeStore, node_id: str, direction: Direction) -> NodeStore:
    """Reorder (up/down), indent (right) or outdent (left) a node.

    - up/down: swap with the previous/next sibling.
    - right: the preceding sibling becomes the new parent; the node is
      appended to its children.
    - left: the node moves to the grandparent, right after its former parent.

    Any move that does not apply returns the store unchanged.
    """
    if direction not in DIRECTIONS:
        msg = f"Unknown direction: {direction!r}"
        raise ValueError(msg)

    node = store.get(node_id)
    parent = store.get(node.parent_id) if node else None
    if node is None or parent is None or node_id not in parent.children_ids:
        return store

    siblings = list(parent.children_ids)
    index = siblings.index(node_id)

    if direction == "up":
        if index == 0:
            return store
        siblings[index - 1], siblings[index] = siblings[index], siblings[index - 1]
        return store.with_node(parent.id, replace(parent, children_ids=tuple(siblings)))

    if direction == "down":
        if index == len(siblings) - 1:
            return store
        siblings[index + 1], siblings[index] = siblings[index], siblings[index + 1]
        return store.with_node(parent.id, replace(parent, children_ids=tuple(siblings)))

    if direction == "right":
        if index == 0:
            return store
        new_parent = store.get(siblings[index - 1])
        if new_parent is None:
            return store
        del siblings[index]
        return store.with_nodes(
            [
                replace(parent, children_ids=tuple(siblings)),
                replace(new_parent, children_ids=new_parent.children_ids + (node_id,)),
                replace(node, parent_id=new_parent.id),
            ]
        )

    # direction == "left"
    grandparent = store.get(parent.parent_id)
    if grandparent is None or parent.id not in grandparent.children_ids:
        return store
    del siblings[index]
    uncles = list(grandparent.children_ids)
    uncles.insert(uncles.index(parent.id) + 1, node_id)
    return store.with_nodes(
        [
            replace(parent, children_ids=tuple(siblings)),
            replace(grandparent, children_ids=tuple(uncles)),
            replace(node, parent_id=grandparent.id),
        ]
    )
