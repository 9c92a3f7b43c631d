"""Read-only linearisations of a document tree.

All traversals are depth-first pre-order following ``children_ids``; that
order is "document order" everywhere in treetext. An unresolvable root gives
an empty result.
"""

from collections.abc import Iterator

from treetext.core.tree.store import NodeStore
from treetext.models.node import Node, PreviewBlock


def iter_document_order(store: NodeStore, root_id: str) -> Iterator[tuple[Node, int]]:
    """Yield ``(node, depth)`` pairs in document order, root at depth 0."""
    root = store.get(root_id)
    if root is None:
        return
    seen: set[str] = set()
    stack: list[tuple[Node, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        yield node, depth
        children = [store.get(c) for c in node.children_ids]
        stack.extend((c, depth + 1) for c in reversed(children) if c is not None)


def full_text(store: NodeStore, root_id: str) -> str:
    """Concatenate every node's content, each followed by a blank line."""
    return "".join(f"{node.content}\n\n" for node, _depth in iter_document_order(store, root_id))


def outline(store: NodeStore, root_id: str) -> str:
    """One ``- title (id: ...)`` line per node, indented two spaces per level."""
    return "".join(
        f"{'  ' * depth}- {node.title} (id: {node.id})\n"
        for node, depth in iter_document_order(store, root_id)
    )


class FlatPreview:
    """Lazy, restartable sequence of preview blocks in document order."""

    def __init__(self, store: NodeStore, root_id: str) -> None:
        self.store = store
        self.root_id = root_id

    def __iter__(self) -> Iterator[PreviewBlock]:
        for node, _depth in iter_document_order(self.store, self.root_id):
            yield PreviewBlock(node_id=node.id, text=node.content)


def flat_preview(store: NodeStore, root_id: str) -> FlatPreview:
    return FlatPreview(store, root_id)
