"""Render node subtrees as markdown."""

import io

from treetext.core.tree.projector import iter_document_order
from treetext.core.tree.store import NodeStore


def render_subtree_as_markdown(
    store: NodeStore,
    *,
    node_id: str,
    max_depth: int | None = None,
    include_content: bool = True,
) -> str:
    """Render a node and its descendants as indented markdown.

    Args:
        store: Node store of the document.
        node_id: The node to start rendering from.
        max_depth: Max levels below the start node to include (None = unlimited).
        include_content: Whether to include node content under each title.

    Returns:
        Markdown string with bullet-list hierarchy, or "" if the node is unknown.
    """
    out = io.StringIO()
    for node, depth in iter_document_order(store, node_id):
        if max_depth is not None and depth > max_depth:
            continue
        indent = "    " * depth

        out.write(f"{indent}- {node.title}\n")

        # Content is skipped when it merely repeats the title
        if include_content and node.content and node.content != node.title:
            for line in node.content.split("\n"):
                out.write(f"{indent}  > {line}\n".rstrip() + "\n")

        # Truncation indicator when children are cut off by max_depth
        child_count = len(node.children_ids)
        if max_depth is not None and depth == max_depth and child_count > 0:
            child_indent = "    " * (depth + 1)
            noun = "child" if child_count == 1 else "children"
            out.write(f"{child_indent}- ... ({child_count} more {noun}, id={node.id})\n")

    return out.getvalue()
