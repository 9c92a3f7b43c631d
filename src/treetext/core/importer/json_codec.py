"""Convert documents to and from their JSON snapshot form.

A document is serialised as::

    {"id": ..., "name": ..., "rootId": ..., "lastModified": ...,
     "nodes": [[node_id, {"id", "title", "content", "childrenIds", "parentId"}], ...]}

The node list keeps store order so a round trip reproduces the document
exactly. Files exported by the first releases used ``docMap`` instead of
``nodes``; both are accepted on input.
"""

import json
from typing import Any

from treetext.core.tree.store import NodeStore
from treetext.errors import ValidationFailure
from treetext.models.document import Document
from treetext.models.node import Node

REQUIRED_DOCUMENT_FIELDS = ("id", "name", "rootId")


def node_to_json(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "title": node.title,
        "content": node.content,
        "childrenIds": list(node.children_ids),
        "parentId": node.parent_id,
    }


def node_from_json(raw: Any, *, node_id: str) -> Node:
    """Parse one node; ``node_id`` is the key it was stored under."""
    if not isinstance(raw, dict):
        msg = f"Node {node_id!r} is not an object"
        raise ValidationFailure(msg)
    children = raw.get("childrenIds", [])
    if not isinstance(children, list) or not all(isinstance(c, str) for c in children):
        msg = f"Node {node_id!r} has malformed childrenIds"
        raise ValidationFailure(msg)
    parent_id = raw.get("parentId")
    if parent_id is not None and not isinstance(parent_id, str):
        msg = f"Node {node_id!r} has malformed parentId"
        raise ValidationFailure(msg)
    return Node(
        id=node_id,
        title=str(raw.get("title", "")),
        content=str(raw.get("content", "")),
        parent_id=parent_id,
        children_ids=tuple(children),
    )


def nodes_to_pairs(store: NodeStore) -> list[list[Any]]:
    return [[node_id, node_to_json(node)] for node_id, node in store.items()]


def store_from_pairs(pairs: Any) -> NodeStore:
    """Build a NodeStore from a list of ``[id, node]`` pairs."""
    if not isinstance(pairs, list):
        msg = "Node collection must be a list of [id, node] pairs"
        raise ValidationFailure(msg)
    nodes: list[Node] = []
    for pair in pairs:
        if not isinstance(pair, list | tuple) or len(pair) != 2 or not isinstance(pair[0], str):
            msg = f"Malformed node entry: {pair!r:.80}"
            raise ValidationFailure(msg)
        nodes.append(node_from_json(pair[1], node_id=pair[0]))
    return NodeStore.from_nodes(nodes)


def document_to_json(document: Document) -> dict[str, Any]:
    return {
        "id": document.id,
        "name": document.name,
        "rootId": document.root_id,
        "lastModified": document.last_modified,
        "nodes": nodes_to_pairs(document.store),
    }


def document_from_json(data: Any, *, last_modified: int | None = None) -> Document:
    """Parse a document snapshot.

    Args:
        data: Decoded JSON object.
        last_modified: Overrides the stored timestamp (used when importing).

    Raises:
        ValidationFailure: If required fields are missing or malformed.
    """
    if not isinstance(data, dict):
        msg = "Document must be a JSON object"
        raise ValidationFailure(msg)
    missing = [f for f in REQUIRED_DOCUMENT_FIELDS if not isinstance(data.get(f), str) or not data[f]]
    pairs = data.get("nodes", data.get("docMap"))
    if pairs is None:
        missing.append("nodes")
    if missing:
        msg = f"Invalid document file format: missing {', '.join(missing)}"
        raise ValidationFailure(msg)

    if last_modified is None:
        stored = data.get("lastModified", 0)
        last_modified = stored if isinstance(stored, int) else 0

    return Document(
        id=data["id"],
        name=data["name"],
        store=store_from_pairs(pairs),
        root_id=data["rootId"],
        last_modified=last_modified,
    )


def dumps_document(document: Document) -> str:
    return json.dumps(document_to_json(document), indent=2, ensure_ascii=False) + "\n"


def loads_document(text: str | bytes, *, last_modified: int | None = None) -> Document:
    """Decode and parse a document snapshot from JSON text."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Not valid JSON: {e}"
        raise ValidationFailure(msg) from e
    return document_from_json(data, last_modified=last_modified)
