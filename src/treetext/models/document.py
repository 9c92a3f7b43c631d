"""Document and session-state models."""

from dataclasses import dataclass

from treetext.core.tree.store import NodeStore
from treetext.models.node import Breadcrumb, Node

VIEWS = ("outline", "editor", "preview")


@dataclass(frozen=True)
class Document:
    """A named document tree with its modification time (ms since epoch)."""

    id: str
    name: str
    store: NodeStore
    root_id: str
    last_modified: int

    @property
    def root(self) -> Node | None:
        return self.store.get(self.root_id)

    @property
    def node_count(self) -> int:
        return len(self.store)


@dataclass(frozen=True)
class UiState:
    """Session state kept next to the document collection.

    Ids in here may outlive the nodes they name; readers fall back to the
    document root.
    """

    active_document_id: str | None = None
    focused_node_id: str | None = None
    expanded_node_ids: tuple[str, ...] = ()
    active_view: str = "outline"


@dataclass(frozen=True)
class NodeContext:
    """A node with its surrounding context."""

    node: Node
    document: Document
    breadcrumbs: tuple[Breadcrumb, ...]
    children: tuple[Node, ...]
    siblings_before: tuple[Node, ...]
    siblings_after: tuple[Node, ...]
