"""Collection of documents plus the session (UI) state that points into it.

The registry only records state transitions; it never creates documents on
its own. Callers that want "there is always a document" apply that policy
themselves (see ``Workspace.ensure_document``).
"""

from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from loguru import logger

from treetext.core.importer.json_codec import document_from_json
from treetext.core.tree.navigation import resolve_node_id
from treetext.core.tree.store import NodeStore, check_invariants
from treetext.errors import ValidationFailure
from treetext.models.document import VIEWS, Document, UiState
from treetext.models.node import Node, make_document_id, make_node_id, now_ms

DEFAULT_NEW_DOCUMENT_NAME = "Untitled Document"


def new_document(
    name: str = DEFAULT_NEW_DOCUMENT_NAME,
    *,
    now: int,
    document_id: str | None = None,
    root_id: str | None = None,
) -> Document:
    """Build a document holding a single root node titled ``name``."""
    root_id = root_id or make_node_id()
    root = Node(id=root_id, title=name, content=name, parent_id=None)
    return Document(
        id=document_id or make_document_id(),
        name=name,
        store=NodeStore.from_nodes([root]),
        root_id=root_id,
        last_modified=now,
    )


class DocumentRegistry:
    """Documents keyed by id, plus which one is active and where focus is."""

    def __init__(
        self,
        documents: Iterable[Document] = (),
        ui: UiState | None = None,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._documents: dict[str, Document] = {d.id: d for d in documents}
        self._ui = ui or UiState()
        self.clock = clock

    # --- queries ---

    @property
    def documents(self) -> tuple[Document, ...]:
        return tuple(self._documents.values())

    @property
    def ui(self) -> UiState:
        return self._ui

    @property
    def active(self) -> Document | None:
        return self.get(self._ui.active_document_id)

    def get(self, document_id: str | None) -> Document | None:
        if document_id is None:
            return None
        return self._documents.get(document_id)

    def resolve(self, ref: str) -> Document | None:
        """Find a document by id, falling back to an exact name match."""
        doc = self._documents.get(ref)
        if doc is not None:
            return doc
        return next((d for d in self._documents.values() if d.name == ref), None)

    def most_recent(self) -> Document | None:
        if not self._documents:
            return None
        return max(self._documents.values(), key=lambda d: d.last_modified)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents

    # --- document lifecycle ---

    def select_active(self, document_id: str | None) -> Document | None:
        """Activate a document, falling back to the most recently modified one.

        Returns the new active document, or None if the registry is empty.
        """
        doc = self.get(document_id) or self.most_recent()
        if doc is None:
            self._ui = replace(
                self._ui, active_document_id=None, focused_node_id=None, expanded_node_ids=()
            )
            return None
        if doc.id != document_id:
            logger.debug("Document {} not found, activating {}", document_id, doc.id)
        self._ui = replace(
            self._ui,
            active_document_id=doc.id,
            focused_node_id=doc.root_id,
            expanded_node_ids=(doc.root_id,),
            active_view="outline",
        )
        return doc

    def create_document(self, name: str = DEFAULT_NEW_DOCUMENT_NAME) -> Document:
        """Create an empty document (single root node) and make it active."""
        doc = new_document(name, now=self.clock())
        self._documents[doc.id] = doc
        self.select_active(doc.id)
        logger.info("Created document {!r} ({})", doc.name, doc.id)
        return doc

    def delete_document(self, document_id: str) -> bool:
        """Remove a document; re-selects another one if it was active.

        Returns False if no such document exists. When the last document is
        removed the registry is left with no active document.
        """
        if document_id not in self._documents:
            return False
        was_active = self._ui.active_document_id == document_id
        del self._documents[document_id]
        if was_active:
            self.select_active(None)
        logger.info("Deleted document {}", document_id)
        return True

    def import_document(self, payload: Any) -> Document:
        """Validate and add (or replace) a document snapshot, then activate it.

        Raises:
            ValidationFailure: If the payload is malformed or its root node is
                missing; nothing changes.
        """
        doc = document_from_json(payload, last_modified=self.clock())
        if doc.root is None:
            msg = f"Invalid document file format: root node {doc.root_id!r} not found"
            raise ValidationFailure(msg)
        for problem in check_invariants(doc.store, doc.root_id):
            logger.warning("Imported document {}: {}", doc.id, problem)
        if doc.id in self._documents:
            logger.info("Replacing document {!r} ({})", doc.name, doc.id)
        self._documents[doc.id] = doc
        self.select_active(doc.id)
        return doc

    def update_document(
        self, document_id: str, updater: Callable[[Document], Document]
    ) -> Document | None:
        """Apply ``updater`` to a document and record the result.

        ``last_modified`` is bumped only when the updater produced a new
        snapshot. Returns the resulting document, or None if not found.
        """
        doc = self._documents.get(document_id)
        if doc is None:
            return None
        updated = updater(doc)
        if updated is doc:
            return doc
        updated = replace(updated, last_modified=self.clock())
        self._documents[document_id] = updated
        return updated

    # --- session state ---

    def focused_node_id(self) -> str | None:
        """The focused node of the active document, falling back to its root."""
        doc = self.active
        if doc is None:
            return None
        return resolve_node_id(doc.store, doc.root_id, self._ui.focused_node_id)

    def set_focus(self, node_id: str, *, view: str | None = None) -> None:
        if view is not None:
            self.set_view(view)
        self._ui = replace(self._ui, focused_node_id=node_id)

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            msg = f"Unknown view {view!r}, expected one of {VIEWS!r}"
            raise ValueError(msg)
        self._ui = replace(self._ui, active_view=view)

    def expand(self, node_id: str) -> None:
        if node_id not in self._ui.expanded_node_ids:
            self._ui = replace(self._ui, expanded_node_ids=(*self._ui.expanded_node_ids, node_id))

    def toggle_expanded(self, node_id: str) -> bool:
        """Flip the expansion state of a node; returns the new state."""
        expanded = self._ui.expanded_node_ids
        if node_id in expanded:
            self._ui = replace(
                self._ui, expanded_node_ids=tuple(i for i in expanded if i != node_id)
            )
            return False
        self._ui = replace(self._ui, expanded_node_ids=(*expanded, node_id))
        return True

    def forget_nodes(self, node_ids: Iterable[str], *, fallback_id: str) -> None:
        """Drop references to deleted nodes from the session state."""
        removed = set(node_ids)
        focused = self._ui.focused_node_id
        self._ui = replace(
            self._ui,
            focused_node_id=fallback_id if focused in removed else focused,
            expanded_node_ids=tuple(i for i in self._ui.expanded_node_ids if i not in removed),
        )
