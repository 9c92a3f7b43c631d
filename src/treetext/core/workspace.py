"""Workspace: a document registry bound to its persisted state.

Every public method returns a JSON-serialisable dict, either
``{"success": True, ...}`` or ``{"success": False, "error": "..."}``, so the
CLI and the MCP server can hand results straight to the user. Successful
mutations are persisted immediately.
"""

import json
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from treetext.config import DEFAULT_SYSTEM_PROMPT, STATE_FILENAME
from treetext.core.assist.suggest import propose_node, suggest_content
from treetext.core.importer.batch import batch_import, read_text_files
from treetext.core.importer.json_codec import dumps_document
from treetext.core.registry.migration import dump_state, load_state
from treetext.core.registry.registry import DEFAULT_NEW_DOCUMENT_NAME, DocumentRegistry
from treetext.core.tree import editor
from treetext.core.tree.markdown import render_subtree_as_markdown
from treetext.core.tree.navigation import get_breadcrumbs, get_node_context, move_options
from treetext.core.tree.projector import flat_preview, full_text, outline
from treetext.core.tree.store import NodeStore
from treetext.errors import BackendFailure, StructuralViolation, ValidationFailure
from treetext.models.document import Document
from treetext.models.node import DIRECTIONS, Node, make_node_id, now_ms
from treetext.protocols import GenerationProtocol, StateStoreProtocol
from treetext.state_file import StateFile


def _error(message: str) -> dict[str, Any]:
    return {"success": False, "error": message}


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat()


def _with_store(document: Document, store: NodeStore) -> Document:
    if store is document.store:
        return document
    return replace(document, store=store)


def _node_summary(node: Node) -> dict[str, Any]:
    return {"id": node.id, "title": node.title, "child_count": len(node.children_ids)}


def export_filename(document: Document, fmt: str) -> str:
    """Default download name for an export (``My_Doc.md``, ``treetext-My_Doc.json``)."""
    stem = document.name.replace(" ", "_")
    if fmt == "json":
        return f"treetext-{stem}.json"
    return f"{stem or 'document'}.md"


class Workspace:
    """Registry plus persistence plus the caller-side policies around them."""

    def __init__(
        self,
        state_store: StateStoreProtocol,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.state_store = state_store
        self.clock = clock
        result = load_state(state_store.read(), clock=clock)
        self.load_source = result.source
        self.registry: DocumentRegistry = result.to_registry(clock=clock)
        recreated = self.ensure_document()
        if recreated or result.source != "current":
            self.save()

    @classmethod
    def open(cls, data_dir: Path, *, dry_run: bool = False) -> "Workspace":
        return cls(StateFile(data_dir / STATE_FILENAME, dry_run=dry_run))

    # --- persistence & policies ---

    def save(self) -> bool:
        return self.state_store.write(dump_state(self.registry))

    def ensure_document(self) -> bool:
        """Create a fresh document if the registry has none; True if one was made."""
        if len(self.registry) > 0:
            if self.registry.active is None:
                self.registry.select_active(None)
            return False
        self.registry.create_document(DEFAULT_NEW_DOCUMENT_NAME)
        return True

    def reset(self) -> dict[str, Any]:
        """Delete all stored data and start over with a default document."""
        self.state_store.clear()
        result = load_state(None, clock=self.clock)
        self.registry = result.to_registry(clock=self.clock)
        self.save()
        return {"success": True, "active_document_id": self.registry.ui.active_document_id}

    def _document(self, ref: str | None) -> Document | None:
        if ref is None:
            return self.registry.active
        return self.registry.resolve(ref)

    def _missing_document(self, ref: str | None) -> dict[str, Any]:
        if ref is None:
            return _error("No active document.")
        return _error(f"Document '{ref}' not found.")

    def _commit(self, doc: Document, updater: Callable[[Document], Document]) -> Document | None:
        updated = self.registry.update_document(doc.id, updater)
        if updated is not doc:
            self.save()
        return updated

    # --- documents ---

    def list_documents(self) -> dict[str, Any]:
        active_id = self.registry.ui.active_document_id
        docs = sorted(self.registry.documents, key=lambda d: d.last_modified, reverse=True)
        return {
            "documents": [
                {
                    "id": d.id,
                    "name": d.name,
                    "node_count": d.node_count,
                    "last_modified": _iso(d.last_modified),
                    "active": d.id == active_id,
                }
                for d in docs
            ],
            "count": len(docs),
            "active_document_id": active_id,
        }

    def create_document(self, name: str = DEFAULT_NEW_DOCUMENT_NAME) -> dict[str, Any]:
        name = name.strip() or DEFAULT_NEW_DOCUMENT_NAME
        doc = self.registry.create_document(name)
        self.save()
        return {"success": True, "document_id": doc.id, "root_id": doc.root_id, "name": doc.name}

    def select_document(self, ref: str) -> dict[str, Any]:
        doc = self.registry.resolve(ref)
        if doc is None:
            return self._missing_document(ref)
        self.registry.select_active(doc.id)
        self.save()
        return {"success": True, "document_id": doc.id, "name": doc.name}

    def delete_document(self, ref: str | None = None) -> dict[str, Any]:
        doc = self._document(ref)
        if doc is None:
            return self._missing_document(ref)
        self.registry.delete_document(doc.id)
        recreated = self.ensure_document()
        self.save()
        return {
            "success": True,
            "deleted": doc.id,
            "active_document_id": self.registry.ui.active_document_id,
            "recreated": recreated,
        }

    # --- reading ---

    def outline(self, document: str | None = None) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        return {
            "success": True,
            "document_id": doc.id,
            "name": doc.name,
            "outline": outline(doc.store, doc.root_id),
        }

    def read_node(
        self,
        node_id: str | None = None,
        *,
        document: str | None = None,
        max_depth: int | None = None,
        include_content: bool = True,
    ) -> dict[str, Any]:
        """Render a node's subtree as markdown (default: the focused node)."""
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        if node_id is None:
            node_id = self.registry.focused_node_id() if doc is self.registry.active else None
            node_id = node_id or doc.root_id
        node = doc.store.get(node_id)
        if node is None:
            return _error(f"Node '{node_id}' not found.")
        crumbs = get_breadcrumbs(doc.store, node_id)
        return {
            "success": True,
            "node_id": node.id,
            "title": node.title,
            "content": render_subtree_as_markdown(
                doc.store, node_id=node_id, max_depth=max_depth, include_content=include_content
            ),
            "breadcrumbs": " > ".join(c.title[:40] for c in crumbs),
        }

    def node_context(
        self,
        node_id: str,
        *,
        document: str | None = None,
        sibling_count: int = 3,
        child_limit: int = 20,
    ) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        ctx = get_node_context(doc, node_id, sibling_count=sibling_count, child_limit=child_limit)
        if ctx is None:
            return _error(f"Node '{node_id}' not found.")
        options = move_options(doc.store, node_id)
        return {
            "success": True,
            "node": {
                "id": ctx.node.id,
                "title": ctx.node.title,
                "content": ctx.node.content,
                "parent_id": ctx.node.parent_id,
                "child_count": len(ctx.node.children_ids),
            },
            "document": {"id": doc.id, "name": doc.name},
            "breadcrumbs": [{"id": b.node_id, "title": b.title} for b in ctx.breadcrumbs],
            "children": [_node_summary(c) for c in ctx.children],
            "siblings_before": [_node_summary(s) for s in ctx.siblings_before],
            "siblings_after": [_node_summary(s) for s in ctx.siblings_after],
            "can_move": {d: options.allows(d) for d in DIRECTIONS},
        }

    def preview(self, document: str | None = None) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        blocks = [{"node_id": b.node_id, "text": b.text} for b in flat_preview(doc.store, doc.root_id)]
        return {"success": True, "document_id": doc.id, "blocks": blocks}

    # --- editing ---

    def focus(self, node_id: str, *, view: str | None = None) -> dict[str, Any]:
        doc = self.registry.active
        if doc is None:
            return self._missing_document(None)
        if node_id not in doc.store:
            return _error(f"Node '{node_id}' not found.")
        try:
            self.registry.set_focus(node_id, view=view)
        except ValueError as e:
            return _error(str(e))
        self.save()
        return {"success": True, "node_id": node_id, "view": self.registry.ui.active_view}

    def toggle_expanded(self, node_id: str) -> dict[str, Any]:
        expanded = self.registry.toggle_expanded(node_id)
        self.save()
        return {"success": True, "node_id": node_id, "expanded": expanded}

    def add_node(
        self,
        parent_id: str | None = None,
        *,
        title: str = "Untitled",
        content: str | None = None,
        document: str | None = None,
    ) -> dict[str, Any]:
        """Append a new child node; the parent defaults to the focused node."""
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        if parent_id is None:
            parent_id = self.registry.focused_node_id() if doc is self.registry.active else None
            parent_id = parent_id or doc.root_id
        node = Node(
            id=make_node_id(),
            title=title,
            content=title if content is None else content,
            parent_id=parent_id,
        )
        return self._attach(doc, parent_id, node)

    def _attach(self, doc: Document, parent_id: str, node: Node) -> dict[str, Any]:
        if parent_id not in doc.store:
            return _error(f"Parent node '{parent_id}' not found.")
        try:
            self.registry.update_document(
                doc.id, lambda d: _with_store(d, editor.create_node(d.store, parent_id, node))
            )
        except StructuralViolation as e:
            return _error(str(e))
        if doc.id == self.registry.ui.active_document_id:
            self.registry.set_focus(node.id)
            self.registry.expand(parent_id)
        self.save()
        logger.info("Created node {!r} under {}", node.title, parent_id)
        return {"success": True, "node_id": node.id, "title": node.title, "parent_id": parent_id}

    def rename_node(self, node_id: str, title: str, *, document: str | None = None) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        if node_id not in doc.store:
            return _error(f"Node '{node_id}' not found.")
        if not title.strip():
            return _error("Title must not be empty.")
        updated = self._commit(doc, lambda d: editor.rename_in_document(d, node_id, title))
        return {"success": True, "node_id": node_id, "document_name": updated.name if updated else None}

    def edit_node(self, node_id: str, content: str, *, document: str | None = None) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        if node_id not in doc.store:
            return _error(f"Node '{node_id}' not found.")
        self._commit(doc, lambda d: _with_store(d, editor.set_content(d.store, node_id, content)))
        return {"success": True, "node_id": node_id}

    def delete_node(self, node_id: str, *, document: str | None = None) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        node = doc.store.get(node_id)
        if node is None:
            return _error(f"Node '{node_id}' not found.")
        try:
            store, removed = editor.delete_subtree(doc.store, doc.root_id, node_id)
        except StructuralViolation as e:
            logger.warning("{}", e)
            return _error(str(e))

        self.registry.update_document(doc.id, lambda d: _with_store(d, store))
        if doc.id == self.registry.ui.active_document_id:
            self.registry.forget_nodes(removed, fallback_id=node.parent_id or doc.root_id)
        self.save()
        logger.info("Deleted {!r} and {} descendant(s)", node.title, len(removed) - 1)
        return {"success": True, "node_id": node_id, "removed": len(removed)}

    def move_node(
        self, node_id: str, direction: str, *, document: str | None = None
    ) -> dict[str, Any]:
        if direction not in DIRECTIONS:
            return _error(f"Unknown direction '{direction}', expected one of {', '.join(DIRECTIONS)}.")
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        if node_id not in doc.store:
            return _error(f"Node '{node_id}' not found.")
        updated = self._commit(
            doc, lambda d: _with_store(d, editor.move(d.store, node_id, direction))  # type: ignore[arg-type]
        )
        moved = updated is not doc
        node = updated.store.get(node_id) if updated else None
        return {
            "success": True,
            "node_id": node_id,
            "moved": moved,
            "parent_id": node.parent_id if node else None,
        }

    def batch_import(
        self,
        paths: Sequence[Path],
        *,
        parent_id: str | None = None,
        document: str | None = None,
    ) -> dict[str, Any]:
        """Add one child node per text file under ``parent_id`` (default: focused node)."""
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        if parent_id is None:
            parent_id = self.registry.focused_node_id() if doc is self.registry.active else None
            if parent_id is None:
                return _error("Please select a node to add files to.")
        try:
            files = read_text_files(paths)
            store, nodes = batch_import(doc.store, parent_id, files)
        except (ValidationFailure, StructuralViolation) as e:
            return _error(str(e))
        self.registry.update_document(doc.id, lambda d: _with_store(d, store))
        self.save()
        parent = store.get(parent_id)
        logger.info("Added {} file(s) under {!r}", len(nodes), parent.title if parent else parent_id)
        return {"success": True, "parent_id": parent_id, "node_ids": [n.id for n in nodes]}

    # --- import / export ---

    def import_json(self, text: str | bytes) -> dict[str, Any]:
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return _error(f"Import failed: not valid JSON ({e})")
        try:
            doc = self.registry.import_document(payload)
        except ValidationFailure as e:
            logger.warning("Import rejected: {}", e)
            return _error(f"Import failed: {e}")
        self.save()
        return {"success": True, "document_id": doc.id, "name": doc.name, "node_count": doc.node_count}

    def export_json(self, document: str | None = None) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        return {"success": True, "filename": export_filename(doc, "json"), "data": dumps_document(doc)}

    def export_markdown(self, document: str | None = None) -> dict[str, Any]:
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        return {
            "success": True,
            "filename": export_filename(doc, "markdown"),
            "data": full_text(doc.store, doc.root_id),
        }

    # --- generation ---

    def suggest_content(
        self,
        api: GenerationProtocol,
        node_id: str,
        prompt: str,
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        document: str | None = None,
    ) -> dict[str, Any]:
        """Ask the backend for new content for a node without applying it."""
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        node = doc.store.get(node_id)
        if node is None:
            return _error(f"Node '{node_id}' not found.")
        try:
            suggestion = suggest_content(
                api,
                node,
                prompt,
                outline=outline(doc.store, doc.root_id),
                system_prompt=system_prompt,
            )
        except (ValueError, BackendFailure) as e:
            return _error(str(e))
        return {"success": True, "node_id": node_id, "original": node.content, "suggestion": suggestion}

    def apply_suggestion(
        self, node_id: str, suggestion: str, *, document: str | None = None
    ) -> dict[str, Any]:
        """Replace a node's content with an accepted suggestion."""
        result = self.edit_node(node_id, suggestion, document=document)
        if result["success"]:
            logger.info("Applied suggestion to {}", node_id)
        return result

    def smart_add_node(
        self,
        api: GenerationProtocol,
        intent: str,
        *,
        parent_id: str | None = None,
        document: str | None = None,
    ) -> dict[str, Any]:
        """Let the backend propose a title and content, then attach the node."""
        doc = self._document(document)
        if doc is None:
            return self._missing_document(document)
        if parent_id is None:
            parent_id = self.registry.focused_node_id() if doc is self.registry.active else None
            parent_id = parent_id or doc.root_id
        try:
            node = propose_node(api, parent_id, intent)
        except (ValueError, BackendFailure) as e:
            return _error(str(e))
        # The document may have changed while waiting for the backend.
        current = self.registry.get(doc.id)
        if current is None:
            return _error(f"Document '{doc.name}' no longer exists.")
        return self._attach(current, parent_id, node)
