"""Persisted state layout and migration to the current schema.

The state file is a JSON object of storage keys. Versions:

- V1: one document under ``treetext_document`` (``{rootId, nodes}``) with its
  UI state under ``treetext_ui_state``.
- interim: a list of documents under ``treetext_documents``.
- V2 (current): documents keyed by id under ``treetext_documents_v2`` and UI
  state under ``treetext_ui_state_v2``.

Migration runs once at load time and only moves forward. Whatever is found,
``load_state`` returns at least one document and an active document id that
resolves.
"""

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from loguru import logger

from treetext.core.importer.json_codec import document_from_json, document_to_json, store_from_pairs
from treetext.core.registry.registry import DocumentRegistry, new_document
from treetext.core.tree.store import check_invariants
from treetext.errors import ValidationFailure
from treetext.models.document import VIEWS, Document, UiState
from treetext.models.node import make_document_id, now_ms

SCHEMA_VERSION = 2

DOCUMENTS_KEY = "treetext_documents_v2"
UI_STATE_KEY = "treetext_ui_state_v2"
INTERIM_DOCUMENTS_KEY = "treetext_documents"
LEGACY_DOCUMENT_KEY = "treetext_document"
LEGACY_UI_STATE_KEY = "treetext_ui_state"

DEFAULT_DOCUMENT_NAME = "My First Document"

LoadSource = Literal["current", "interim", "legacy", "default"]


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading persisted state."""

    documents: tuple[Document, ...]
    ui: UiState
    source: LoadSource
    skipped: tuple[str, ...] = field(default=())

    def to_registry(self, *, clock: Callable[[], int] = now_ms) -> DocumentRegistry:
        return DocumentRegistry(self.documents, self.ui, clock=clock)


def get_schema_version(state: Mapping[str, Any]) -> int | None:
    """Return the schema version found in ``state``, or None if there is no data."""
    if DOCUMENTS_KEY in state or INTERIM_DOCUMENTS_KEY in state:
        return SCHEMA_VERSION
    if LEGACY_DOCUMENT_KEY in state:
        return 1
    return None


def _decode(raw: bytes | str | Mapping[str, Any] | None) -> dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not raw.strip():
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        msg = "Persisted state must be a JSON object"
        raise ValidationFailure(msg)
    return data


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _id_list(value: Any) -> tuple[str, ...] | None:
    """Distinct string ids from a stored list; None if ``value`` is not a list."""
    if not isinstance(value, list):
        return None
    return tuple(dict.fromkeys(i for i in value if isinstance(i, str)))


def _parse_ui(raw: Any) -> UiState | None:
    if not isinstance(raw, dict):
        return None
    view = raw.get("activeView", raw.get("activeTab", "outline"))
    return UiState(
        active_document_id=_str_or_none(raw.get("activeDocumentId")),
        focused_node_id=_str_or_none(raw.get("focusedNodeId")),
        expanded_node_ids=_id_list(raw.get("expandedNodeIds")) or (),
        active_view=view if isinstance(view, str) and view in VIEWS else "outline",
    )


def _parse_documents(raw: Any) -> tuple[list[Document], list[str]]:
    """Parse a document collection, skipping entries that fail validation."""
    if isinstance(raw, dict):
        entries = list(raw.values())
    elif isinstance(raw, list):
        entries = raw
    else:
        return [], ["document collection is neither an object nor a list"]

    docs: list[Document] = []
    skipped: list[str] = []
    for entry in entries:
        try:
            doc = document_from_json(entry)
        except ValidationFailure as e:
            skipped.append(str(e))
            continue
        if doc.root is None:
            skipped.append(f"document {doc.id!r} has no resolvable root")
            continue
        for problem in check_invariants(doc.store, doc.root_id):
            logger.warning("Document {}: {}", doc.id, problem)
        docs.append(doc)
    return docs, skipped


def default_state(*, now: int, document_id: str | None = None) -> tuple[Document, UiState]:
    """A fresh single-node document and a UI state focused on its root."""
    doc = new_document(DEFAULT_DOCUMENT_NAME, now=now, document_id=document_id, root_id="root")
    ui = UiState(
        active_document_id=doc.id,
        focused_node_id=doc.root_id,
        expanded_node_ids=(doc.root_id,),
        active_view="outline",
    )
    return doc, ui


def migrate_v1_to_v2(
    legacy_doc: Any,
    legacy_ui: Any,
    *,
    now: int,
    document_id: str | None = None,
) -> tuple[Document, UiState]:
    """Wrap a legacy single document as a member of the current collection.

    The legacy root id is kept; the document gets a fresh id and is named
    after its root title. Unusable legacy data yields the default document.
    """
    document_id = document_id or make_document_id()
    if not isinstance(legacy_doc, dict) or not isinstance(legacy_doc.get("rootId"), str):
        logger.warning("Legacy document has no rootId, starting fresh")
        return default_state(now=now, document_id=document_id)
    pairs = legacy_doc.get("nodes", legacy_doc.get("docMap"))
    try:
        store = store_from_pairs(pairs)
    except ValidationFailure as e:
        logger.warning("Legacy document unreadable ({}), starting fresh", e)
        return default_state(now=now, document_id=document_id)

    root_id = legacy_doc["rootId"]
    root = store.get(root_id)
    if root is None:
        logger.warning("Legacy root {} not found, starting fresh", root_id)
        return default_state(now=now, document_id=document_id)
    doc = Document(
        id=document_id,
        name=root.title or DEFAULT_DOCUMENT_NAME,
        store=store,
        root_id=root_id,
        last_modified=now,
    )

    old_ui = legacy_ui if isinstance(legacy_ui, dict) else {}
    ui = UiState(
        active_document_id=document_id,
        focused_node_id=_str_or_none(old_ui.get("focusedNodeId")) or root_id,
        expanded_node_ids=_id_list(old_ui.get("expandedNodeIds")) or (root_id,),
        active_view="outline",
    )
    return doc, ui


def _reconcile_ui(ui: UiState | None, documents: list[Document]) -> UiState:
    """Make sure the active document id resolves to a member of ``documents``."""
    by_id = {d.id: d for d in documents}
    if ui is not None and ui.active_document_id in by_id:
        return ui
    if ui is None:
        doc = documents[0]
        return UiState(
            active_document_id=doc.id,
            focused_node_id=doc.root_id,
            expanded_node_ids=(doc.root_id,),
        )
    doc = max(documents, key=lambda d: d.last_modified)
    return UiState(
        active_document_id=doc.id,
        focused_node_id=doc.root_id,
        expanded_node_ids=(doc.root_id,),
        active_view=ui.active_view,
    )


def load_state(
    raw: bytes | str | Mapping[str, Any] | None,
    *,
    clock: Callable[[], int] = now_ms,
) -> LoadResult:
    """Load persisted state, migrating older layouts to the current schema.

    Tries, in order: the current collection, the interim collection, the
    legacy single document, and finally a fresh default document.
    """
    try:
        state = _decode(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationFailure) as e:
        logger.warning("Persisted state unreadable ({}), starting fresh", e)
        state = {}

    ui = _parse_ui(state.get(UI_STATE_KEY))
    skipped: list[str] = []

    for key, source in ((DOCUMENTS_KEY, "current"), (INTERIM_DOCUMENTS_KEY, "interim")):
        if key not in state:
            continue
        docs, bad = _parse_documents(state[key])
        skipped.extend(bad)
        for reason in bad:
            logger.warning("Skipping stored document: {}", reason)
        if docs:
            logger.debug("Loaded {} document(s) from {}", len(docs), key)
            return LoadResult(tuple(docs), _reconcile_ui(ui, docs), source, tuple(skipped))

    now = clock()
    if LEGACY_DOCUMENT_KEY in state:
        logger.info("Migrating legacy single-document state")
        doc, legacy_ui = migrate_v1_to_v2(
            state[LEGACY_DOCUMENT_KEY], state.get(LEGACY_UI_STATE_KEY), now=now
        )
        return LoadResult((doc,), legacy_ui, "legacy", tuple(skipped))

    doc, default_ui = default_state(now=now)
    logger.debug("No stored documents, created default document {}", doc.id)
    return LoadResult((doc,), default_ui, "default", tuple(skipped))


def ui_to_json(ui: UiState) -> dict[str, Any]:
    return {
        "activeDocumentId": ui.active_document_id,
        "focusedNodeId": ui.focused_node_id,
        "expandedNodeIds": list(ui.expanded_node_ids),
        "activeView": ui.active_view,
    }


def dump_state(registry: DocumentRegistry) -> dict[str, Any]:
    """Serialise a registry in the current schema (legacy keys are never written)."""
    return {
        DOCUMENTS_KEY: {d.id: document_to_json(d) for d in registry.documents},
        UI_STATE_KEY: ui_to_json(registry.ui),
    }
