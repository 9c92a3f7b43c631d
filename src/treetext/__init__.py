"""treetext: tree-structured documents with an optional LLM writing assistant."""

from treetext.api import GenerationApi
from treetext.core.registry.registry import DocumentRegistry
from treetext.core.tree.store import NodeStore
from treetext.core.workspace import Workspace
from treetext.errors import BackendFailure, StructuralViolation, TreetextError, ValidationFailure
from treetext.models.document import Document, UiState
from treetext.models.node import Node
from treetext.protocols import GenerationProtocol, StateStoreProtocol
from treetext.state_file import StateFile

__all__ = [
    "BackendFailure",
    "Document",
    "DocumentRegistry",
    "GenerationApi",
    "GenerationProtocol",
    "Node",
    "NodeStore",
    "StateFile",
    "StateStoreProtocol",
    "StructuralViolation",
    "TreetextError",
    "UiState",
    "ValidationFailure",
    "Workspace",
]
