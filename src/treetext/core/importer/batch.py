"""Batch import of plain text files as child nodes."""

import re
from collections.abc import Iterable, Sequence
from pathlib import Path

from loguru import logger

from treetext.core.tree.editor import add_children
from treetext.core.tree.store import NodeStore
from treetext.errors import StructuralViolation, ValidationFailure
from treetext.models.node import Node, make_node_id

_EXTENSION = re.compile(r"\.[^/.]+$")


def title_from_filename(name: str) -> str:
    """Strip the last extension: ``notes.md`` -> ``notes``, ``.bashrc`` -> ``""``."""
    return _EXTENSION.sub("", name)


def nodes_from_files(files: Iterable[tuple[str, str]], *, parent_id: str) -> list[Node]:
    return [
        Node(
            id=make_node_id(),
            title=title_from_filename(name),
            content=text,
            parent_id=parent_id,
        )
        for name, text in files
    ]


def batch_import(
    store: NodeStore, parent_id: str, files: Sequence[tuple[str, str]]
) -> tuple[NodeStore, list[Node]]:
    """Append one child node per ``(name, text)`` pair under ``parent_id``.

    Returns the new store and the created nodes. Nothing is applied if the
    parent does not exist.
    """
    if parent_id not in store:
        msg = "Could not find the selected parent node."
        raise StructuralViolation(msg)
    nodes = nodes_from_files(files, parent_id=parent_id)
    return add_children(store, parent_id, nodes), nodes


def read_text_files(paths: Iterable[Path]) -> list[tuple[str, str]]:
    """Read each path as UTF-8 text; any unreadable file aborts the batch."""
    files: list[tuple[str, str]] = []
    for path in paths:
        try:
            files.append((path.name, path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Could not read file: {path.name} ({e})"
            raise ValidationFailure(msg) from e
        logger.debug("Read {} ({} chars)", path.name, len(files[-1][1]))
    return files
