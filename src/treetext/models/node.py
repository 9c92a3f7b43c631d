"""Domain models for treetext document trees."""

import time
import uuid
from dataclasses import dataclass
from typing import Literal

Direction = Literal["up", "down", "left", "right"]

DIRECTIONS: tuple[Direction, ...] = ("up", "down", "left", "right")


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def make_node_id() -> str:
    return f"node-{uuid.uuid4().hex[:12]}"


def make_document_id() -> str:
    return f"doc-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Node:
    """A single content-bearing unit of a document tree."""

    id: str
    title: str
    content: str
    parent_id: str | None
    children_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Breadcrumb:
    """A single ancestor in a breadcrumb trail."""

    node_id: str
    title: str
    depth: int


@dataclass(frozen=True)
class PreviewBlock:
    """One rendered block of the preview, mapped back to its source node."""

    node_id: str
    text: str


@dataclass(frozen=True)
class MoveOptions:
    """Which move directions are currently legal for a node."""

    up: bool = False
    down: bool = False
    left: bool = False
    right: bool = False

    def allows(self, direction: Direction) -> bool:
        return bool(getattr(self, direction))
