"""Protocols for dependency injection in treetext."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class GenerationProtocol(Protocol):
    """Protocol for text-generation backends."""

    def chat(self, messages: list[dict[str, str]], *, json_object: bool = False) -> str:
        """Send a conversation and return the assistant's reply text."""
        ...


@runtime_checkable
class StateStoreProtocol(Protocol):
    """Protocol for where the persisted state lives."""

    def read(self) -> str | None:
        """Return the raw persisted state, or None if nothing is stored."""
        ...

    def write(self, data: dict[str, Any]) -> bool:
        """Persist ``data``; return True if anything changed."""
        ...

    def clear(self) -> None:
        """Delete everything that is stored."""
        ...
