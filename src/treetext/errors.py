"""Error taxonomy for treetext."""


class TreetextError(Exception):
    """Base class for all errors reported by treetext."""


class StructuralViolation(TreetextError, ValueError):
    """An operation would break a tree invariant (e.g. deleting the root)."""


class ValidationFailure(TreetextError, ValueError):
    """An imported or persisted payload is missing fields or is malformed."""


class BackendFailure(TreetextError, RuntimeError):
    """The generation backend returned an error or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
