"""JSON state file that only touches the disk when its contents change."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from loguru import logger


class StateFile:
    """Read and write the persisted state of a workspace.

    - Do not rewrite the file if the serialised contents are the same.
    - Write through a temporary file in the same directory and rename it into
      place, so a crash never leaves a half-written state file behind.
    """

    def __init__(self, path: str | Path, *, dry_run: bool = False) -> None:
        self.path = Path(path).expanduser().resolve()
        self.dry_run = dry_run
        logger.debug("State file ready, path {!r}, dry_run {!r}", str(self.path), dry_run)

    def read(self) -> str | None:
        """Return the raw file contents, or None if the file does not exist."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, data: dict[str, Any]) -> bool:
        """Serialise ``data`` to the state file.

        Returns:
            True if the file was created or updated, False if unchanged.
        """
        contents = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        existing = self.read()
        if existing == contents:
            return False
        action = "create" if existing is None else "update"

        if self.dry_run:
            logger.info("dry-run: would {} {!r}", action, str(self.path))
            return True

        logger.debug("Writing ({}) {!r}", action, str(self.path))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
            Path(tmp_name).replace(self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return True

    def clear(self) -> None:
        """Remove the state file (all documents are lost)."""
        if self.dry_run:
            logger.info("dry-run: would remove {!r}", str(self.path))
            return
        self.path.unlink(missing_ok=True)
        logger.info("Removed {!r}", str(self.path))
