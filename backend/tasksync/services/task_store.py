"""JSON file persistence for the task board."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from tasksync.core.logging import get_logger
from tasksync.services.sanitizer import sanitize_tasks

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tasksync.models.tasks import Task

logger = get_logger(__name__)

INITIAL_VERSION = 1


class TaskStoreError(RuntimeError):
    """Raised when the task file cannot be written."""


@dataclass(frozen=True)
class StoredBoard:
    """Version and canonical task list recovered from disk."""

    version: int
    tasks: list[Task] = field(default_factory=list)


def _coerce_version(value: object) -> int:
    # JSON writers may emit an integral version as `5.0`.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < INITIAL_VERSION:
        return INITIAL_VERSION
    return value


class TaskFileStore:
    """Owns the on-disk `{version, tasks}` document.

    Every write replaces the whole file: the document is written to a sibling
    temporary file and renamed over the target.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> StoredBoard:
        """Read, re-sanitize and re-persist the stored board.

        A missing file bootstraps an empty board; an unreadable or corrupt file
        is logged and replaced by an empty board at version 1. Failing to rewrite
        the file here is logged; the next accepted write surfaces the error.
        """
        if not self._path.exists():
            board = StoredBoard(version=INITIAL_VERSION)
            self._rewrite(board)
            logger.info("tasks.store.bootstrapped", extra={"path": str(self._path)})
            return board

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error(
                "tasks.store.load_failed",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return StoredBoard(version=INITIAL_VERSION)

        if not isinstance(raw, dict):
            logger.error(
                "tasks.store.load_failed",
                extra={"path": str(self._path), "error": "document is not an object"},
            )
            return StoredBoard(version=INITIAL_VERSION)

        board = StoredBoard(
            version=_coerce_version(raw.get("version")),
            tasks=sanitize_tasks(raw.get("tasks")),
        )
        # Rewrite so hand edits and older formats come back in canonical shape.
        self._rewrite(board)
        logger.info(
            "tasks.store.loaded",
            extra={"path": str(self._path), "version": board.version, "count": len(board.tasks)},
        )
        return board

    def _rewrite(self, board: StoredBoard) -> None:
        try:
            self.persist(board.version, board.tasks)
        except TaskStoreError as exc:
            logger.error(
                "tasks.store.rewrite_failed",
                extra={"path": str(self._path), "error": str(exc)},
            )

    def persist(self, version: int, tasks: Sequence[Task]) -> None:
        """Write the full document, creating the parent directory if needed."""
        document = {"version": version, "tasks": [task.to_wire() for task in tasks]}
        encoded = json.dumps(document, indent=2, ensure_ascii=False)
        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(encoded)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            msg = f"failed to write task file {self._path}: {exc}"
            raise TaskStoreError(msg) from exc
        logger.debug(
            "tasks.store.persisted",
            extra={"path": str(self._path), "version": version, "count": len(tasks)},
        )
