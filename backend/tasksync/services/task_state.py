"""In-memory owner of the board version and canonical task list."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tasksync.core.logging import get_logger
from tasksync.services.live_updates import build_event
from tasksync.services.sanitizer import sanitize_tasks

if TYPE_CHECKING:
    from starlette.websockets import WebSocket

    from tasksync.models.tasks import Task
    from tasksync.services.live_updates import LiveConnection, LiveUpdateBroadcaster
    from tasksync.services.task_store import TaskFileStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaskSnapshot:
    """Immutable `{version, tasks}` pair handed to readers."""

    version: int
    tasks: tuple[Task, ...]


class TaskBoardState:
    """Single writer for the board.

    `replace_all` is the only mutation. It sanitizes, persists the next version
    and swaps in the new snapshot while holding a lock, so readers and new
    connections never observe a version that is not on disk. The `set` delivery
    is queued before the lock is released, which keeps deliveries in version
    order, and awaited after it, so a slow client never holds up later writes.
    Connection registration takes the same lock so a new client cannot miss a
    `set` that lands between its snapshot and its registration.

    The snapshot is replaced in a single assignment; readers running on worker
    threads always see a consistent `{version, tasks}` pair.
    """

    def __init__(
        self,
        *,
        store: TaskFileStore,
        broadcaster: LiveUpdateBroadcaster,
        version: int,
        tasks: list[Task] | tuple[Task, ...],
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._snapshot = TaskSnapshot(version=version, tasks=tuple(tasks))
        self._lock = asyncio.Lock()

    @classmethod
    def from_store(cls, store: TaskFileStore, broadcaster: LiveUpdateBroadcaster) -> TaskBoardState:
        board = store.load()
        return cls(store=store, broadcaster=broadcaster, version=board.version, tasks=board.tasks)

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def broadcaster(self) -> LiveUpdateBroadcaster:
        return self._broadcaster

    def snapshot(self) -> TaskSnapshot:
        return self._snapshot

    async def replace_all(self, raw_tasks: list[object]) -> TaskSnapshot:
        """Install a new full task list and return the committed snapshot.

        Raises `TaskStoreError` when the file cannot be written; in that case the
        in-memory board is left unchanged and nothing is broadcast.
        """
        async with self._lock:
            tasks = tuple(sanitize_tasks(raw_tasks))
            snapshot = TaskSnapshot(version=self._snapshot.version + 1, tasks=tasks)
            await asyncio.to_thread(self._store.persist, snapshot.version, tasks)
            self._snapshot = snapshot
            logger.info(
                "tasks.board.replaced",
                extra={
                    "version": snapshot.version,
                    "count": len(tasks),
                    "dropped": len(raw_tasks) - len(tasks),
                },
            )
            delivery = self._broadcaster.publish(build_event("set", snapshot))
        # A cancelled request must not cut delivery to other clients.
        await asyncio.shield(delivery)
        return snapshot

    async def connect(self, websocket: WebSocket) -> LiveConnection:
        """Register an accepted socket and send it the current snapshot."""
        async with self._lock:
            return await self._broadcaster.register(websocket, self.snapshot())
