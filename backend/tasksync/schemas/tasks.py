"""Task board read/write response schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from tasksync.models.tasks import Task

if TYPE_CHECKING:
    from tasksync.services.task_state import TaskSnapshot


class TaskBoardRead(BaseModel):
    """Full `{version, tasks}` board snapshot."""

    version: int = Field(ge=1, examples=[7])
    tasks: list[Task] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: TaskSnapshot) -> TaskBoardRead:
        return cls(version=snapshot.version, tasks=list(snapshot.tasks))


class SaveTasksResponse(BaseModel):
    """Acknowledgement of an accepted replace-all write."""

    ok: bool = Field(default=True, examples=[True])
    version: int = Field(ge=1, examples=[8])
