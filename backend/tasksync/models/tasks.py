"""Canonical task record as stored on disk and sent to clients."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TaskMode = Literal["manual", "time"]

DEFAULT_PRIMARY_COLOR = "#00f6a9"
DEFAULT_SECONDARY_COLOR = "#00a7ff"
TITLE_MAX_LENGTH = 200
DESC_MAX_LENGTH = 2000


class Task(BaseModel):
    """One tracked unit of work, always produced by the task sanitizer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = Field(default="", max_length=TITLE_MAX_LENGTH)
    desc: str = Field(default="", max_length=DESC_MAX_LENGTH)
    mode: TaskMode = "manual"
    percent: int = Field(default=0, ge=0, le=100)
    start: str | None = None
    end: str | None = None
    c1: str = DEFAULT_PRIMARY_COLOR
    c2: str = DEFAULT_SECONDARY_COLOR
    focused: bool = False
    created_at: int = Field(alias="createdAt", gt=0)
    updated_at: int = Field(alias="updatedAt", gt=0)

    def to_wire(self) -> dict[str, object]:
        """Serialize with the camelCase keys used on disk and over the wire."""
        return self.model_dump(mode="json", by_alias=True)
