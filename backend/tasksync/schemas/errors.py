"""Structured error payload schemas used by API responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope produced by the installed exception handlers."""

    detail: str | dict[str, object] | list[object] = Field(
        description="Human-readable message or validation error list.",
        examples=["Invalid tasks payload", "Not authenticated"],
    )
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
