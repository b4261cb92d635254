"""Session authentication status schema."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthStatusResponse(BaseModel):
    """Whether the caller's session is logged in, and as whom."""

    authenticated: bool = Field(examples=[True])
    username: str | None = Field(default=None, examples=["admin"])
