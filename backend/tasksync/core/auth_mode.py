"""Shared auth-mode enum values."""

from __future__ import annotations

from enum import Enum


class AuthMode(str, Enum):
    """Supported access modes for the task API."""

    SESSION = "session"
    DISABLED = "disabled"
