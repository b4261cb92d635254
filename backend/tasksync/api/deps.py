"""Reusable FastAPI dependencies for auth and board access."""

from __future__ import annotations

from fastapi import Depends
from starlette.requests import HTTPConnection

from tasksync.core.auth import get_auth_context, get_auth_context_optional
from tasksync.services.task_state import TaskBoardState

AUTH_DEP = Depends(get_auth_context)
AUTH_OPTIONAL_DEP = Depends(get_auth_context_optional)


def get_task_board(connection: HTTPConnection) -> TaskBoardState:
    """Return the board state owned by the running application."""
    return connection.app.state.task_board


BOARD_DEP = Depends(get_task_board)
