"""Task board read and replace-all endpoints."""

from __future__ import annotations

import json

from fastapi import APIRouter, HTTPException, Request, Response, status

from tasksync.api.deps import AUTH_DEP, BOARD_DEP
from tasksync.core.auth import AuthContext
from tasksync.schemas.errors import ErrorResponse
from tasksync.schemas.tasks import SaveTasksResponse, TaskBoardRead
from tasksync.services.task_state import TaskBoardState

router = APIRouter(prefix="/api", tags=["tasks"])
_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_401_UNAUTHORIZED: {
        "model": ErrorResponse,
        "description": "Caller has no authenticated session.",
    },
}


async def _read_json_body(request: Request) -> object:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


@router.get(
    "/tasks",
    response_model=TaskBoardRead,
    summary="Read Task Board",
    description="Return the current `{version, tasks}` snapshot. Never cached.",
    responses=_ERROR_RESPONSES,
)
def read_tasks(
    response: Response,
    board: TaskBoardState = BOARD_DEP,
    _auth: AuthContext = AUTH_DEP,
) -> TaskBoardRead:
    """Return the full board snapshot."""
    response.headers["Cache-Control"] = "no-store"
    return TaskBoardRead.from_snapshot(board.snapshot())


@router.post(
    "/save",
    response_model=SaveTasksResponse,
    summary="Replace Task Board",
    description=(
        "Replace the whole task list with `tasks`. An empty list clears the board. "
        "Elements without a string `id` are dropped; other fields fall back to defaults."
    ),
    responses={
        **_ERROR_RESPONSES,
        status.HTTP_400_BAD_REQUEST: {
            "model": ErrorResponse,
            "description": "`tasks` is missing or not a list; nothing was changed.",
        },
    },
)
async def save_tasks(
    request: Request,
    board: TaskBoardState = BOARD_DEP,
    _auth: AuthContext = AUTH_DEP,
) -> SaveTasksResponse:
    """Sanitize, version, persist and broadcast a new task list."""
    payload = await _read_json_body(request)
    raw_tasks = payload.get("tasks") if isinstance(payload, dict) else None
    if not isinstance(raw_tasks, list):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid tasks payload",
        )
    snapshot = await board.replace_all(raw_tasks)
    return SaveTasksResponse(ok=True, version=snapshot.version)
