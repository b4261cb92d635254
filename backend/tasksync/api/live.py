"""WebSocket endpoint delivering live board updates."""

from __future__ import annotations

from fastapi import APIRouter, WebSocket, status

from tasksync.api.deps import BOARD_DEP
from tasksync.core.auth import resolve_auth_context
from tasksync.core.logging import get_logger
from tasksync.services.task_state import TaskBoardState

router = APIRouter(tags=["live"])
logger = get_logger(__name__)


@router.websocket("/ws")
async def live_updates(websocket: WebSocket, board: TaskBoardState = BOARD_DEP) -> None:
    """Send `init` on connect, then `set` on every accepted write.

    Inbound frames only answer liveness probes; their content is ignored.
    """
    if not resolve_auth_context(websocket).authenticated:
        logger.info("live.connection.rejected", extra={"reason": "unauthenticated"})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = await board.connect(websocket)
    broadcaster = board.broadcaster
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            broadcaster.mark_alive(connection)
    finally:
        broadcaster.unregister(connection)
