# ruff: noqa: INP001
"""Lightweight test doubles shared by live-update tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from starlette.websockets import WebSocketState


class FakeWebSocket:
    """Records sent frames and close codes; optionally fails or hangs on send."""

    def __init__(
        self,
        *,
        connected: bool = True,
        fail_send: bool = False,
        stall_send: bool = False,
    ) -> None:
        state = WebSocketState.CONNECTED if connected else WebSocketState.DISCONNECTED
        self.client_state = state
        self.application_state = state
        self.fail_send = fail_send
        self.stall_send = stall_send
        self.send_stalled = asyncio.Event()
        self.sent: list[dict[str, Any]] = []
        self.close_codes: list[int] = []

    async def send_text(self, data: str) -> None:
        if self.fail_send:
            raise RuntimeError("connection reset")
        if self.stall_send:
            self.send_stalled.set()
            await asyncio.Event().wait()
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.close_codes.append(code)
        self.application_state = WebSocketState.DISCONNECTED

    def messages_of(self, event_type: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message.get("type") == event_type]
