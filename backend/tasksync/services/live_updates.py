"""Fan-out of board changes to connected WebSocket clients.

Delivery is best-effort and at-most-once: connections that are not open are
skipped and slow ones are dropped. Nothing is retried. A periodic sweep probes
every connection and closes the ones that did not answer the previous probe.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal
from uuid import uuid4

from starlette.websockets import WebSocketDisconnect, WebSocketState

from tasksync.core.logging import get_logger

if TYPE_CHECKING:
    from starlette.websockets import WebSocket

    from tasksync.services.task_state import TaskSnapshot

logger = get_logger(__name__)

LiveEventType = Literal["init", "set"]
PROBE_MESSAGE = json.dumps({"type": "ping"})
CLOSE_CODE_UNRESPONSIVE = 1011
CLOSE_CODE_GOING_AWAY = 1001


def build_event(event_type: LiveEventType, snapshot: TaskSnapshot) -> dict[str, Any]:
    """Build an `init`/`set` message from a board snapshot."""
    return {
        "type": event_type,
        "version": snapshot.version,
        "tasks": [task.to_wire() for task in snapshot.tasks],
    }


@dataclass(eq=False)
class LiveConnection:
    """One accepted WebSocket plus its liveness flag."""

    websocket: WebSocket
    connection_id: str = field(default_factory=lambda: uuid4().hex[:12])
    is_alive: bool = True

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )


class LiveUpdateBroadcaster:
    """Registry of live connections with ordered fan-out and liveness sweep.

    `publish` snapshots the open connections and queues one delivery task per
    message. Deliveries run one at a time in publish order, and within a
    delivery every send runs concurrently under `send_timeout_seconds`; a
    client that does not take a frame in time is dropped and closed.
    """

    def __init__(
        self,
        *,
        probe_interval_seconds: float = 30.0,
        send_timeout_seconds: float = 5.0,
    ) -> None:
        self._connections: set[LiveConnection] = set()
        self._probe_interval_seconds = probe_interval_seconds
        self._send_timeout_seconds = send_timeout_seconds
        self._sweep_task: asyncio.Task[None] | None = None
        self._delivery_lock = asyncio.Lock()
        self._deliveries: set[asyncio.Task[int]] = set()

    @property
    def connections(self) -> frozenset[LiveConnection]:
        return frozenset(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    async def register(self, websocket: WebSocket, snapshot: TaskSnapshot) -> LiveConnection:
        """Track an accepted socket and send it the `init` snapshot."""
        connection = LiveConnection(websocket=websocket)
        self._connections.add(connection)
        logger.info(
            "live.connection.opened",
            extra={"connection_id": connection.connection_id, "open": len(self._connections)},
        )
        await self._send(connection, json.dumps(build_event("init", snapshot)))
        return connection

    def unregister(self, connection: LiveConnection) -> None:
        if connection in self._connections:
            self._connections.discard(connection)
            logger.info(
                "live.connection.closed",
                extra={"connection_id": connection.connection_id, "open": len(self._connections)},
            )

    def mark_alive(self, connection: LiveConnection) -> None:
        """Record an answer to the outstanding probe."""
        connection.is_alive = True

    def publish(self, message: dict[str, Any]) -> asyncio.Task[int]:
        """Queue `message` for every connection open right now.

        Returns the delivery task; awaiting it yields the delivery count.
        """
        encoded = json.dumps(message)
        targets = [connection for connection in self._connections if connection.is_open]
        delivery = asyncio.create_task(
            self._deliver(str(message.get("type")), encoded, targets),
            name="live-update-delivery",
        )
        self._deliveries.add(delivery)
        delivery.add_done_callback(self._deliveries.discard)
        return delivery

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send `message` to every open connection; returns the delivery count."""
        return await self.publish(message)

    async def sweep(self) -> None:
        """Close connections that missed the last probe and probe the rest."""
        probed: list[LiveConnection] = []
        for connection in list(self._connections):
            if not connection.is_alive:
                logger.info(
                    "live.connection.unresponsive",
                    extra={"connection_id": connection.connection_id},
                )
                await self._close(connection, CLOSE_CODE_UNRESPONSIVE)
                continue
            if not connection.is_open:
                continue
            connection.is_alive = False
            probed.append(connection)
        await asyncio.gather(*(self._send(connection, PROBE_MESSAGE) for connection in probed))

    async def run_sweeps(self) -> None:
        while True:
            await asyncio.sleep(self._probe_interval_seconds)
            await self.sweep()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self.run_sweeps(), name="live-update-sweep")

    async def stop(self) -> None:
        """Cancel the sweep, drain queued deliveries and close every connection."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        if self._deliveries:
            await asyncio.gather(*self._deliveries, return_exceptions=True)
        for connection in list(self._connections):
            await self._close(connection, CLOSE_CODE_GOING_AWAY)

    async def _deliver(self, event_type: str, encoded: str, targets: list[LiveConnection]) -> int:
        async with self._delivery_lock:
            # Targets dropped by an earlier delivery are skipped.
            live = [c for c in targets if c in self._connections and c.is_open]
            results = await asyncio.gather(*(self._send(c, encoded) for c in live))
        delivered = sum(results)
        logger.debug(
            "live.broadcast.sent",
            extra={"event_type": event_type, "delivered": delivered},
        )
        return delivered

    async def _send(self, connection: LiveConnection, encoded: str) -> bool:
        try:
            await asyncio.wait_for(
                connection.websocket.send_text(encoded),
                timeout=self._send_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "live.connection.send_timeout",
                extra={
                    "connection_id": connection.connection_id,
                    "timeout_seconds": self._send_timeout_seconds,
                },
            )
            await self._close(connection, CLOSE_CODE_UNRESPONSIVE)
            return False
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.info(
                "live.connection.send_failed",
                extra={"connection_id": connection.connection_id, "error": str(exc)},
            )
            self.unregister(connection)
            return False
        return True

    async def _close(self, connection: LiveConnection, code: int) -> None:
        self.unregister(connection)
        if not connection.is_open:
            return
        try:
            await asyncio.wait_for(
                connection.websocket.close(code=code),
                timeout=self._send_timeout_seconds,
            )
        except (TimeoutError, RuntimeError, OSError) as exc:
            logger.debug(
                "live.connection.close_failed",
                extra={"connection_id": connection.connection_id, "error": str(exc)},
            )
