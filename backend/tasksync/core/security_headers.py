"""ASGI middleware that adds baseline browser security headers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send


class SecurityHeadersMiddleware:
    """Append configured security headers to HTTP responses.

    Blank values are skipped, and headers already set by a route are left alone.
    Non-HTTP scopes (websocket, lifespan) pass straight through.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        x_content_type_options: str = "",
        x_frame_options: str = "",
        referrer_policy: str = "",
        permissions_policy: str = "",
    ) -> None:
        self._app = app
        configured = (
            ("x-content-type-options", x_content_type_options),
            ("x-frame-options", x_frame_options),
            ("referrer-policy", referrer_policy),
            ("permissions-policy", permissions_policy),
        )
        self._headers = [
            (name.encode("latin-1"), value.strip().encode("latin-1"))
            for name, value in configured
            if value and value.strip()
        ]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._headers:
            await self._app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                present = {key.lower() for key, _value in headers}
                for name, value in self._headers:
                    if name not in present:
                        headers.append((name, value))
                message["headers"] = headers
            await send(message)

        await self._app(scope, receive, send_with_headers)
