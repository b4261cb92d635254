"""Shared-credential session authentication helpers."""

from __future__ import annotations

from dataclasses import dataclass
from hmac import compare_digest
from typing import TYPE_CHECKING, Any

from fastapi import HTTPException, Request, status

from tasksync.core.logging import get_logger

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from tasksync.core.config import Settings

logger = get_logger(__name__)

SESSION_AUTHENTICATED_KEY = "authenticated"
SESSION_USERNAME_KEY = "username"


@dataclass
class AuthContext:
    """Resolved caller identity for a request or WebSocket."""

    authenticated: bool
    username: str | None = None


def get_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def _session(connection: HTTPConnection) -> dict[str, Any]:
    # SessionMiddleware is only installed when session auth is enabled.
    if "session" not in connection.scope:
        return {}
    return connection.session


def verify_credentials(settings: Settings, username: str, password: str) -> bool:
    """Compare both values in constant time; never reveal which one failed."""
    username_ok = compare_digest(username.encode("utf-8"), settings.username.encode("utf-8"))
    password_ok = compare_digest(password.encode("utf-8"), settings.password.encode("utf-8"))
    return username_ok and password_ok


def resolve_auth_context(connection: HTTPConnection) -> AuthContext:
    """Return the caller's auth context; always authenticated when auth is disabled."""
    if not get_settings(connection).auth_enabled:
        return AuthContext(authenticated=True)
    session = _session(connection)
    if session.get(SESSION_AUTHENTICATED_KEY) is True:
        username = session.get(SESSION_USERNAME_KEY)
        return AuthContext(
            authenticated=True,
            username=username if isinstance(username, str) else None,
        )
    return AuthContext(authenticated=False)


def get_auth_context_optional(request: Request) -> AuthContext:
    """Resolve the auth context without rejecting anonymous callers."""
    return resolve_auth_context(request)


def get_auth_context(request: Request) -> AuthContext:
    """Resolve the auth context and reject unauthenticated callers with 401."""
    auth = resolve_auth_context(request)
    if not auth.authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return auth


def login_session(request: Request, username: str) -> None:
    session = request.session
    session.clear()
    session[SESSION_AUTHENTICATED_KEY] = True
    session[SESSION_USERNAME_KEY] = username
    logger.info("auth.session.login", extra={"username": username})


def logout_session(request: Request) -> None:
    if "session" not in request.scope:
        return
    username = request.session.get(SESSION_USERNAME_KEY)
    request.session.clear()
    logger.info("auth.session.logout", extra={"username": username})
