"""Session login, logout, and status endpoints."""

from __future__ import annotations

from html import escape

from fastapi import APIRouter, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from tasksync.api.deps import AUTH_OPTIONAL_DEP
from tasksync.core.auth import (
    AuthContext,
    get_settings,
    login_session,
    logout_session,
    verify_credentials,
)
from tasksync.core.logging import get_logger
from tasksync.schemas.auth import AuthStatusResponse

router = APIRouter(tags=["auth"])
session_router = APIRouter(tags=["auth"])
logger = get_logger(__name__)
USERNAME_FORM = Form(default="")
PASSWORD_FORM = Form(default="")

_LOGIN_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - Login</title>
  <style>
    body {{ font-family: Arial, sans-serif; display: flex; justify-content: center;
      align-items: center; height: 100vh; margin: 0;
      background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); }}
    .login-box {{ background: white; padding: 2rem; border-radius: 10px;
      box-shadow: 0 10px 25px rgba(0,0,0,0.2); width: 300px; }}
    h1 {{ margin-top: 0; color: #333; text-align: center; }}
    input {{ width: 100%; padding: 10px; margin: 10px 0; border: 1px solid #ddd;
      border-radius: 5px; box-sizing: border-box; }}
    button {{ width: 100%; padding: 10px; background: #667eea; color: white; border: none;
      border-radius: 5px; cursor: pointer; font-size: 16px; }}
    .error {{ color: red; font-size: 14px; margin-top: 10px; text-align: center; }}
  </style>
</head>
<body>
  <div class="login-box">
    <h1>{title}</h1>
    <form action="/login" method="POST">
      <input type="text" name="username" placeholder="Username" required autofocus>
      <input type="password" name="password" placeholder="Password" required>
      <button type="submit">Sign in</button>
    </form>
    {error}
  </div>
</body>
</html>
"""
_LOGIN_ERROR = '<div class="error">Incorrect username or password</div>'


@router.get(
    "/api/auth/status",
    response_model=AuthStatusResponse,
    summary="Session Status",
    description="Report whether the caller's session is authenticated.",
)
def auth_status(auth: AuthContext = AUTH_OPTIONAL_DEP) -> AuthStatusResponse:
    """Return the caller's session state without requiring login."""
    return AuthStatusResponse(authenticated=auth.authenticated, username=auth.username)


@session_router.get("/login", response_class=HTMLResponse, response_model=None)
def login_page(
    request: Request,
    auth: AuthContext = AUTH_OPTIONAL_DEP,
) -> HTMLResponse | RedirectResponse:
    """Render the login form, or go home when already signed in."""
    if auth.authenticated:
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    show_error = bool(request.query_params.get("error"))
    return HTMLResponse(
        _LOGIN_PAGE.format(
            title=escape(request.app.title),
            error=_LOGIN_ERROR if show_error else "",
        ),
    )


@session_router.post("/login")
def login(
    request: Request,
    username: str = USERNAME_FORM,
    password: str = PASSWORD_FORM,
) -> RedirectResponse:
    """Establish an authenticated session on an exact credential match."""
    if verify_credentials(get_settings(request), username, password):
        login_session(request, username)
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    logger.info("auth.session.login_failed")
    return RedirectResponse("/login?error=1", status_code=status.HTTP_303_SEE_OTHER)


@session_router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Drop the session and return to the login form."""
    logout_session(request)
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
