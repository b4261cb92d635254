"""Request-id propagation, request logging, and uniform JSON error responses."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from fastapi import status
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from tasksync.core.config import settings
from tasksync.core.logging import get_logger
from tasksync.services.task_store import TaskStoreError

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from tasksync.core.config import Settings

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
_REQUEST_ID_HEADER_RAW = REQUEST_ID_HEADER.lower().encode("latin-1")
_HEALTH_PATHS = frozenset({"/health", "/healthz", "/readyz"})
_MAX_REQUEST_ID_LENGTH = 128
# Starlette renamed these constants; the numeric codes are stable.
_UNPROCESSABLE_STATUS = 422
_CONTENT_TOO_LARGE_STATUS = 413


def _json_safe(value: object) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    return str(value)


def _error_payload(*, detail: object, request_id: str | None) -> dict[str, Any]:
    payload: dict[str, Any] = {"detail": detail}
    if request_id:
        payload["request_id"] = request_id
    return payload


def _get_request_id(request: Request) -> str | None:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _error_response(
    request: Request,
    *,
    status_code: int,
    detail: object,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = _get_request_id(request)
    response_headers = dict(headers or {})
    if request_id:
        response_headers[REQUEST_ID_HEADER] = request_id
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(detail=_json_safe(detail), request_id=request_id),
        headers=response_headers,
    )


async def _request_validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        msg = f"Expected RequestValidationError, got {type(exc).__name__}"
        raise TypeError(msg)
    logger.info(
        "http.request.invalid",
        extra={"path": request.url.path, "error_count": len(exc.errors())},
    )
    return _error_response(
        request,
        status_code=_UNPROCESSABLE_STATUS,
        detail=exc.errors(),
    )


async def _response_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, ResponseValidationError):
        msg = f"Expected ResponseValidationError, got {type(exc).__name__}"
        raise TypeError(msg)
    logger.error(
        "http.response.invalid",
        extra={"path": request.url.path, "error_count": len(exc.errors())},
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


async def _http_exception_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, StarletteHTTPException):
        msg = f"Expected StarletteHTTPException, got {type(exc).__name__}"
        raise TypeError(msg)
    return _error_response(
        request,
        status_code=exc.status_code,
        detail=exc.detail,
        headers=dict(exc.headers or {}),
    )


async def _task_store_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, TaskStoreError):
        msg = f"Expected TaskStoreError, got {type(exc).__name__}"
        raise TypeError(msg)
    logger.error(
        "tasks.store.write_failed",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Task storage unavailable",
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "http.request.unhandled_error",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


def _header_value(scope: Scope, name: bytes) -> str | None:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


def _resolve_request_id(scope: Scope) -> str:
    inbound = (_header_value(scope, _REQUEST_ID_HEADER_RAW) or "").strip()
    if inbound and len(inbound) <= _MAX_REQUEST_ID_LENGTH:
        return inbound
    return uuid4().hex


class RequestContextMiddleware:
    """Assign a request id, enforce the body size cap, and log request timing."""

    def __init__(self, app: ASGIApp, *, app_settings: Settings | None = None) -> None:
        self._app = app
        self._settings = app_settings or settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        request_id = _resolve_request_id(scope)
        scope.setdefault("state", {})["request_id"] = request_id

        content_length = _header_value(scope, b"content-length")
        if content_length is not None and content_length.isdigit():
            if int(content_length) > self._settings.max_body_bytes:
                response = _error_response(
                    Request(scope),
                    status_code=_CONTENT_TOO_LARGE_STATUS,
                    detail="Request body too large",
                )
                await response(scope, receive, send)
                return

        path = scope.get("path", "")
        should_log = self._settings.request_log_include_health or path not in _HEALTH_PATHS
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = list(message.get("headers", []))
                if not any(key.lower() == _REQUEST_ID_HEADER_RAW for key, _ in headers):
                    headers.append((_REQUEST_ID_HEADER_RAW, request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        if not should_log:
            await self._app(scope, receive, send_with_request_id)
            return

        started = perf_counter()
        try:
            await self._app(scope, receive, send_with_request_id)
        finally:
            duration_ms = int((perf_counter() - started) * 1000)
            extra = {
                "request_id": request_id,
                "method": scope.get("method", ""),
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
            }
            slow_ms = self._settings.request_log_slow_ms
            if slow_ms and duration_ms >= slow_ms:
                logger.warning(
                    "http.request.slow",
                    extra={**extra, "slow_threshold_ms": slow_ms},
                )
            else:
                logger.debug("http.request.completed", extra=extra)


def install_error_handling(app: FastAPI, app_settings: Settings | None = None) -> None:
    """Register request-context middleware and JSON exception handlers on `app`."""
    app.add_middleware(RequestContextMiddleware, app_settings=app_settings)
    app.add_exception_handler(RequestValidationError, _request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, _response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_exception_handler)
    app.add_exception_handler(TaskStoreError, _task_store_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
