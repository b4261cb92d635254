"""FastAPI application entrypoint and router wiring for the task board."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from tasksync.api.auth import router as auth_router
from tasksync.api.auth import session_router as auth_session_router
from tasksync.api.live import router as live_router
from tasksync.api.tasks import router as tasks_router
from tasksync.core.config import Settings, settings
from tasksync.core.error_handling import install_error_handling
from tasksync.core.logging import configure_logging, get_logger
from tasksync.core.security_headers import SecurityHeadersMiddleware
from tasksync.schemas.health import HealthStatusResponse
from tasksync.services.live_updates import LiveUpdateBroadcaster
from tasksync.services.task_state import TaskBoardState
from tasksync.services.task_store import TaskFileStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)
OPENAPI_TAGS = [
    {
        "name": "auth",
        "description": "Shared-credential session login, logout, and status endpoints.",
    },
    {
        "name": "health",
        "description": "Service liveness/readiness probes used by infrastructure and runtime checks.",
    },
    {
        "name": "tasks",
        "description": "Full-board read and replace-all write operations.",
    },
    {
        "name": "live",
        "description": "WebSocket channel pushing `init` and `set` board snapshots.",
    },
]
_HEALTH_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_200_OK: {
        "description": "Service is alive.",
        "content": {"application/json": {"example": {"ok": True}}},
    }
}


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncIterator[None]:
    """Load the board from disk and run the live-update sweep while serving."""
    app_settings: Settings = fastapi_app.state.settings
    logger.info(
        "app.lifecycle.starting",
        extra={
            "environment": app_settings.environment,
            "auth_mode": app_settings.auth_mode.value,
            "data_file": str(app_settings.data_file),
        },
    )
    broadcaster = LiveUpdateBroadcaster(
        probe_interval_seconds=app_settings.live_probe_interval_seconds,
        send_timeout_seconds=app_settings.live_send_timeout_seconds,
    )
    store = TaskFileStore(app_settings.data_file)
    fastapi_app.state.task_board = TaskBoardState.from_store(store, broadcaster)
    broadcaster.start()
    logger.info("app.lifecycle.started", extra={"version": fastapi_app.state.task_board.version})
    try:
        yield
    finally:
        await broadcaster.stop()
        logger.info("app.lifecycle.stopped")


def _register_health_routes(fastapi_app: FastAPI) -> None:
    def health() -> HealthStatusResponse:
        """Lightweight liveness probe endpoint."""
        return HealthStatusResponse(ok=True)

    for path, summary in (
        ("/health", "Health Check"),
        ("/healthz", "Health Alias Check"),
        ("/readyz", "Readiness Check"),
    ):
        fastapi_app.add_api_route(
            path,
            health,
            methods=["GET"],
            tags=["health"],
            response_model=HealthStatusResponse,
            summary=summary,
            responses=_HEALTH_RESPONSES,
        )


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the ASGI application for the given settings."""
    app_settings = app_settings or settings
    configure_logging(app_settings)
    fastapi_app = FastAPI(
        title="Task Board API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
    )
    fastapi_app.state.settings = app_settings

    # Starlette runs the last-added middleware first; sessions must wrap the routes.
    if app_settings.auth_enabled:
        fastapi_app.add_middleware(
            SessionMiddleware,
            secret_key=app_settings.session_secret,
            session_cookie="tasksync_session",
            max_age=app_settings.session_max_age_seconds,
            same_site="lax",
            https_only=app_settings.session_https_only,
        )

    origins = [o.strip() for o in app_settings.cors_origins.split(",") if o.strip()]
    if origins:
        fastapi_app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("app.cors.enabled", extra={"origins_count": len(origins)})

    fastapi_app.add_middleware(
        SecurityHeadersMiddleware,
        x_content_type_options=app_settings.security_header_x_content_type_options,
        x_frame_options=app_settings.security_header_x_frame_options,
        referrer_policy=app_settings.security_header_referrer_policy,
        permissions_policy=app_settings.security_header_permissions_policy,
    )
    install_error_handling(fastapi_app, app_settings)

    _register_health_routes(fastapi_app)
    fastapi_app.include_router(auth_router)
    if app_settings.auth_enabled:
        fastapi_app.include_router(auth_session_router)
    fastapi_app.include_router(tasks_router)
    fastapi_app.include_router(live_router)

    if app_settings.static_dir is not None:
        static_dir = Path(app_settings.static_dir)
        if static_dir.is_dir():
            fastapi_app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        else:
            logger.warning("app.static.missing", extra={"static_dir": str(static_dir)})

    logger.debug("app.routes.registered", extra={"count": len(fastapi_app.routes)})
    return fastapi_app


app = create_app()


def run() -> None:
    """Serve `app` with uvicorn on the configured host and port."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
