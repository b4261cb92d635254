"""Application settings and environment configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tasksync.core.auth_mode import AuthMode

BACKEND_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = BACKEND_ROOT / ".env"
DEFAULT_PASSWORD = "admin"
DEFAULT_SESSION_SECRET = "change-this-secret-in-production"


class Settings(BaseSettings):
    """Typed runtime configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        # Load `backend/.env` regardless of current working directory.
        env_file=[DEFAULT_ENV_FILE, ".env"],
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "dev"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    data_file: Path = Path("/data/tasks.json")
    max_body_bytes: int = Field(default=1024 * 1024, ge=1)
    # Optional directory of front-end assets served at "/".
    static_dir: Path | None = None

    # "session" gates the API behind a shared login; "disabled" leaves it open.
    auth_mode: AuthMode = AuthMode.SESSION
    username: str = "admin"
    password: str = DEFAULT_PASSWORD
    session_secret: str = DEFAULT_SESSION_SECRET
    session_max_age_seconds: int = Field(default=24 * 60 * 60, ge=1)
    session_https_only: bool = False

    # Live updates
    live_probe_interval_seconds: float = Field(default=30.0, gt=0)
    live_send_timeout_seconds: float = Field(default=5.0, gt=0)

    cors_origins: str = ""

    # Security headers
    security_header_x_content_type_options: str = "nosniff"
    security_header_x_frame_options: str = "DENY"
    security_header_referrer_policy: str = "same-origin"
    security_header_permissions_policy: str = "camera=(), microphone=(), geolocation=()"

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"
    log_use_utc: bool = False
    request_log_slow_ms: int = Field(default=1000, ge=0)
    request_log_include_health: bool = False

    @property
    def auth_enabled(self) -> bool:
        return self.auth_mode == AuthMode.SESSION

    @model_validator(mode="after")
    def _defaults(self) -> Self:
        if self.auth_mode == AuthMode.SESSION:
            if not self.username.strip() or not self.password:
                raise ValueError(
                    "USERNAME and PASSWORD must be non-empty when AUTH_MODE=session.",
                )
            if not self.session_secret.strip():
                raise ValueError("SESSION_SECRET must be non-empty when AUTH_MODE=session.")
            # Dev keeps the well-known defaults usable; anything else must override them.
            if self.environment != "dev":
                if self.password == DEFAULT_PASSWORD:
                    raise ValueError(
                        "PASSWORD must be changed from its default outside ENVIRONMENT=dev.",
                    )
                if self.session_secret == DEFAULT_SESSION_SECRET:
                    raise ValueError(
                        "SESSION_SECRET must be changed from its default outside ENVIRONMENT=dev.",
                    )
        return self


settings = Settings()
