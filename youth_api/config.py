"""Server configuration resolved from the environment.

Values come from process environment variables (case-insensitive) or a local
``.env`` file; anything absent falls back to a default. A missing setting is
never fatal: log_environment_check() reports it as a warning and the default
stays in effect.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logging_conf import get_logger

DEFAULT_CORS_ORIGINS = ",".join(
    [
        "http://localhost:3000",
        "http://localhost:5173",
        "https://mern-final-project-atsienoclaire.vercel.app",
        "https://mern-final-project-atsienoclaire-2.onrender.com",
    ]
)

# Settings the deployment is expected to provide explicitly.
REQUIRED_SETTINGS = ("jwt_secret", "jwt_expire", "mongodb_uri", "port")
_SECRET_SETTINGS = {"jwt_secret", "mongodb_uri"}


class Settings(BaseSettings):
    """API server settings; each field maps to the upper-cased env var."""

    # An empty variable (``PORT=``) counts as unset and keeps the default.
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", env_ignore_empty=True)

    jwt_secret: Optional[str] = Field(default=None, description="Token signing secret")
    jwt_expire: str = Field(default="30d", description="Token lifetime, e.g. 30d")
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017/youth-employment",
        description="MongoDB connection URI",
    )
    port: int = Field(default=5000, ge=1, le=65535)
    host: str = Field(default="0.0.0.0")
    node_env: str = Field(default="development", description="Deployment environment name")
    cors_origins: str = Field(
        default=DEFAULT_CORS_ORIGINS,
        description="Comma-separated list of allowed CORS origins",
    )
    uploads_dir: str = Field(default="uploads", description="Directory served under /uploads")
    log_level: str = Field(default="INFO")

    @field_validator("mongodb_uri")
    @classmethod
    def validate_mongodb_uri(cls, v: str) -> str:
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(f"Invalid MongoDB URI scheme: {v}")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Allowed origins, trimmed; browsers never send a trailing slash."""
        return [o.strip().rstrip("/") for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.node_env.lower() == "production"

    def missing_settings(self) -> list[str]:
        """Required settings that were not supplied and fell back to defaults."""
        return [name for name in REQUIRED_SETTINGS if name not in self.model_fields_set]


@lru_cache
def get_settings() -> Settings:
    return Settings()


def log_environment_check(settings: Settings, logger: logging.Logger | None = None) -> list[str]:
    """Log whether each required setting is present and return the missing ones."""
    logger = logger or get_logger("api.config")
    missing = settings.missing_settings()
    for name in REQUIRED_SETTINGS:
        fields = {"event": "config_check", "setting": name.upper(), "present": name not in missing}
        if name not in _SECRET_SETTINGS:
            fields["value"] = getattr(settings, name)
        if name in missing:
            logger.warning("config.missing", extra=fields)
        else:
            logger.info("config.present", extra=fields)
    return missing
