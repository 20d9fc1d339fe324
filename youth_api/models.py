from __future__ import annotations

from pydantic import BaseModel

from .database import ConnectionState


class ApiStatus(BaseModel):
    """Service banner returned by ``GET /api``."""
    message: str
    timestamp: str
    environment: str
    database: ConnectionState


class HealthStatus(ApiStatus):
    """Liveness payload; the status is fixed while the process is serving."""
    status: str = "OK"


class AuthSession(BaseModel):
    authenticated: bool


class DeleteResult(BaseModel):
    id: str
    deleted: bool
