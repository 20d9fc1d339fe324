"""Route groups mounted under ``/api/<name>``.

The bundled groups are thin stand-ins for the platform's business routes; a
deployment can pass its own mapping to ``create_app(route_groups=...)``.
"""
from __future__ import annotations

from fastapi import APIRouter

from .auth import router as auth_router
from .documents import collection_router

__all__ = ["default_route_groups", "collection_router"]


def default_route_groups() -> dict[str, APIRouter]:
    return {
        "auth": auth_router,
        "jobs": collection_router("jobs"),
        "users": collection_router("users"),
        "applications": collection_router("applications"),
    }
