"""Credential helpers over the client's local storage.

The token and user are written and removed together; a missing token means
the consumer is unauthenticated. None of these make network calls.
"""
from __future__ import annotations

import json
from typing import Any

from .client import TOKEN_KEY, USER_KEY, ApiClient


def is_authenticated(client: ApiClient) -> bool:
    return client.storage.get_item(TOKEN_KEY) is not None


def get_current_user(client: ApiClient) -> Any:
    """Return the stored user, or None when it is missing or not valid JSON."""
    raw = client.storage.get_item(USER_KEY)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        client.logger.error(
            "auth.user_unparseable", extra={"event": "auth_user_unparseable", "error": str(e)}
        )
        return None


def set_auth(client: ApiClient, token: str, user: Any) -> None:
    # Serialize first so a bad user object leaves storage untouched.
    serialized = json.dumps(user)
    client.storage.set_item(TOKEN_KEY, token)
    client.storage.set_item(USER_KEY, serialized)
    client.config = client.config.with_authorization(token)


def clear_auth(client: ApiClient) -> None:
    client.clear_credentials()
