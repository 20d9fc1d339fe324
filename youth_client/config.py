from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from .logging_conf import get_logger

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT_S = 10.0
AUTHORIZATION = "Authorization"


def _default_headers() -> Mapping[str, str]:
    return {"Content-Type": "application/json"}


@dataclass(frozen=True)
class ClientConfig:
    """Immutable request defaults shared by every call of one ApiClient.

    Auth changes never edit an instance; they produce a new one via
    with_authorization() / without_authorization() and the client swaps its
    reference.
    """

    base_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT_S
    headers: Mapping[str, str] = field(default_factory=_default_headers)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def from_env(cls, logger: logging.Logger | None = None) -> "ClientConfig":
        base_url = os.getenv("API_URL") or DEFAULT_API_URL
        (logger or get_logger("client.config")).info(
            "client.base_url", extra={"event": "client_base_url", "base_url": base_url}
        )
        return cls(base_url=base_url)

    @property
    def authorization(self) -> str | None:
        return self.headers.get(AUTHORIZATION)

    def with_authorization(self, token: str) -> "ClientConfig":
        return replace(self, headers={**self.headers, AUTHORIZATION: f"Bearer {token}"})

    def without_authorization(self) -> "ClientConfig":
        return replace(
            self, headers={k: v for k, v in self.headers.items() if k != AUTHORIZATION}
        )
