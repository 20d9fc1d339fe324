from __future__ import annotations

from dataclasses import dataclass, field

LOGIN_PATH = "/login"


@dataclass
class Location:
    """Where the consumer currently is, plus every forced navigation."""

    pathname: str = "/"
    history: list[str] = field(default_factory=list)

    def assign(self, path: str) -> None:
        self.history.append(path)
        self.pathname = path


class ClientError(RuntimeError):
    """Base for errors raised by the client package itself."""


class HealthCheckError(ClientError):
    """Raised when the API answers but does not report itself healthy."""
