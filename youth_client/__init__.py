"""Async client for the Youth Employment Platform API.

One configured :class:`ApiClient` attaches the stored bearer token to every
request and classifies every failure before re-raising it. The auth, upload
and retry helpers build on that client.
"""
from .auth import clear_auth, get_current_user, is_authenticated, set_auth
from .client import ApiClient
from .config import ClientConfig
from .errors import ErrorKind, classify_error, describe_error
from .retry import with_retry
from .storage import FileStorage, MemoryStorage
from .types import ClientError, HealthCheckError, Location
from .upload import upload_file

__all__ = [
    "ApiClient",
    "ClientConfig",
    "ClientError",
    "ErrorKind",
    "FileStorage",
    "HealthCheckError",
    "Location",
    "MemoryStorage",
    "classify_error",
    "clear_auth",
    "describe_error",
    "get_current_user",
    "is_authenticated",
    "set_auth",
    "upload_file",
    "with_retry",
]
