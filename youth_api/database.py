"""MongoDB connector with degraded-mode semantics.

connect() never terminates the process: a failed connection is logged with a
remediation hint and reported as ``None``, and the server keeps running with
the database marked as disconnected.

Connection state machine::

    disconnected -> connecting -> connected
    connecting   -> disconnected      (timeout / driver error)
    connected    -> disconnected      (heartbeat failure, any time)

There is no reconnect loop here. pymongo's own server monitor keeps
heartbeating, and a successful heartbeat after a drop flips the state back to
connected.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional

from pymongo import MongoClient, monitoring
from pymongo.collection import Collection
from pymongo.database import Database as MongoDatabase
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from .logging_conf import get_logger

__all__ = [
    "ConnectionState",
    "Database",
    "DatabaseUnavailableError",
    "SERVER_SELECTION_TIMEOUT_MS",
    "SOCKET_TIMEOUT_MS",
    "MAX_POOL_SIZE",
]

SERVER_SELECTION_TIMEOUT_MS = 10_000
SOCKET_TIMEOUT_MS = 45_000
MAX_POOL_SIZE = 10
DEFAULT_DB_NAME = "youth-employment"


class ConnectionState(str, Enum):
    disconnected = "Disconnected"
    connecting = "Connecting"
    connected = "Connected"


class DatabaseUnavailableError(RuntimeError):
    """Raised when a collection is requested while the database is down."""


class _HeartbeatListener(monitoring.ServerHeartbeatListener):
    """Forwards pymongo heartbeat outcomes (monitor threads) to the Database."""

    def __init__(self, database: "Database") -> None:
        self._database = database

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        self._database._on_heartbeat(event.connection_id, ok=True)

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        self._database._on_heartbeat(event.connection_id, ok=False, error=event.reply)


class Database:
    """Owns the MongoClient and its observable connection state."""

    def __init__(
        self,
        uri: str,
        *,
        client_factory: Callable[..., Any] = MongoClient,
        logger: logging.Logger | None = None,
    ) -> None:
        self.uri = uri
        self._client_factory = client_factory
        self._client: Optional[MongoClient] = None
        self._state = ConnectionState.disconnected
        self._healthy: set[Any] = set()
        self._lock = threading.Lock()
        self._listener = _HeartbeatListener(self)
        self.logger = logger or get_logger("api.database")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.connected

    @property
    def client(self) -> Optional[MongoClient]:
        return self._client

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        self.logger.info(
            "database.state",
            extra={"event": "database_state", "from": previous.value, "to": state.value},
        )

    async def connect(self) -> Optional[MongoClient]:
        """Connect and verify with a ping. Returns the client, or None on failure."""
        if self._client is not None and self.is_connected:
            return self._client

        # A client left over from a heartbeat drop is replaced, not leaked.
        stale, self._client = self._client, None
        if stale is not None:
            stale.close()
            with self._lock:
                self._healthy.clear()

        self._set_state(ConnectionState.connecting)
        client: Optional[MongoClient] = None
        try:
            client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
                socketTimeoutMS=SOCKET_TIMEOUT_MS,
                maxPoolSize=MAX_POOL_SIZE,
                event_listeners=[self._listener],
            )
            # ping blocks until a server is selected; keep it off the event loop.
            await asyncio.to_thread(client.admin.command, "ping")
        except ServerSelectionTimeoutError as exc:
            self.logger.error(
                "database.connect_failed",
                extra={
                    "event": "database_connect_failed",
                    "reason": "server_selection",
                    "error": str(exc),
                    "hint": (
                        "No MongoDB server was reachable within "
                        f"{SERVER_SELECTION_TIMEOUT_MS // 1000}s. Check network access "
                        "and that this host's IP is on the cluster allow-list."
                    ),
                },
            )
            self._discard(client)
            return None
        except (PyMongoError, ValueError, TypeError) as exc:
            # pymongo's URI parser raises plain ValueError for a bad host or port.
            self.logger.error(
                "database.connect_failed",
                extra={
                    "event": "database_connect_failed",
                    "reason": "network",
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "hint": "Verify MONGODB_URI and that the database server is running.",
                },
            )
            self._discard(client)
            return None

        self._client = client
        self._set_state(ConnectionState.connected)
        self.logger.info("database.connected", extra={"event": "database_connected"})
        return client

    def _discard(self, client: Optional[MongoClient]) -> None:
        if client is not None:
            client.close()
        with self._lock:
            self._healthy.clear()
        self._set_state(ConnectionState.disconnected)

    def _on_heartbeat(self, address: Any, *, ok: bool, error: Any = None) -> None:
        with self._lock:
            if ok:
                self._healthy.add(address)
            else:
                self._healthy.discard(address)
            healthy = bool(self._healthy)

        # connect() owns the connecting phase; only an established client transitions here.
        if self._client is None or self._state is ConnectionState.connecting:
            return
        if healthy and self._state is ConnectionState.disconnected:
            self.logger.info("database.reconnected", extra={"event": "database_reconnected"})
            self._set_state(ConnectionState.connected)
        elif not healthy and self._state is ConnectionState.connected:
            self.logger.warning(
                "database.disconnected",
                extra={"event": "database_disconnected", "error": str(error) if error else None},
            )
            self._set_state(ConnectionState.disconnected)

    @property
    def db(self) -> MongoDatabase:
        if self._client is None or not self.is_connected:
            raise DatabaseUnavailableError("Database is not connected")
        return self._client.get_default_database(default=DEFAULT_DB_NAME)

    def collection(self, name: str) -> Collection:
        return self.db[name]

    def close(self) -> None:
        """Close the client; safe to call more than once."""
        client, self._client = self._client, None
        if client is None:
            return
        client.close()
        with self._lock:
            self._healthy.clear()
        self._set_state(ConnectionState.disconnected)
        self.logger.info("database.closed", extra={"event": "database_closed"})
