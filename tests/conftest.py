"""
Shared pytest fixtures for server and client tests.
"""

from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from youth_api.config import Settings
from youth_api.database import Database


def client_factory(mongo_client):
    """Stand-in for MongoClient(...) that always returns the given mock."""
    return lambda *args, **kwargs: mongo_client


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        node_env="test",
        uploads_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def reachable_mongo():
    """A MongoClient mock whose ping succeeds."""
    mongo = MagicMock(name="MongoClient")
    mongo.admin.command.return_value = {"ok": 1.0}
    return mongo


@pytest.fixture
def unreachable_mongo():
    """A MongoClient mock whose ping times out on server selection."""
    mongo = MagicMock(name="MongoClient")
    mongo.admin.command.side_effect = ServerSelectionTimeoutError("No servers found yet")
    return mongo


@pytest.fixture
def reachable_db(settings, reachable_mongo):
    """Database whose client is the reachable mock; call connect() to use it."""
    return Database(settings.mongodb_uri, client_factory=client_factory(reachable_mongo))


@pytest.fixture
def unreachable_db(settings, unreachable_mongo):
    return Database(settings.mongodb_uri, client_factory=client_factory(unreachable_mongo))


@pytest.fixture
def mongo_factory():
    """Build a MongoClient factory around a given mock."""
    return client_factory
