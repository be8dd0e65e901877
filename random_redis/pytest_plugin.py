"""
Pytest fixtures for tests that need a real Redis server.

Enable in a conftest.py with:

    pytest_plugins = ["random_redis.pytest_plugin"]

Tests using these fixtures are skipped when redis-server is not installed.
This module needs pytest, which is not a core dependency; install the
`random-redis[pytest]` extra.
"""

import shutil
from typing import Generator

import pytest
import redis

from .config import RedisServerConfig
from .redis_server import RedisServer, ServerStatus, new_server


@pytest.fixture(scope="session")
def random_redis_config() -> RedisServerConfig:
    """
    Configuration used by random_redis_server.

    Reads RANDOM_REDIS_* environment variables; override this fixture to
    customise it.
    """
    return RedisServerConfig.from_env()


@pytest.fixture
def random_redis_server(
    random_redis_config: RedisServerConfig
) -> Generator[RedisServer, None, None]:
    """
    A running Redis server on a random port, stopped after the test.

    Yields:
        RedisServer in the RUNNING state
    """
    if shutil.which(random_redis_config.command) is None:
        pytest.skip(f"{random_redis_config.command} not found")

    server = new_server(random_redis_config)
    yield server

    if server.status == ServerStatus.RUNNING:
        server.stop()


@pytest.fixture
def random_redis_client(
    random_redis_server: RedisServer
) -> Generator[redis.Redis, None, None]:
    """
    A redis-py client connected to random_redis_server.

    This is a separate connection from the server's own admin client.
    """
    client = redis.Redis(
        host=random_redis_server.host,
        port=random_redis_server.port,
        decode_responses=True
    )
    yield client
    client.close()
