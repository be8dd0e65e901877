"""
Pytest configuration and shared fixtures

Provides fake redis-server executables, a mock admin client factory and
the random_redis pytest plugin for integration tests.
"""

import stat
import threading
from pathlib import Path
from typing import List
from unittest.mock import Mock

import pytest

from random_redis import RedisServerConfig
from random_redis.constants import EnvVar


pytest_plugins = ["random_redis.pytest_plugin"]


def _write_script(path: Path, body: str) -> str:
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep RANDOM_REDIS_* variables from the outer shell out of the tests"""
    for var in EnvVar:
        monkeypatch.delenv(var.value, raising=False)


@pytest.fixture
def sleeping_executable(tmp_path) -> str:
    """
    Stand-in for redis-server that ignores its arguments and keeps running

    Returns:
        Path to an executable script
    """
    return _write_script(tmp_path / "fake-redis-server", "exec sleep 30")


@pytest.fixture
def failing_executable(tmp_path) -> str:
    """
    Stand-in for redis-server that reports an error and exits with code 3

    Returns:
        Path to an executable script
    """
    return _write_script(
        tmp_path / "broken-redis-server",
        'echo "FATAL CONFIG FILE ERROR: bad directive"\nexit 3'
    )


class FakeAdminClientFactory:
    """Admin client factory that records every client it builds"""

    def __init__(self):
        self.calls: List[tuple] = []
        self.clients: List[Mock] = []
        self._lock = threading.Lock()

    def __call__(self, host: str, port: int, socket_timeout: float) -> Mock:
        client = Mock()
        client.info.return_value = {"redis_version": "7.0.0", "tcp_port": port}
        with self._lock:
            self.calls.append((host, port, socket_timeout))
            self.clients.append(client)
        return client


@pytest.fixture
def admin_factory() -> FakeAdminClientFactory:
    return FakeAdminClientFactory()


@pytest.fixture
def fake_config(sleeping_executable, admin_factory, tmp_path) -> RedisServerConfig:
    """
    Config that launches the sleeping stand-in and uses mock admin clients

    Returns:
        RedisServerConfig bound to 127.0.0.1
    """
    return RedisServerConfig(
        host="127.0.0.1",
        command=sleeping_executable,
        file_location=str(tmp_path),
        startup_timeout=0.2,
        admin_client_factory=admin_factory,
    )


@pytest.fixture(scope="session")
def random_redis_config(tmp_path_factory) -> RedisServerConfig:
    """Real redis-server config writing its files under a temp directory"""
    return RedisServerConfig(
        host="127.0.0.1",
        command="redis-server",
        file_location=str(tmp_path_factory.mktemp("redis-files")),
        startup_timeout=0.5,
    )


@pytest.fixture
def make_executable(tmp_path):
    """
    Factory for stand-in executables with a custom shell body

    Returns:
        Callable taking (name, body) and returning the script path
    """
    def _make(name: str, body: str) -> str:
        return _write_script(tmp_path / name, body)

    return _make
