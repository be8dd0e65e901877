"""
Strongly typed configuration for launched Redis servers.

A RedisServerConfig is an immutable value handed to new_server(). Each server
keeps the config it was created with, so building a new config later never
affects servers that already exist.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional

from .admin_client import AdminClient, RedisAdminClient
from .constants import DefaultSetting, EnvVar, TimeoutValue


# (host, port, socket_timeout) -> AdminClient
AdminClientFactory = Callable[[str, int, float], AdminClient]


@dataclass(frozen=True)
class RedisServerConfig:
    """
    Configuration for launching a throwaway redis-server.

    Attributes:
        host: Host the server binds to and clients connect to
        command: redis-server executable (name on PATH or absolute path)
        file_location: Directory for dump and pid files, no trailing slash
        startup_timeout: Seconds the process must survive to count as started
        admin_socket_timeout: Socket timeout for the admin client, in seconds
        admin_client_factory: Builds the admin client for a running server
    """
    host: str = DefaultSetting.HOST.value
    command: str = DefaultSetting.COMMAND.value
    file_location: str = DefaultSetting.FILE_LOCATION.value
    startup_timeout: float = TimeoutValue.STARTUP.value
    admin_socket_timeout: float = TimeoutValue.ADMIN_SOCKET.value
    admin_client_factory: AdminClientFactory = field(
        default=RedisAdminClient,
        repr=False,
        compare=False
    )

    def __post_init__(self):
        if not self.host:
            raise ValueError("host must not be empty")
        if not self.command:
            raise ValueError("command must not be empty")
        if not self.file_location:
            raise ValueError("file_location must not be empty")
        if self.startup_timeout <= 0:
            raise ValueError(
                f"startup_timeout must be positive, got {self.startup_timeout}"
            )
        if self.admin_socket_timeout <= 0:
            raise ValueError(
                f"admin_socket_timeout must be positive, got {self.admin_socket_timeout}"
            )

    def with_overrides(self, **overrides: Any) -> "RedisServerConfig":
        """
        Return a copy of this config with some fields replaced.

        None values are ignored, so parsed CLI options can be passed through
        as-is.
        """
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any
    ) -> "RedisServerConfig":
        """
        Build a config from RANDOM_REDIS_* environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            **overrides: Field values that win over the environment

        Returns:
            New RedisServerConfig

        Raises:
            ValueError: If a timeout variable is not a number
        """
        if environ is None:
            environ = os.environ

        values = {}
        if environ.get(EnvVar.HOST.value):
            values["host"] = environ[EnvVar.HOST.value]
        if environ.get(EnvVar.COMMAND.value):
            values["command"] = environ[EnvVar.COMMAND.value]
        if environ.get(EnvVar.FILE_LOCATION.value):
            values["file_location"] = environ[EnvVar.FILE_LOCATION.value].rstrip("/") or "/"
        if environ.get(EnvVar.STARTUP_TIMEOUT.value):
            values["startup_timeout"] = float(environ[EnvVar.STARTUP_TIMEOUT.value])
        if environ.get(EnvVar.SOCKET_TIMEOUT.value):
            values["admin_socket_timeout"] = float(environ[EnvVar.SOCKET_TIMEOUT.value])

        return cls(**values).with_overrides(**overrides)
