"""
Throwaway Redis servers on random ports, for tests.

Provides port allocation, redis-server launching and lifecycle management
for short-lived servers that give tests predictable, isolated state.
"""

from .admin_client import (
    AdminClient,
    RedisAdminClient,
)

from .config import (
    RedisServerConfig,
    AdminClientFactory,
)

from .errors import (
    RandomRedisError,
    NoPortAvailableError,
    LaunchFailedError,
    NotRunningError,
    TransportError,
)

from .launcher import (
    LaunchedProcess,
    ProcessExit,
    build_command,
    launch,
    await_startup,
)

from .port_manager import (
    allocate_port,
    is_port_free,
)

from .redis_server import (
    RedisServer,
    ServerStatus,
    new_server,
)

__version__ = "1.0.0"

__all__ = [
    # Server lifecycle
    'RedisServer',
    'ServerStatus',
    'new_server',

    # Configuration
    'RedisServerConfig',
    'AdminClientFactory',

    # Port management
    'allocate_port',
    'is_port_free',

    # Process launching
    'LaunchedProcess',
    'ProcessExit',
    'build_command',
    'launch',
    'await_startup',

    # Admin client
    'AdminClient',
    'RedisAdminClient',

    # Errors
    'RandomRedisError',
    'NoPortAvailableError',
    'LaunchFailedError',
    'NotRunningError',
    'TransportError',
]
