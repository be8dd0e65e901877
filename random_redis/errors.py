"""
Exception types raised by random-redis.

Transport failures from the admin client are not wrapped: they surface as
redis-py's own exceptions, exported here as TransportError.
"""

from typing import List, Optional, TYPE_CHECKING

from redis.exceptions import RedisError

if TYPE_CHECKING:
    from .redis_server import ServerStatus


TransportError = RedisError


class RandomRedisError(Exception):
    """Base class for errors raised by this package"""


class NoPortAvailableError(RandomRedisError):
    """The kernel could not hand out a free port on the requested host"""

    def __init__(self, host: str, message: Optional[str] = None):
        self.host = host
        super().__init__(message or f"No port available on host {host!r}")


class LaunchFailedError(RandomRedisError):
    """
    redis-server could not be spawned, or exited before the startup timeout.

    Attributes:
        command: Command line that was launched
        returncode: Exit code of the process (None if it never started)
        output: Captured stdout and stderr of the process, if any
    """

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        output: str = ""
    ):
        self.command = list(command or [])
        self.returncode = returncode
        self.output = output
        super().__init__(message)


class NotRunningError(RandomRedisError):
    """An operation that needs a running server was called in another state"""

    def __init__(self, operation: str, status: "ServerStatus"):
        self.operation = operation
        self.status = status
        super().__init__(
            f"Attempted to {operation} a non-running Redis server "
            f"(status: {status.value})"
        )
