"""
Administrative client for launched Redis servers.

Only the handful of operational commands the server handle needs are exposed.
Any Protocol-compatible object can stand in for the redis-py implementation,
which is how the unit tests avoid a network.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import redis


logger = logging.getLogger(__name__)


class AdminClient(Protocol):
    """Operational commands sent to a running server"""

    def ping(self) -> None:
        ...

    def flush_all(self) -> None:
        ...

    def info(self, section: Optional[str] = None) -> Dict[str, Any]:
        ...

    def close(self) -> None:
        ...


class RedisAdminClient:
    """
    AdminClient backed by redis-py.

    Construction does not open a connection: redis-py connects lazily on the
    first command, so connection errors surface from ping()/flush_all().
    Errors are redis.exceptions.RedisError subclasses and are not wrapped.
    """

    def __init__(self, host: str, port: int, socket_timeout: Optional[float] = None):
        """
        Initialize admin client.

        Args:
            host: Server host
            port: Server port
            socket_timeout: Seconds before a command or connect times out
        """
        self.host = host
        self.port = port
        self._client = redis.Redis(
            host=host,
            port=port,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        logger.debug(f"Admin client created for {host}:{port}")

    @property
    def client(self) -> redis.Redis:
        """Underlying redis-py client"""
        return self._client

    def ping(self) -> None:
        self._client.ping()

    def flush_all(self) -> None:
        self._client.flushall()

    def info(self, section: Optional[str] = None) -> Dict[str, Any]:
        if section is None:
            return self._client.info()
        return self._client.info(section)

    def close(self) -> None:
        self._client.close()
        logger.debug(f"Admin client for {self.host}:{self.port} closed")
