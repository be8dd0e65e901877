"""
Throwaway Redis server lifecycle management.

A RedisServer owns one redis-server process listening on a kernel-assigned
port. Servers move through a fixed set of states:

    STARTING --(startup succeeded)--> RUNNING --stop()--> KILLED

A server whose startup fails is never handed to the caller; new_server()
raises instead. KILLED is terminal.

Example:
    server = new_server()
    try:
        server.ping()
        server.flush()
    finally:
        server.stop()

    with new_server() as server:
        client = redis.Redis(host=server.host, port=server.port)
"""

import logging
import threading
import uuid
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, Dict, Optional

from .admin_client import AdminClient
from .config import RedisServerConfig
from .constants import TimeoutValue
from .errors import LaunchFailedError, NotRunningError
from .launcher import (
    LaunchedProcess,
    await_startup,
    build_command,
    dump_filename,
    launch,
    pid_file_path,
)
from .port_manager import allocate_port


logger = logging.getLogger(__name__)


class ServerStatus(str, Enum):
    """Redis server lifecycle states"""
    STARTING = "starting"
    RUNNING = "running"
    KILLED = "killed"


class RedisServer:
    """
    A Redis server listening on a random port.

    Host, port and id are fixed for the lifetime of the object. The caller
    that created a server owns it and must stop() it; nothing is cleaned up
    on garbage collection.

    Mutating calls (stop, ping, flush, info) expect one caller at a time per
    server. Accessors can be read from any thread.
    """

    def __init__(
        self,
        host: str,
        port: int,
        server_id: Optional[str] = None,
        config: Optional[RedisServerConfig] = None
    ):
        """
        Initialize a server in the STARTING state.

        Nothing is launched here; use new_server() to get a running server.

        Args:
            host: Host the server listens on
            port: Port the server listens on
            server_id: Unique id for file naming (a UUID4 if omitted)
            config: Configuration to launch with (defaults if omitted)
        """
        self._config = config or RedisServerConfig(host=host)
        self._host = host
        self._port = port
        self._id = server_id or str(uuid.uuid4())
        self._status = ServerStatus.STARTING
        self._process: Optional[LaunchedProcess] = None
        self._admin_client: Optional[AdminClient] = None
        self._admin_client_lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"RedisServer(id={self._id!r}, address={self.address!r}, "
            f"status={self._status.value!r}, pid={self.pid})"
        )

    # Info

    @property
    def address(self) -> str:
        """Address of the server as {host}:{port}"""
        return f"{self._host}:{self._port}"

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def server_id(self) -> str:
        return self._id

    @property
    def status(self) -> ServerStatus:
        return self._status

    @property
    def config(self) -> RedisServerConfig:
        return self._config

    @property
    def pid(self) -> Optional[int]:
        """Process ID of redis-server, None before it was launched"""
        return self._process.pid if self._process else None

    @property
    def dump_filename(self) -> str:
        """RDB file name passed to redis-server (relative to file_location)"""
        return dump_filename(self._port, self._id)

    @property
    def pid_file(self) -> str:
        """Pid file path passed to redis-server"""
        return pid_file_path(self._config.file_location, self._port, self._id)

    def is_alive(self) -> bool:
        """
        Check whether the redis-server process is still alive.

        Unlike status, this reflects the OS process: a RUNNING server whose
        process crashed reports False here.
        """
        return self._process is not None and self._process.is_alive()

    # Lifecycle

    def start(self) -> None:
        """
        Launch redis-server and wait out the startup race.

        Raises:
            LaunchFailedError: If the process could not be spawned or exited
                before the startup timeout
            RuntimeError: If the server is not in the STARTING state
        """
        if self._status != ServerStatus.STARTING:
            raise RuntimeError(
                f"Cannot start Redis server in state {self._status.value}"
            )

        logger.info(f"Attempting to start Redis server {self!r}")

        command = build_command(self._config, self._port, self._id)
        process = launch(command)

        try:
            await_startup(process, self._config.startup_timeout)
        except LaunchFailedError as e:
            logger.error(f"Redis server {self._id} failed to start: {e}")
            process.kill()
            raise

        self._process = process
        self._status = ServerStatus.RUNNING
        logger.info(f"Redis server running {self!r}")

    def stop(self) -> None:
        """
        Stop a running server.

        The status becomes KILLED before the process is signalled, then the
        process is force-killed and reaped.

        Raises:
            NotRunningError: If the server is not RUNNING (including a second stop)
        """
        if self._status != ServerStatus.RUNNING:
            raise NotRunningError("stop", self._status)

        logger.info(f"Attempting to stop Redis server {self!r}")

        self._status = ServerStatus.KILLED
        self._process.kill()
        self._close_admin_client()

        try:
            exit_info = self._process.wait(timeout=TimeoutValue.REAP.value)
            logger.debug(f"Redis server {self._id} exited with code {exit_info.returncode}")
        except FutureTimeoutError:
            logger.warning(
                f"Redis server {self._id} (PID: {self.pid}) not reaped "
                f"within {TimeoutValue.REAP.value}s after kill"
            )

        logger.info(f"Redis server killed {self!r}")

    # Commands

    def ping(self) -> None:
        """
        Run PING against the server.

        Raises:
            NotRunningError: If the server is not RUNNING
            redis.exceptions.RedisError: On connection or protocol failure
        """
        self._ensure_admin_client().ping()

    def flush(self) -> None:
        """
        Remove every key from every database with FLUSHALL.

        Raises:
            NotRunningError: If the server is not RUNNING
            redis.exceptions.RedisError: On connection or protocol failure
        """
        self._ensure_admin_client().flush_all()

    def info(self, section: Optional[str] = None) -> Dict[str, Any]:
        """
        Run INFO against the server.

        Args:
            section: Optional INFO section such as "server" or "keyspace"

        Returns:
            Parsed INFO fields

        Raises:
            NotRunningError: If the server is not RUNNING
            redis.exceptions.RedisError: On connection or protocol failure
        """
        return self._ensure_admin_client().info(section)

    def _ensure_admin_client(self) -> AdminClient:
        """
        Return the admin client, creating it on first use.

        The client is memoized for the life of the server. Creation is guarded
        by a lock so concurrent callers never build two clients.

        Raises:
            NotRunningError: If the server is not RUNNING
        """
        if self._status != ServerStatus.RUNNING:
            raise NotRunningError("connect to", self._status)

        with self._admin_client_lock:
            if self._admin_client is None:
                self._admin_client = self._config.admin_client_factory(
                    self._host,
                    self._port,
                    self._config.admin_socket_timeout
                )
                logger.debug(f"Admin client connected to {self.address}")
            return self._admin_client

    def _close_admin_client(self) -> None:
        with self._admin_client_lock:
            client, self._admin_client = self._admin_client, None
        if client is not None:
            client.close()

    def __enter__(self) -> "RedisServer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._status == ServerStatus.RUNNING:
            self.stop()
        return False


def new_server(
    config: Optional[RedisServerConfig] = None,
    host: Optional[str] = None
) -> RedisServer:
    """
    Create, start and return a Redis server on a random port.

    Args:
        config: Launch configuration (defaults if omitted)
        host: Host override; config.host is used when omitted

    Returns:
        RedisServer in the RUNNING state

    Raises:
        NoPortAvailableError: If no port could be allocated on the host
        LaunchFailedError: If redis-server could not be started
    """
    if config is None:
        config = RedisServerConfig()
    if host is not None:
        config = config.with_overrides(host=host)

    port = allocate_port(config.host)
    server = RedisServer(config.host, port, str(uuid.uuid4()), config)
    server.start()
    return server
