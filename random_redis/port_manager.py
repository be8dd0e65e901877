"""
Port allocation for throwaway Redis servers.

Ports are handed out by the kernel: bind to port 0, read back the port that
was chosen, release it. There is no in-process allocation table, so concurrent
callers need no locking.

The port is released before redis-server binds it, so another process can in
principle grab it first. That window is small and accepted; a server that
loses it fails to start and surfaces as LaunchFailedError.
"""

import socket
import logging

from .errors import NoPortAvailableError


logger = logging.getLogger(__name__)


# Backlog for the short-lived probing listener
_LISTEN_BACKLOG = 1


def allocate_port(host: str) -> int:
    """
    Ask the kernel for a currently unused TCP port on a host.

    Args:
        host: Host name or address to bind on

    Returns:
        Port number that was free at allocation time

    Raises:
        NoPortAvailableError: If the host cannot be bound (invalid or unreachable)
    """
    try:
        family, address = _resolve(host, 0)
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.bind(address)
            sock.listen(_LISTEN_BACKLOG)
            port = sock.getsockname()[1]
    except OSError as e:
        logger.debug(f"Port allocation on {host!r} failed: {e}")
        raise NoPortAvailableError(
            host, f"No port available on host {host!r}: {e}"
        ) from e

    logger.debug(f"Allocated port {port} on {host}")
    return port


def is_port_free(host: str, port: int) -> bool:
    """
    Check whether a listener could bind host:port right now.

    Args:
        host: Host name or address
        port: Port number to check

    Returns:
        True if the port can currently be bound
    """
    try:
        family, address = _resolve(host, port)
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.bind(address)
            sock.listen(_LISTEN_BACKLOG)
    except OSError as e:
        logger.debug(f"Port {port} on {host} is not free: {e}")
        return False
    return True


def _resolve(host: str, port: int):
    """
    Resolve host to the first TCP address family/sockaddr pair.

    socket.gaierror is an OSError, so resolution failures are reported the
    same way as bind failures.
    """
    infos = socket.getaddrinfo(
        host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
    )
    family, _, _, _, address = infos[0]
    return family, address
