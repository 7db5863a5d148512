"""
Network helpers: listening-socket enumeration for the port stage and a
plain TCP connect for the database health probe.
"""

import logging
import socket
from typing import Any, Optional, Set

import psutil

logger = logging.getLogger('Network')


def _laddr_port(laddr: Any) -> Optional[int]:
    """
    laddr can be:
      - a namedtuple with .ip and .port
      - a plain (ip, port) tuple
      - empty
    """
    if not laddr:
        return None
    port = getattr(laddr, 'port', None)
    if port is not None:
        return port
    try:
        return laddr[1]
    except (IndexError, TypeError):
        return None


def get_listening_ports() -> Optional[Set[int]]:
    """
    Collect the ports of every TCP socket in LISTEN state on this host.

    Any local address counts: a listener on 127.0.0.2 or on a LAN address
    still holds a port that compose publishes on 0.0.0.0.

    Returns:
        Set of listening ports, or None when sockets could not be enumerated
        (psutil raises AccessDenied for unprivileged users on macOS)
    """
    try:
        conns = psutil.net_connections(kind="inet")
    except (psutil.AccessDenied, PermissionError) as e:
        logger.warning(f"Cannot enumerate listening sockets, run with elevated privileges: {type(e).__name__}: {e}")
        return None
    except OSError as e:
        logger.warning(f"Cannot enumerate listening sockets: {type(e).__name__}: {e}")
        return None

    ports = set()
    for c in conns:
        if c.type != socket.SOCK_STREAM or c.status != psutil.CONN_LISTEN:
            continue
        port = _laddr_port(c.laddr)
        if port is not None:
            ports.add(port)

    logger.debug(f"Listening TCP ports: {sorted(ports)}")
    return ports


def accepts_connections(host: str, port: int, timeout: float = 2.0) -> bool:
    """
    Open and immediately close a TCP connection to host:port.

    Nothing is sent, so this is safe against services that do not speak HTTP.

    Args:
        host: Host name or address
        port: TCP port
        timeout: Connect timeout in seconds, must be positive

    Returns:
        True if the connection was accepted within the timeout
    """
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as e:
        logger.debug(f"No listener on {host}:{port}: {e}")
        return False
