# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
TCP transport connector.

Opens exactly one stream connection per call. There is no retry and no
fallback to further resolved addresses: the first failure is final.
"""

import logging
import socket
from typing import Optional

from .errors import TransportError

logger = logging.getLogger(__name__)


class Connection:
    """An open TCP stream to a single host:port."""

    def __init__(self, sock: socket.socket, host: str, port: int):
        self._sock = sock
        self.host = host
        self.port = port
        self.closed = False

    def sendall(self, data: bytes) -> None:
        self._sock.sendall(data)

    def recv(self, max_bytes: int) -> bytes:
        return self._sock.recv(max_bytes)

    def settimeout(self, timeout: Optional[float]) -> None:
        self._sock.settimeout(timeout)

    def close(self) -> None:
        """Close the socket. Only the first call has an effect."""
        if self.closed:
            return
        self.closed = True
        self._sock.close()
        logger.debug(f"TCP connection to {self.host}:{self.port} closed")

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Connection {self.host}:{self.port} {state}>"


def connect(host: str, port: int, timeout: Optional[float] = None) -> Connection:
    """
    Open a TCP connection to host:port.

    Args:
        host: IP address or hostname of the CA
        port: TCP port (1-65535)
        timeout: Connect timeout in seconds (None blocks until the OS gives up)

    Returns:
        Connected Connection

    Raises:
        TransportError: If the address cannot be resolved or the connect fails
    """
    if not isinstance(port, int) or not 0 < port < 65536:
        raise TransportError(f"Invalid port: {port!r}")

    try:
        addresses = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        logger.error(f"Could not resolve {host}: {e}")
        raise TransportError(f"Could not resolve {host}: {e}") from e

    if not addresses:
        raise TransportError(f"No address found for {host}")

    family, sock_type, proto, _, sockaddr = addresses[0]

    try:
        sock = socket.socket(family, sock_type, proto)
    except OSError as e:
        logger.error(f"Error creating socket: {e}")
        raise TransportError(f"Error creating socket: {e}") from e

    try:
        sock.settimeout(timeout)
        sock.connect(sockaddr)
    except OSError as e:
        sock.close()
        logger.error(f"Could not connect to {host}:{port} [{e}]")
        raise TransportError(f"Could not connect to {host}:{port}: {e}") from e

    logger.info(f"TCP connection established with {host}:{port}")
    return Connection(sock, host, port)
