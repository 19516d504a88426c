# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Tests for the TCP transport connector."""

import socket

import pytest

from est_client.errors import TransportError
from est_client.transport import connect


@pytest.fixture
def listener():
    """Listening socket on an ephemeral localhost port."""
    sock = socket.create_server(("127.0.0.1", 0))
    yield sock
    sock.close()


@pytest.fixture
def closed_port():
    """A localhost port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def test_connect_success(listener):
    """Connects to a listening port and closes exactly once."""
    port = listener.getsockname()[1]

    connection = connect("127.0.0.1", port, timeout=5)
    peer, _ = listener.accept()

    try:
        connection.sendall(b"hello")
        assert peer.recv(5) == b"hello"
    finally:
        peer.close()

    assert not connection.closed
    connection.close()
    assert connection.closed
    connection.close()


def test_connect_refused(closed_port):
    """Non-listening port yields TransportError chained to the OS error."""
    with pytest.raises(TransportError) as exc_info:
        connect("127.0.0.1", closed_port, timeout=5)

    assert isinstance(exc_info.value.__cause__, OSError)


def test_unresolvable_host():
    """Resolution failure yields TransportError."""
    with pytest.raises(TransportError):
        connect("host.invalid", 8443, timeout=5)


@pytest.mark.parametrize("port", [0, -1, 70000])
def test_invalid_port(port):
    """Out-of-range ports are rejected before any network activity."""
    with pytest.raises(TransportError):
        connect("127.0.0.1", port)
