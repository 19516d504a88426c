# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Pytest configuration and fixtures: in-memory connector and secure transport."""

import base64
import datetime
import ssl
from typing import Callable, List, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from est_client.config import ClientSettings
from est_client.errors import TransportError
from est_client.session_driver import SessionDriver


def http_response(
    body: bytes = b"",
    status: int = 200,
    reason: str = "OK",
    content_type: Optional[str] = "application/json",
    content_length: Optional[int] = -1,
) -> bytes:
    """Build raw HTTP/1.1 response bytes."""
    lines = [f"HTTP/1.1 {status} {reason}"]
    if content_type:
        lines.append(f"Content-Type: {content_type}")
    if content_length is not None:
        length = len(body) if content_length < 0 else content_length
        lines.append(f"Content-Length: {length}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode('ascii') + body


class TestCA:
    """Self-signed CA issuing certificates for CSRs."""

    __test__ = False

    def __init__(self, name: str = "Test Root CA"):
        self.key = ec.generate_private_key(ec.SECP256R1())
        subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, name)])
        now = datetime.datetime.now(datetime.timezone.utc)
        self.certificate = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(self.key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=30))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .sign(self.key, hashes.SHA256())
        )

    def issue(self, csr: x509.CertificateSigningRequest, public_key=None) -> x509.Certificate:
        """Sign a certificate for the CSR subject (optionally for another key)."""
        now = datetime.datetime.now(datetime.timezone.utc)
        return (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(self.certificate.subject)
            .public_key(public_key or csr.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=30))
            .sign(self.key, hashes.SHA256())
        )


def ca_responder(test_ca: TestCA) -> Callable[[bytes], bytes]:
    """Responder issuing a certificate for the CSR found in a simple enroll request."""

    def respond(request: bytes) -> bytes:
        _, _, body = request.partition(b"\r\n\r\n")
        csr = x509.load_der_x509_csr(base64.b64decode(body))
        certificate = test_ca.issue(csr)
        der = pkcs7.serialize_certificates([certificate], serialization.Encoding.DER)
        return http_response(base64.b64encode(der), content_type="application/pkcs7-mime")

    return respond


class FakeConnection:
    """Stands in for a TCP connection; counts closes."""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.close_count = 0
        self.timeout = None

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def settimeout(self, timeout):
        self.timeout = timeout

    def close(self):
        self.close_count += 1


class FakeConnector:
    """Callable connector recording every connection it opens."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.connections: List[FakeConnection] = []
        self.calls = 0

    def __call__(self, host, port, timeout=None):
        self.calls += 1
        if self.fail:
            raise TransportError(f"Could not connect to {host}:{port}")
        connection = FakeConnection(host, port)
        self.connections.append(connection)
        return connection


class FakeSession:
    """
    In-memory secure session.

    The response is either fixed bytes or produced by a responder from
    the request that was written.
    """

    def __init__(
        self,
        connection,
        psk_lookup: Callable,
        response: bytes = b"",
        responder: Optional[Callable[[bytes], bytes]] = None,
        cipher_ok: bool = True,
        handshake_error: Optional[Exception] = None,
        short_write: bool = False,
        write_error: Optional[Exception] = None,
        read_error: Optional[Exception] = None,
        chunk_size: int = 512,
        on_handshake: Optional[Callable] = None,
    ):
        self.connection = connection
        self.psk_lookup = psk_lookup
        self.response = response
        self.responder = responder
        self.cipher_ok = cipher_ok
        self.handshake_error = handshake_error
        self.short_write = short_write
        self.write_error = write_error
        self.read_error = read_error
        self.chunk_size = chunk_size
        self.on_handshake = on_handshake

        self.identity = None
        self.cipher_suite = None
        self.handshakes = 0
        self.handshake_secret = None
        self.written = b""
        self.destroy_count = 0
        self._pending = None

    def bind_client_identity(self, identity):
        self.identity = identity

    def configure_cipher(self, suite):
        self.cipher_suite = suite
        return self.cipher_ok

    def client_handshake(self):
        self.handshakes += 1
        if self.on_handshake:
            self.on_handshake(self)
        if self.handshake_error:
            raise self.handshake_error
        self.handshake_secret = self.psk_lookup(self.identity)
        if not self.handshake_secret:
            raise ssl.SSLError("unknown psk identity")

    def write(self, data):
        if self.write_error:
            raise self.write_error
        self.written += data
        if self.short_write:
            return len(data) - 1
        return len(data)

    def read_up_to(self, max_bytes):
        if self.read_error:
            raise self.read_error
        if self._pending is None:
            self._pending = self.responder(self.written) if self.responder else self.response
        chunk = self._pending[:min(max_bytes, self.chunk_size)]
        self._pending = self._pending[len(chunk):]
        return chunk

    def destroy(self):
        self.destroy_count += 1


class FakeTransport:
    """Secure-transport capability producing FakeSession objects."""

    def __init__(self, **session_options):
        self.session_options = session_options
        self.sessions: List[FakeSession] = []

    def new_session(self, connection, psk_lookup):
        session = FakeSession(connection, psk_lookup, **self.session_options)
        self.sessions.append(session)
        return session


@pytest.fixture
def client_settings():
    """Settings with the production defaults and no timeouts."""
    return ClientSettings(connect_timeout=None, io_timeout=None)


@pytest.fixture(scope="session")
def test_ca():
    return TestCA()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def make_driver(client_settings, connector):
    """Factory: driver over the fake connector and a FakeTransport."""

    def _make(**session_options):
        transport = FakeTransport(**session_options)
        driver = SessionDriver(client_settings, connector=connector, transport=transport)
        return driver, transport

    return _make
