# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
PSK-secured TLS sessions over an existing TCP connection.

The TLS engine runs over memory BIOs so the session never takes ownership
of the socket: the session is destroyed and the connection closed as two
separate steps by the session driver.

TLS is pinned to 1.2 with a single pre-agreed PSK cipher suite. No
certificate verification is performed; the pre-shared key authenticates
both ends.
"""

import binascii
import logging
import ssl
from typing import Callable, Optional, Tuple

from .config import DEFAULT_CIPHER_SUITE
from .errors import HandshakeError
from .transport import Connection

logger = logging.getLogger(__name__)

PskLookup = Callable[[Optional[str]], str]


class PskTlsSession:
    """
    Client-side TLS-PSK session bound to one connection and one identity.

    Usable only between a successful client_handshake() and destroy().
    """

    RECV_CHUNK = 4096

    def __init__(
        self,
        connection: Connection,
        psk_lookup: PskLookup,
        psk_encoding: str = "utf-8",
    ):
        """
        Args:
            connection: Connected TCP stream
            psk_lookup: Resolves an identity to its secret ("" if unknown)
            psk_encoding: How the secret string maps to key bytes ("utf-8" or "hex")
        """
        self._connection = connection
        self._psk_lookup = psk_lookup
        self._psk_encoding = psk_encoding

        self._context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        self._context.check_hostname = False
        self._context.verify_mode = ssl.CERT_NONE
        self._context.minimum_version = ssl.TLSVersion.TLSv1_2
        self._context.maximum_version = ssl.TLSVersion.TLSv1_2

        self._incoming = ssl.MemoryBIO()
        self._outgoing = ssl.MemoryBIO()
        self._sslobj: Optional[ssl.SSLObject] = None

        self.identity: Optional[str] = None
        self.cipher_suite: Optional[str] = None
        self.established = False
        self.destroyed = False

    def configure_cipher(self, suite: str) -> bool:
        """Restrict the session to exactly one cipher suite."""
        try:
            self._context.set_ciphers(suite)
        except ssl.SSLError as e:
            logger.error(f"Cipher suite {suite} not available: {e}")
            return False
        self.cipher_suite = suite
        return True

    def bind_client_identity(self, identity: str) -> None:
        """Set the PSK identity presented during the handshake."""
        if not hasattr(self._context, "set_psk_client_callback"):
            raise HandshakeError("ssl module lacks TLS-PSK support")
        self.identity = identity
        self._context.set_psk_client_callback(self._psk_callback)

    def client_handshake(self) -> None:
        """Run the TLS client handshake to completion."""
        if self.identity is None:
            raise ValueError("PSK identity must be bound before the handshake")
        self._sslobj = self._context.wrap_bio(
            self._incoming, self._outgoing, server_side=False
        )
        self._pump(self._sslobj.do_handshake)
        self.established = True

        cipher = self._sslobj.cipher()
        logger.info(f"SSL handshake successful with {self._connection.host} ({cipher[0] if cipher else '?'})")

    def write(self, data: bytes) -> int:
        """Encrypt and send data, returning the number of plaintext bytes taken."""
        self._require_established()
        return self._pump(self._sslobj.write, data)

    def read_up_to(self, max_bytes: int) -> bytes:
        """Read at most max_bytes of plaintext; b"" signals end of stream."""
        self._require_established()
        try:
            return self._pump(self._sslobj.read, max_bytes)
        except (ssl.SSLZeroReturnError, ssl.SSLEOFError):
            return b""

    def destroy(self) -> None:
        """Send close_notify (best effort) and drop TLS state. Idempotent."""
        if self.destroyed:
            return
        self.destroyed = True

        if self._sslobj is not None and self.established:
            try:
                self._sslobj.unwrap()
            except ssl.SSLWantReadError:
                # close_notify queued; the peer's reply is not awaited
                pass
            except ssl.SSLError as e:
                logger.debug(f"TLS shutdown incomplete: {e}")
            try:
                self._flush()
            except OSError as e:
                logger.debug(f"close_notify not delivered: {e}")

        self._sslobj = None
        self.established = False

    def _psk_callback(self, hint: Optional[str]) -> Tuple[Optional[str], bytes]:
        secret = self._psk_lookup(self.identity)
        if not secret:
            logger.warning(f"No PSK available for identity {self.identity}")
            return self.identity, b""
        if self._psk_encoding == "hex":
            try:
                return self.identity, binascii.unhexlify(secret)
            except (binascii.Error, ValueError):
                logger.error("PSK secret is not valid hex")
                return self.identity, b""
        return self.identity, secret.encode('utf-8')

    def _require_established(self) -> None:
        if not self.established or self._sslobj is None:
            raise ssl.SSLError("Secure session is not established")

    def _flush(self) -> None:
        pending = self._outgoing.read()
        if pending:
            self._connection.sendall(pending)

    def _pump(self, operation, *args):
        """Run an SSLObject operation, shuttling records to and from the socket."""
        while True:
            try:
                result = operation(*args)
            except ssl.SSLWantReadError:
                if self._incoming.eof:
                    raise ssl.SSLEOFError("Connection closed by peer")
                self._flush()
                data = self._connection.recv(self.RECV_CHUNK)
                if data:
                    self._incoming.write(data)
                else:
                    self._incoming.write_eof()
                continue
            self._flush()
            return result


class PskTlsTransport:
    """Secure-transport capability producing PskTlsSession objects."""

    def __init__(self, psk_encoding: str = "utf-8"):
        self.psk_encoding = psk_encoding

    def new_session(self, connection: Connection, psk_lookup: PskLookup) -> PskTlsSession:
        return PskTlsSession(connection, psk_lookup, psk_encoding=self.psk_encoding)


def establish(
    transport,
    connection: Connection,
    identity: str,
    psk_lookup: PskLookup,
    cipher_suite: str = DEFAULT_CIPHER_SUITE,
):
    """
    Wrap a connection in a handshake-complete PSK session.

    Steps, in order: bind the identity, fix the single cipher suite, run
    the client handshake. The secret must already be resolvable through
    psk_lookup and stay resolvable until the session is destroyed.

    Args:
        transport: Secure-transport capability (new_session factory)
        connection: Connected TCP stream
        identity: PSK identity to present
        psk_lookup: Identity -> secret resolver, normally CredentialScope.lookup
        cipher_suite: The one cipher suite to offer

    Returns:
        Established session

    Raises:
        HandshakeError: On any failure; the partial session is destroyed first
    """
    try:
        session = transport.new_session(connection, psk_lookup)
    except (ssl.SSLError, OSError, ValueError) as e:
        logger.error(f"Error creating secure session: {e}")
        raise HandshakeError(f"Error creating secure session: {e}") from e

    try:
        session.bind_client_identity(identity)

        if not session.configure_cipher(cipher_suite):
            raise HandshakeError(f"Could not set PSK cipher suite {cipher_suite}")

        session.client_handshake()

    except HandshakeError:
        session.destroy()
        raise

    except (ssl.SSLError, OSError, ValueError) as e:
        session.destroy()
        logger.error(f"Could not complete SSL handshake: {e}")
        raise HandshakeError(f"Could not complete SSL handshake: {e}") from e

    return session
