# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Session protocol driver.

Every client operation runs the same exchange:

    connect -> install credentials -> PSK handshake -> write request
    -> read response -> destroy session -> close connection
    -> clear credentials -> parse response

Each resource is released exactly once on every path. The response is
parsed only after the session, the connection and the credentials are
gone, so a malformed response can never leak a live session.
"""

import logging
from contextlib import ExitStack
from enum import Enum
from typing import Callable, List, Optional

from .config import ClientSettings, settings as default_settings
from .credentials import CredentialScope, Credentials
from .errors import EstClientError, ProtocolError, ProtocolErrorKind, ResponseError
from .secure_session import PskTlsTransport, establish
from .transport import connect

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Phases of one exchange."""
    IDLE = "idle"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    SENDING = "sending"
    RECEIVING = "receiving"
    CLOSING = "closing"
    DONE = "done"


class SessionExchange:
    """
    One request/response exchange with the CA.

    Single use: create, execute() once, discard. The visited states are
    kept in `transitions` and the error that ended the exchange, if any,
    in `error`.
    """

    def __init__(
        self,
        host: str,
        port: int,
        credentials: Credentials,
        handler,
        connector: Callable = connect,
        transport=None,
        cipher_suite: Optional[str] = None,
        response_ceiling: Optional[int] = None,
        connect_timeout: Optional[float] = None,
        io_timeout: Optional[float] = None,
    ):
        self.host = host
        self.port = port
        self.credentials = credentials
        self.handler = handler
        self.connector = connector
        self.transport = transport or PskTlsTransport(psk_encoding=default_settings.psk_encoding)
        self.cipher_suite = cipher_suite or default_settings.cipher_suite
        self.response_ceiling = response_ceiling or default_settings.response_ceiling
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout

        self.state = SessionState.IDLE
        self.transitions: List[SessionState] = [SessionState.IDLE]
        self.error: Optional[EstClientError] = None

    def _enter(self, state: SessionState) -> None:
        self.state = state
        self.transitions.append(state)
        logger.debug(f"Session {self.host}:{self.port} -> {state.value}")

    def execute(self):
        """
        Run the exchange and return the handler's parsed result.

        Raises:
            TransportError: Connect failed
            HandshakeError: PSK handshake failed
            ProtocolError: Write or read failed on the established session
            ResponseError: Response could not be interpreted
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError("SessionExchange can only be executed once")

        request = self.handler.build_request()
        scope = CredentialScope()

        try:
            # scope is entered first so it is cleared last
            with scope, ExitStack() as resources:
                try:
                    self._enter(SessionState.CONNECTING)
                    connection = self.connector(self.host, self.port, timeout=self.connect_timeout)
                    resources.callback(connection.close)
                    connection.settimeout(self.io_timeout)

                    scope.begin(self.credentials)

                    self._enter(SessionState.HANDSHAKING)
                    session = establish(
                        self.transport,
                        connection,
                        self.credentials.identity,
                        scope.lookup,
                        self.cipher_suite,
                    )
                    resources.callback(session.destroy)

                    self._enter(SessionState.SENDING)
                    self._send(session, request)

                    self._enter(SessionState.RECEIVING)
                    response = self._receive(session)

                except EstClientError as e:
                    self.error = e
                    raise

                finally:
                    self._enter(SessionState.CLOSING)
        finally:
            self._enter(SessionState.DONE)

        try:
            return self.handler.parse_response(response)
        except ResponseError as e:
            logger.error(f"Error handling response: {e}")
            self.error = e
            raise

    def _send(self, session, request: bytes) -> None:
        logger.info(f"Sending request to {self.host}:{self.port} [{len(request)} bytes]")
        try:
            written = session.write(request)
        except OSError as e:
            logger.error(f"Could not send request to server: {e}")
            raise ProtocolError(ProtocolErrorKind.WRITE_FAILED, f"Could not send request: {e}") from e

        if written != len(request):
            raise ProtocolError(
                ProtocolErrorKind.WRITE_FAILED,
                f"Partial write: {written} of {len(request)} bytes sent",
            )

    def _receive(self, session) -> bytes:
        ceiling = self.response_ceiling
        buffer = bytearray()
        expected: Optional[int] = None

        try:
            while len(buffer) < ceiling:
                chunk = session.read_up_to(ceiling - len(buffer))
                if not chunk:
                    break
                buffer += chunk
                expected = self.handler.expected_length(bytes(buffer))
                if expected is not None and (len(buffer) >= expected or expected > ceiling):
                    break
        except OSError as e:
            logger.error(f"Got error while reading data from server: {e}")
            raise ProtocolError(ProtocolErrorKind.READ_FAILED, f"Error reading response: {e}") from e

        if not buffer:
            raise ProtocolError(ProtocolErrorKind.READ_FAILED, "Server closed the session without responding")

        if expected is not None:
            if expected > ceiling:
                raise ProtocolError(
                    ProtocolErrorKind.READ_FAILED,
                    f"Response of {expected} bytes exceeds the {ceiling} byte ceiling",
                )
            if len(buffer) < expected:
                raise ProtocolError(
                    ProtocolErrorKind.READ_FAILED,
                    f"Short response: {len(buffer)} of {expected} bytes",
                )
        elif len(buffer) >= ceiling:
            logger.warning(f"Response filled the {ceiling} byte ceiling and may be truncated")

        logger.info(f"Received response from server [{len(buffer)} bytes]")
        return bytes(buffer)


class SessionDriver:
    """
    Runs exchanges against the CA. Holds no per-call state, so one driver
    may serve several threads at once.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        connector: Callable = connect,
        transport=None,
    ):
        self.settings = settings or default_settings
        self.connector = connector
        self.transport = transport or PskTlsTransport(psk_encoding=self.settings.psk_encoding)

    def new_exchange(self, host: str, port: int, credentials: Credentials, handler) -> SessionExchange:
        return SessionExchange(
            host,
            port,
            credentials,
            handler,
            connector=self.connector,
            transport=self.transport,
            cipher_suite=self.settings.cipher_suite,
            response_ceiling=self.settings.response_ceiling,
            connect_timeout=self.settings.connect_timeout,
            io_timeout=self.settings.io_timeout,
        )

    def run(self, host: str, port: int, credentials: Credentials, handler):
        """Execute one exchange and return the parsed result."""
        return self.new_exchange(host, port, credentials, handler).execute()
