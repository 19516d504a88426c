# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Error taxonomy for the EST CA client.

Every failure surfaced by a client operation is one of the classes below.
Resources (connection, secure session, credential scope) are always
released before any of these errors reaches the caller.
"""

from enum import Enum
from typing import Optional


class EstClientError(Exception):
    """Base class for all client errors."""


class TransportError(EstClientError):
    """Address resolution or TCP connect failure."""


class HandshakeError(EstClientError):
    """Cipher configuration or PSK handshake failure."""


class ProtocolErrorKind(str, Enum):
    """Where an established session failed."""
    WRITE_FAILED = "write_failed"
    READ_FAILED = "read_failed"


class ProtocolError(EstClientError):
    """I/O failure after the secure session was established."""

    def __init__(self, kind: ProtocolErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class ResponseError(EstClientError):
    """
    Server returned malformed or semantically invalid data.

    Attributes:
        status_code: HTTP status of the response, if one could be parsed
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CryptoErrorKind(str, Enum):
    """Local cryptographic step that failed."""
    KEY_GEN_FAILED = "key_gen_failed"
    CSR_GEN_FAILED = "csr_gen_failed"
    KEY_ENCODE_FAILED = "key_encode_failed"


class CryptoError(EstClientError):
    """Local key, CSR or key-encoding failure."""

    def __init__(self, kind: CryptoErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
