# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
EST CA Client

Certificate enrollment against a CA over TLS-PSK: admin channel
(CA fingerprint, enrollment profiles) and EST channel (CA certificates,
simple enrollment).
"""

__version__ = "0.1.0"

from .errors import (
    EstClientError,
    TransportError,
    HandshakeError,
    ProtocolError,
    ProtocolErrorKind,
    ResponseError,
    CryptoError,
    CryptoErrorKind,
)

from .config import (
    ClientSettings,
    DEFAULT_CIPHER_SUITE,
    settings,
)

from .credentials import (
    Credentials,
    CredentialScope,
)

from .session_driver import (
    SessionDriver,
    SessionExchange,
    SessionState,
)

from .crypto import (
    Curve,
    SignatureAlgorithm,
    CertAttributes,
)

from .protocol import FingerprintResult

from .enrollment import (
    EnrollmentResult,
    EnrollmentWorkflow,
)

from .client import (
    CAClient,
    get_ca_fingerprint,
    create_enrollment_profile,
    revoke_certificate,
    get_ca_cert,
    get_id_cert,
)

__all__ = [
    # Version
    '__version__',

    # Errors
    'EstClientError',
    'TransportError',
    'HandshakeError',
    'ProtocolError',
    'ProtocolErrorKind',
    'ResponseError',
    'CryptoError',
    'CryptoErrorKind',

    # Configuration
    'ClientSettings',
    'DEFAULT_CIPHER_SUITE',
    'settings',

    # Session
    'Credentials',
    'CredentialScope',
    'SessionDriver',
    'SessionExchange',
    'SessionState',

    # Crypto
    'Curve',
    'SignatureAlgorithm',
    'CertAttributes',

    # Results
    'FingerprintResult',
    'EnrollmentResult',
    'EnrollmentWorkflow',

    # Client API
    'CAClient',
    'get_ca_fingerprint',
    'create_enrollment_profile',
    'revoke_certificate',
    'get_ca_cert',
    'get_id_cert',
]
