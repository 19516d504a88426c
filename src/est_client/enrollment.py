# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
End-entity enrollment: key generation, CSR, simple enroll.

A key pair is only ever returned together with the certificate issued for
it. If anything fails after the key was generated, the key is dropped.
"""

import logging
from dataclasses import dataclass, field

from .credentials import Credentials
from .crypto.csr import CertAttributes, generate_csr
from .crypto.keys import encode_key_pem_with_params, generate_ec_key
from .errors import CryptoError, CryptoErrorKind
from .protocol.handlers import SimpleEnrollHandler
from .session_driver import SessionDriver

logger = logging.getLogger(__name__)

PEM_BLOCK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class EnrollmentResult:
    """Private key and the certificate issued for it."""
    private_key_pem: str = field(repr=False)
    certificate_pem: str


def split_key_block(encoded_key: str) -> str:
    """
    Drop the EC PARAMETERS block from an encoded key.

    The encoder writes the parameters block, a blank line, then the key
    block; the key block is the second part.

    Raises:
        CryptoError: KEY_ENCODE_FAILED if there is no blank-line separator
    """
    parts = encoded_key.split(PEM_BLOCK_SEPARATOR)
    if len(parts) < 2:
        raise CryptoError(CryptoErrorKind.KEY_ENCODE_FAILED, "Encoded key has no parameters block")
    return parts[1]


class EnrollmentWorkflow:
    """Simple enrollment on top of the session driver."""

    def __init__(self, driver: SessionDriver):
        self.driver = driver

    def enroll(
        self,
        host: str,
        port: int,
        credentials: Credentials,
        curve: int,
        signature_algorithm: int,
        attributes: CertAttributes,
    ) -> EnrollmentResult:
        """
        Generate a key, enroll it and return key plus certificate.

        Args:
            host: CA host
            port: CA port
            credentials: End-entity PSK identity/secret
            curve: Curve for the new key
            signature_algorithm: CSR signature algorithm
            attributes: Requested subject attributes

        Returns:
            EnrollmentResult with the PEM key block and the issued certificate

        Raises:
            CryptoError: Key or CSR generation failed (no network I/O happened)
            TransportError, HandshakeError, ProtocolError: Exchange failed
            ResponseError: CA rejected the request or sent an invalid certificate
        """
        private_key = generate_ec_key(curve)
        logger.info("Key generated")

        csr_der = generate_csr(attributes, private_key, signature_algorithm)
        logger.info("CSR generated")

        handler = SimpleEnrollHandler(host, csr_der, port=port)
        certificate_pem = self.driver.run(host, port, credentials, handler)

        private_key_pem = split_key_block(encode_key_pem_with_params(private_key, curve))

        logger.info("Generating key and fetching cert successful")
        return EnrollmentResult(private_key_pem=private_key_pem, certificate_pem=certificate_pem)
