# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Certificate signing request generation for end-entity enrollment.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import CryptoError, CryptoErrorKind


class SignatureAlgorithm(IntEnum):
    """CSR signature algorithms, with the numeric identifiers the CA uses."""
    INVALID = 0
    ECDSA_SHA1 = 9
    ECDSA_SHA256 = 10
    ECDSA_SHA384 = 11
    ECDSA_SHA512 = 12


_HASHES = {
    SignatureAlgorithm.ECDSA_SHA1: hashes.SHA1,
    SignatureAlgorithm.ECDSA_SHA256: hashes.SHA256,
    SignatureAlgorithm.ECDSA_SHA384: hashes.SHA384,
    SignatureAlgorithm.ECDSA_SHA512: hashes.SHA512,
}


@dataclass
class CertAttributes:
    """Subject attributes requested for the enrolled certificate."""
    common_name: str
    country: Optional[str] = None  # 2-letter ISO code
    state: Optional[str] = None
    locality: Optional[str] = None
    organization: Optional[str] = None
    organizational_unit: Optional[str] = None
    email_address: Optional[str] = None
    dns_names: List[str] = field(default_factory=list)

    def to_name(self) -> x509.Name:
        """Build the X.509 subject name."""
        pairs = [
            (NameOID.COUNTRY_NAME, self.country),
            (NameOID.STATE_OR_PROVINCE_NAME, self.state),
            (NameOID.LOCALITY_NAME, self.locality),
            (NameOID.ORGANIZATION_NAME, self.organization),
            (NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
            (NameOID.COMMON_NAME, self.common_name),
            (NameOID.EMAIL_ADDRESS, self.email_address),
        ]
        return x509.Name([
            x509.NameAttribute(oid, value) for oid, value in pairs if value
        ])


def generate_csr(
    attributes: CertAttributes,
    private_key: ec.EllipticCurvePrivateKey,
    signature_algorithm: int,
) -> bytes:
    """
    Build and sign a PKCS#10 request.

    Args:
        attributes: Subject attributes (common_name required)
        private_key: Key whose public half goes into the request
        signature_algorithm: SignatureAlgorithm value

    Returns:
        DER-encoded CSR

    Raises:
        CryptoError: CSR_GEN_FAILED on invalid input or signing failure
    """
    try:
        hash_class = _HASHES[SignatureAlgorithm(signature_algorithm)]
    except (ValueError, KeyError) as e:
        raise CryptoError(
            CryptoErrorKind.CSR_GEN_FAILED,
            f"Unsupported signature algorithm: {signature_algorithm!r}",
        ) from e

    if not attributes.common_name:
        raise CryptoError(CryptoErrorKind.CSR_GEN_FAILED, "Subject common name is required")

    try:
        builder = x509.CertificateSigningRequestBuilder().subject_name(attributes.to_name())

        if attributes.dns_names:
            builder = builder.add_extension(
                x509.SubjectAlternativeName([x509.DNSName(n) for n in attributes.dns_names]),
                critical=False,
            )

        csr = builder.sign(private_key, hash_class())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(CryptoErrorKind.CSR_GEN_FAILED, f"Error generating CSR: {e}") from e

    return csr.public_bytes(serialization.Encoding.DER)
