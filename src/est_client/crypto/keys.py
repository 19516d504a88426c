# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Elliptic-curve key generation and PEM encoding.

encode_key_pem_with_params() emits the key the way OpenSSL's
`ecparam -genkey` does: an EC PARAMETERS block naming the curve, a blank
line, then the EC PRIVATE KEY block.
"""

from enum import IntEnum

from asn1crypto import keys as asn1_keys
from asn1crypto import pem as asn1_pem
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import CryptoError, CryptoErrorKind


class Curve(IntEnum):
    """Supported named curves."""
    P256 = 1
    P384 = 2
    P521 = 3


_CURVES = {
    Curve.P256: (ec.SECP256R1, "secp256r1"),
    Curve.P384: (ec.SECP384R1, "secp384r1"),
    Curve.P521: (ec.SECP521R1, "secp521r1"),
}


def generate_ec_key(curve: int) -> ec.EllipticCurvePrivateKey:
    """
    Generate an EC private key on the given curve.

    Args:
        curve: Curve value (P256, P384 or P521)

    Returns:
        New private key

    Raises:
        CryptoError: KEY_GEN_FAILED for an unknown curve or backend failure

    Example:
        >>> key = generate_ec_key(Curve.P256)
        >>> key.curve.name
        'secp256r1'
    """
    try:
        curve_class, _ = _CURVES[Curve(curve)]
    except (ValueError, KeyError) as e:
        raise CryptoError(CryptoErrorKind.KEY_GEN_FAILED, f"Unsupported curve: {curve!r}") from e

    try:
        return ec.generate_private_key(curve_class())
    except (ValueError, UnsupportedAlgorithm) as e:
        raise CryptoError(CryptoErrorKind.KEY_GEN_FAILED, f"Error generating key: {e}") from e


def encode_key_pem_with_params(key: ec.EllipticCurvePrivateKey, curve: int) -> str:
    """
    PEM-encode a private key preceded by its EC PARAMETERS block.

    The two blocks are separated by exactly one blank line.

    Raises:
        CryptoError: KEY_ENCODE_FAILED if the key is not on the given curve
    """
    try:
        _, curve_name = _CURVES[Curve(curve)]
    except (ValueError, KeyError) as e:
        raise CryptoError(CryptoErrorKind.KEY_ENCODE_FAILED, f"Unsupported curve: {curve!r}") from e

    if key.curve.name != curve_name:
        raise CryptoError(
            CryptoErrorKind.KEY_ENCODE_FAILED,
            f"Key is on {key.curve.name}, expected {curve_name}",
        )

    params_der = asn1_keys.ECDomainParameters(name='named', value=curve_name).dump()
    params_pem = asn1_pem.armor('EC PARAMETERS', params_der).decode('ascii')

    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode('ascii')

    return params_pem + "\n" + key_pem
