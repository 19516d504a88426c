# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Caller-facing CA client.

Admin APIs (fingerprint, enrollment profiles) authenticate with the admin
PSK identity; EST APIs (CA certificates, simple enrollment) with the
end-entity identity created through an enrollment profile.

Each call opens its own connection and session, so one CAClient can be
shared between threads.
"""

import logging
from typing import Optional

from .config import ClientSettings, settings as default_settings
from .credentials import Credentials
from .crypto.csr import CertAttributes, SignatureAlgorithm
from .crypto.keys import Curve
from .enrollment import EnrollmentResult, EnrollmentWorkflow
from .protocol.handlers import (
    CACertsHandler,
    CreateEnrollmentProfileHandler,
    FingerprintHandler,
    FingerprintResult,
)
from .session_driver import SessionDriver

logger = logging.getLogger(__name__)


class CAClient:
    """Client for the CA admin and EST channels."""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        driver: Optional[SessionDriver] = None,
    ):
        """
        Args:
            settings: Client settings (defaults to environment configuration)
            driver: Session driver (defaults to a PSK-TLS driver built from settings)
        """
        self.settings = settings or default_settings
        self.driver = driver or SessionDriver(self.settings)
        self.enrollment = EnrollmentWorkflow(self.driver)

    # Admin APIs

    def get_ca_fingerprint(
        self,
        host: str,
        port: int,
        ca_name: str,
        admin: Credentials,
    ) -> FingerprintResult:
        """Fetch the fingerprint of the named CA's certificate."""
        result = self.driver.run(host, port, admin, FingerprintHandler(host, ca_name, port=port))
        logger.info(f"Got fingerprint and algorithm: {result.algorithm_id},{result.fingerprint_hex}")
        return result

    def create_enrollment_profile(
        self,
        host: str,
        port: int,
        admin: Credentials,
        enrollment: Credentials,
        ca_name: str,
        ca_profile: str,
        role: str,
    ) -> bool:
        """
        Register an end-entity identity/secret with the CA.

        Returns:
            True once the CA accepted the profile (failures raise)
        """
        handler = CreateEnrollmentProfileHandler(
            host,
            enrollment_id=enrollment.identity,
            enrollment_secret=enrollment.secret,
            ca_profile=ca_profile,
            ca_name=ca_name,
            role=role,
            port=port,
        )
        return self.driver.run(host, port, admin, handler)

    def revoke_certificate(self) -> bool:
        """Revocation is not supported by the CA; always returns False."""
        logger.info("Certificate revocation is not supported")
        return False

    # EST APIs

    def get_ca_cert(self, host: str, port: int, enrollment: Credentials) -> str:
        """Fetch the CA certificate chain as PEM."""
        return self.driver.run(host, port, enrollment, CACertsHandler(host, port))

    def get_id_cert(
        self,
        host: str,
        port: int,
        enrollment: Credentials,
        curve: int = Curve.P256,
        signature_algorithm: int = SignatureAlgorithm.ECDSA_SHA256,
        attributes: Optional[CertAttributes] = None,
    ) -> EnrollmentResult:
        """
        Generate a key pair and enroll it.

        Subject defaults to CN=<enrollment identity>.
        """
        if attributes is None:
            attributes = CertAttributes(common_name=enrollment.identity)
        return self.enrollment.enroll(host, port, enrollment, curve, signature_algorithm, attributes)


# Module-level API using the environment configuration


def get_ca_fingerprint(host: str, port: int, ca_name: str, admin: Credentials) -> FingerprintResult:
    return CAClient().get_ca_fingerprint(host, port, ca_name, admin)


def create_enrollment_profile(
    host: str,
    port: int,
    admin: Credentials,
    enrollment: Credentials,
    ca_name: str,
    ca_profile: str,
    role: str,
) -> bool:
    return CAClient().create_enrollment_profile(host, port, admin, enrollment, ca_name, ca_profile, role)


def revoke_certificate() -> bool:
    return CAClient().revoke_certificate()


def get_ca_cert(host: str, port: int, enrollment: Credentials) -> str:
    return CAClient().get_ca_cert(host, port, enrollment)


def get_id_cert(
    host: str,
    port: int,
    enrollment: Credentials,
    curve: int = Curve.P256,
    signature_algorithm: int = SignatureAlgorithm.ECDSA_SHA256,
    attributes: Optional[CertAttributes] = None,
) -> EnrollmentResult:
    return CAClient().get_id_cert(host, port, enrollment, curve, signature_algorithm, attributes)
