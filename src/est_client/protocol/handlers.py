# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Operation handlers: one per CA operation.

A handler builds the request bytes for its operation and interprets the
response bytes. It never touches the network; the session driver carries
the bytes. Handlers are single use, one per call.
"""

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs7
from pydantic import BaseModel, ValidationError

from ..errors import ResponseError
from . import http
from .schemas import (
    EnrollmentProfileRequest,
    EnrollmentProfileResponse,
    ErrorResponse,
    FingerprintRequest,
    FingerprintResponse,
)

logger = logging.getLogger(__name__)

EST_PATH_PREFIX = "/.well-known/est"
ADMIN_PATH_PREFIX = "/admin/v1"


@dataclass(frozen=True)
class FingerprintResult:
    """Fingerprint of a CA certificate."""
    algorithm_id: int
    fingerprint: bytes

    @property
    def fingerprint_hex(self) -> str:
        """Upper-case hex rendering, e.g. 'AABBCC'."""
        return self.fingerprint.hex().upper()


class OperationHandler(ABC):
    """Builds one operation's request and parses its response."""

    method = "GET"

    def __init__(self, host: str, port: Optional[int] = None):
        """
        Args:
            host: CA host name or address
            port: CA port, added to the Host header unless it is 443
        """
        self.host = http.host_header(host, port)

    @abstractmethod
    def build_request(self) -> bytes:
        """Serialize the request."""

    def expected_length(self, data: bytes) -> Optional[int]:
        """Total response length once known from the data read so far."""
        return http.expected_length(data, self.method)

    @abstractmethod
    def parse_response(self, data: bytes):
        """
        Interpret the response.

        Raises:
            ResponseError: If the response is malformed or reports an error
        """

    def _parse_http(self, data: bytes) -> http.HttpResponse:
        response = http.parse_response(data, self.method)
        if not response.ok:
            message = _error_message(response)
            logger.error(f"CA returned HTTP {response.status_code}: {message}")
            raise ResponseError(
                f"CA returned HTTP {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response

    def _parse_json(self, response: http.HttpResponse, model: type) -> BaseModel:
        try:
            return model.model_validate_json(response.body)
        except ValidationError as e:
            raise ResponseError(f"Invalid response body: {e}", status_code=response.status_code) from e


def _error_message(response: http.HttpResponse) -> str:
    if response.content_type == "application/json":
        try:
            return ErrorResponse.model_validate_json(response.body).message
        except ValidationError:
            pass
    text = response.body.decode('utf-8', errors='replace').strip()
    return text[:200] or response.reason


def _load_certificates(response: http.HttpResponse) -> List[x509.Certificate]:
    """Extract certificates from a PKCS#7 (base64) or PEM response body."""
    body = response.body
    try:
        if b"-----BEGIN CERTIFICATE-----" in body:
            certificates = x509.load_pem_x509_certificates(body)
        elif "pkcs7" in response.content_type or response.content_type in ("", "application/octet-stream"):
            der = base64.b64decode(b"".join(body.split()), validate=True)
            certificates = pkcs7.load_der_pkcs7_certificates(der)
        else:
            raise ResponseError(f"Unexpected content type: {response.content_type}")
    except (ValueError, binascii.Error) as e:
        raise ResponseError(f"Invalid certificate data: {e}", status_code=response.status_code) from e

    if not certificates:
        raise ResponseError("Response contained no certificates", status_code=response.status_code)
    return certificates


def _to_pem(certificate: x509.Certificate) -> str:
    return certificate.public_bytes(serialization.Encoding.PEM).decode('ascii')


# Admin operations


class FingerprintHandler(OperationHandler):
    """Retrieve the fingerprint of a named CA."""

    method = "POST"

    def __init__(self, host: str, ca_name: str, port: Optional[int] = None):
        super().__init__(host, port)
        self.body = FingerprintRequest(ca_name=ca_name)

    def build_request(self) -> bytes:
        return http.build_request(
            self.method,
            f"{ADMIN_PATH_PREFIX}/cafingerprint",
            self.host,
            body=self.body.model_dump_json().encode('utf-8'),
            content_type="application/json",
        )

    def parse_response(self, data: bytes) -> FingerprintResult:
        response = self._parse_http(data)
        body = self._parse_json(response, FingerprintResponse)
        return FingerprintResult(
            algorithm_id=body.algorithm_id,
            fingerprint=body.get_fingerprint_bytes(),
        )


class CreateEnrollmentProfileHandler(OperationHandler):
    """Create an enrollment profile for an end entity."""

    method = "POST"

    def __init__(
        self,
        host: str,
        enrollment_id: str,
        enrollment_secret: str,
        ca_profile: str,
        ca_name: str,
        role: str,
        port: Optional[int] = None,
    ):
        super().__init__(host, port)
        self.body = EnrollmentProfileRequest(
            enrollment_id=enrollment_id,
            enrollment_secret=enrollment_secret,
            ca_profile=ca_profile,
            ca_name=ca_name,
            role=role,
        )

    def build_request(self) -> bytes:
        return http.build_request(
            self.method,
            f"{ADMIN_PATH_PREFIX}/enrollprofile",
            self.host,
            body=self.body.model_dump_json().encode('utf-8'),
            content_type="application/json",
        )

    def parse_response(self, data: bytes) -> bool:
        response = self._parse_http(data)
        if response.body and response.content_type == "application/json":
            result = self._parse_json(response, EnrollmentProfileResponse)
            logger.info(f"Enrollment profile {self.body.enrollment_id}: {result.status}")
        return True


# EST operations


class CACertsHandler(OperationHandler):
    """Retrieve the CA certificate chain (EST /cacerts)."""

    def build_request(self) -> bytes:
        return http.build_request(self.method, f"{EST_PATH_PREFIX}/cacerts", self.host)

    def parse_response(self, data: bytes) -> str:
        response = self._parse_http(data)
        certificates = _load_certificates(response)
        return "".join(_to_pem(cert) for cert in certificates)


class SimpleEnrollHandler(OperationHandler):
    """Submit a CSR for issuance (EST /simpleenroll)."""

    method = "POST"

    def __init__(self, host: str, csr_der: bytes, port: Optional[int] = None):
        super().__init__(host, port)
        self.csr_der = csr_der

    def build_request(self) -> bytes:
        return http.build_request(
            self.method,
            f"{EST_PATH_PREFIX}/simpleenroll",
            self.host,
            body=base64.b64encode(self.csr_der),
            content_type="application/pkcs10",
            extra_headers=[("Content-Transfer-Encoding", "base64")],
        )

    def parse_response(self, data: bytes) -> str:
        response = self._parse_http(data)
        certificate = _load_certificates(response)[0]

        # The issued certificate must carry the key we generated
        csr = x509.load_der_x509_csr(self.csr_der)
        public_format = (serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
        if certificate.public_key().public_bytes(*public_format) != csr.public_key().public_bytes(*public_format):
            raise ResponseError("Issued certificate does not match the requested key")

        return _to_pem(certificate)
