# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Pydantic schemas for CA administrative request/response bodies."""

import base64
import binascii
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


# Request Models


class FingerprintRequest(BaseModel):
    """Request the fingerprint of a CA certificate."""

    ca_name: str = Field(..., min_length=1, description="Name of the CA on the server")


class EnrollmentProfileRequest(BaseModel):
    """Create an enrollment profile for an end entity."""

    enrollment_id: str = Field(..., min_length=1, description="PSK identity of the end entity")
    enrollment_secret: str = Field(..., min_length=1, repr=False, description="PSK secret of the end entity")
    ca_profile: str = Field(..., min_length=1, description="Certificate profile to issue under")
    ca_name: str = Field(..., min_length=1, description="Issuing CA name")
    role: str = Field(..., min_length=1, description="Role granted to the end entity")


# Response Models


class FingerprintResponse(BaseModel):
    """CA certificate fingerprint."""

    algorithm_id: int = Field(..., ge=0, description="Fingerprint hash algorithm identifier")
    fingerprint: str = Field(..., min_length=1, description="Base64-encoded fingerprint bytes")

    @field_validator("fingerprint")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Validate base64 encoding."""
        try:
            base64.b64decode(v, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 encoding: {e}")
        return v

    def get_fingerprint_bytes(self) -> bytes:
        """Decode and return fingerprint bytes."""
        return base64.b64decode(self.fingerprint)


class EnrollmentProfileResponse(BaseModel):
    """Result of enrollment profile creation."""

    status: str = "created"
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response."""

    status: Literal["error"] = "error"
    error_code: Optional[str] = None
    message: str
