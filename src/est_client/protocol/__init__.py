# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
CA message layer: HTTP envelope, body schemas and per-operation handlers.
"""

from .handlers import (
    OperationHandler,
    FingerprintHandler,
    FingerprintResult,
    CreateEnrollmentProfileHandler,
    CACertsHandler,
    SimpleEnrollHandler,
)

__all__ = [
    "OperationHandler",
    "FingerprintHandler",
    "FingerprintResult",
    "CreateEnrollmentProfileHandler",
    "CACertsHandler",
    "SimpleEnrollHandler",
]
