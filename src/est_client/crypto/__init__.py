# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Key, CSR and PEM utilities used by the enrollment workflow."""

from .keys import Curve, generate_ec_key, encode_key_pem_with_params
from .csr import SignatureAlgorithm, CertAttributes, generate_csr

__all__ = [
    "Curve",
    "generate_ec_key",
    "encode_key_pem_with_params",
    "SignatureAlgorithm",
    "CertAttributes",
    "generate_csr",
]
