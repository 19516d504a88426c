# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
EST CA Client - Command Line Interface

Admin and end-entity operations against a PSK-authenticated CA.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .client import CAClient
from .config import settings
from .credentials import Credentials
from .crypto.csr import CertAttributes, SignatureAlgorithm
from .crypto.keys import Curve
from .enrollment import EnrollmentResult
from .errors import EstClientError

logger = logging.getLogger(__name__)

CURVE_CHOICES = {"p256": Curve.P256, "p384": Curve.P384, "p521": Curve.P521}
SIGNATURE_CHOICES = {
    "ecdsa-sha1": SignatureAlgorithm.ECDSA_SHA1,
    "ecdsa-sha256": SignatureAlgorithm.ECDSA_SHA256,
    "ecdsa-sha384": SignatureAlgorithm.ECDSA_SHA384,
    "ecdsa-sha512": SignatureAlgorithm.ECDSA_SHA512,
}

# Options each command cannot run without
REQUIRED_OPTIONS = {
    "fingerprint": ["id", "secret", "ca_name"],
    "create-profile": ["id", "secret", "enroll_id", "enroll_secret", "ca_name", "ca_profile", "role"],
    "cacert": ["id", "secret"],
    "enroll": ["id", "secret", "key_out"],
    "revoke": [],
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='EST CA client (TLS-PSK)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # CA fingerprint (admin identity)
  python -m est_client fingerprint --id admin --ca-name rootca

  # Create an enrollment profile for device-01
  python -m est_client create-profile --id admin --enroll-id device-01 \\
      --ca-name rootca --ca-profile device --role client

  # Fetch CA certificates (end-entity identity)
  python -m est_client cacert --id device-01

  # Enroll and store key/certificate
  python -m est_client enroll --id device-01 --key-out device.key --cert-out device.crt

Secrets may be given with --secret / --enroll-secret or through the
EST_CLIENT_SECRET / EST_CLIENT_ENROLL_SECRET environment variables.
        """
    )

    parser.add_argument(
        'command',
        choices=list(REQUIRED_OPTIONS),
        help='Command to execute'
    )

    parser.add_argument(
        '--host',
        default=settings.host,
        help=f'CA host (default: {settings.host})'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=settings.port,
        help=f'CA port (default: {settings.port})'
    )

    parser.add_argument('--id', help='PSK identity (admin or end entity)')
    parser.add_argument(
        '--secret',
        default=os.environ.get('EST_CLIENT_SECRET'),
        help='PSK secret for --id'
    )

    parser.add_argument('--ca-name', help='CA name')
    parser.add_argument('--ca-profile', help='Certificate profile for the enrollment profile')
    parser.add_argument('--role', help='Role for the enrollment profile')
    parser.add_argument('--enroll-id', help='End-entity identity to register')
    parser.add_argument(
        '--enroll-secret',
        default=os.environ.get('EST_CLIENT_ENROLL_SECRET'),
        help='End-entity secret to register'
    )

    parser.add_argument(
        '--curve',
        choices=list(CURVE_CHOICES),
        default='p256',
        help='Key curve for enroll (default: p256)'
    )
    parser.add_argument(
        '--sig-alg',
        choices=list(SIGNATURE_CHOICES),
        default='ecdsa-sha256',
        help='CSR signature algorithm for enroll (default: ecdsa-sha256)'
    )
    parser.add_argument('--cn', help='Subject common name (default: --id)')
    parser.add_argument('--country', help='Subject country (2 letters)')
    parser.add_argument('--state', help='Subject state or province')
    parser.add_argument('--locality', help='Subject locality')
    parser.add_argument('--org', help='Subject organization')
    parser.add_argument('--org-unit', help='Subject organizational unit')
    parser.add_argument('--dns', action='append', default=[], help='DNS subjectAltName (repeatable)')

    parser.add_argument('--key-out', type=Path, help='Write enrolled private key here (mode 0600, required for enroll)')
    parser.add_argument('--cert-out', type=Path, help='Write certificate here')

    parser.add_argument(
        '--log-level',
        default=settings.log_level,
        help=f'Logging level (default: {settings.log_level})'
    )

    return parser


def write_private_key(path: Path, key_pem: str) -> None:
    """Write a private key readable by the owner only."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w') as f:
        f.write(key_pem)


def save_enrollment(key_out: Path, cert_out: Optional[Path], result: EnrollmentResult) -> None:
    """
    Store an enrolled key and, if requested, its certificate.

    Either both files are written or neither is left behind.
    """
    write_private_key(key_out, result.private_key_pem)
    if cert_out is None:
        return
    try:
        cert_out.write_text(result.certificate_pem)
    except OSError:
        key_out.unlink(missing_ok=True)
        raise


def run_command(args: argparse.Namespace, client: CAClient) -> None:
    """Execute one parsed command, printing its result."""
    command = args.command

    if command == 'revoke':
        client.revoke_certificate()
        print("Certificate revocation is not supported")
        return

    credentials = Credentials(identity=args.id, secret=args.secret)

    if command == 'fingerprint':
        result = client.get_ca_fingerprint(args.host, args.port, args.ca_name, credentials)
        print(f"Algorithm: {result.algorithm_id}")
        print(f"Fingerprint: {result.fingerprint_hex}")

    elif command == 'create-profile':
        client.create_enrollment_profile(
            args.host,
            args.port,
            credentials,
            Credentials(identity=args.enroll_id, secret=args.enroll_secret),
            ca_name=args.ca_name,
            ca_profile=args.ca_profile,
            role=args.role,
        )
        print(f"✓ Enrollment profile created for {args.enroll_id}")

    elif command == 'cacert':
        pem = client.get_ca_cert(args.host, args.port, credentials)
        if args.cert_out:
            args.cert_out.write_text(pem)
            print(f"✓ CA certificates written to {args.cert_out}")
        else:
            print(pem, end='')

    elif command == 'enroll':
        attributes = CertAttributes(
            common_name=args.cn or args.id,
            country=args.country,
            state=args.state,
            locality=args.locality,
            organization=args.org,
            organizational_unit=args.org_unit,
            dns_names=args.dns,
        )
        result = client.get_id_cert(
            args.host,
            args.port,
            credentials,
            curve=CURVE_CHOICES[args.curve],
            signature_algorithm=SIGNATURE_CHOICES[args.sig_alg],
            attributes=attributes,
        )
        save_enrollment(args.key_out, args.cert_out, result)
        print(f"✓ Private key written to {args.key_out}")
        if args.cert_out:
            print(f"✓ Certificate written to {args.cert_out}")
        else:
            print(result.certificate_pem, end='')


def main(argv: Optional[Sequence[str]] = None, client: Optional[CAClient] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    missing = [
        '--' + name.replace('_', '-')
        for name in REQUIRED_OPTIONS[args.command]
        if not getattr(args, name)
    ]
    if missing:
        print(f"Error: {', '.join(missing)} required for {args.command}")
        sys.exit(1)

    try:
        run_command(args, client or CAClient())

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)

    except (EstClientError, OSError) as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
