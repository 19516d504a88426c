# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Identity/secret handling for PSK handshakes.

A CredentialScope lives exactly as long as one client call. It is created
by the session driver, handed to the secure session as its PSK lookup and
wiped when the call finishes, whatever the outcome.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    """PSK identity and secret for one operation."""
    identity: str
    secret: str = field(repr=False)


def wipe_bytearray(buf: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    for i in range(len(buf)):
        buf[i] = 0


class CredentialScope:
    """
    Holds the credential pair installed for the call in flight.

    Example:
        >>> scope = CredentialScope()
        >>> with scope:
        ...     scope.begin(Credentials("device-01", "s3cret"))
        ...     scope.lookup("device-01")
        's3cret'
        >>> scope.lookup("device-01")
        ''
    """

    def __init__(self):
        self._identity: Optional[str] = None
        self._secret: Optional[bytearray] = None

    @property
    def active(self) -> bool:
        """True while a credential pair is installed."""
        return self._identity is not None

    def begin(self, credentials: Credentials) -> None:
        """
        Install the credential pair for this call.

        Raises:
            RuntimeError: If a pair is already installed in this scope
        """
        if self.active:
            raise RuntimeError("Credential scope already holds an identity")
        self._identity = credentials.identity
        self._secret = bytearray(credentials.secret.encode('utf-8'))

    def lookup(self, identity: Optional[str]) -> str:
        """Return the secret for identity, or "" if it is not the installed one."""
        if not identity or identity != self._identity or self._secret is None:
            return ""
        return self._secret.decode('utf-8')

    def end(self) -> None:
        """Wipe and remove the installed pair. Safe to call repeatedly."""
        if self._secret is not None:
            wipe_bytearray(self._secret)
        self._secret = None
        self._identity = None

    def __enter__(self) -> "CredentialScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.end()
