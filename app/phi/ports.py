"""Ports/interfaces for field encryption.

The codec, MFA manager and persistence helpers depend on this protocol so
tests and alternate key backends can swap in their own cipher.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class FieldEncryptionPort(Protocol):
    """Abstraction for encrypting/decrypting a single field value."""

    def encrypt(self, plaintext: str | None) -> str | None:
        """Return a serialized token, or the input unchanged when empty."""

    def decrypt(self, token: str | None) -> str | None:
        """Return the plaintext, or the input unchanged when it is not a valid token."""


__all__ = ["FieldEncryptionPort"]
