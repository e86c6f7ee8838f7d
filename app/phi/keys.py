"""Deterministic key derivation for field-level encryption.

The key is a pure function of the operator secret: the scrypt salt is itself
derived from the secret and a fixed application label, so every process that
shares ``ENCRYPTION_SECRET`` reproduces the same key with no stored salt.
Cost parameters are fixed (N=2**14, r=8, p=1); changing them makes every
stored token unreadable.

Never log the secret or the derived key.
"""

from __future__ import annotations

from functools import lru_cache

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from app.common.exceptions import ConfigurationError
from config.settings import ENCRYPTION_SECRET_ENV, get_encryption_settings

SALT_LABEL = b"ndumed-salt-v1"
SALT_LENGTH = 16
KEY_LENGTH = 32

SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1


def _scrypt(material: bytes, salt: bytes, length: int) -> bytes:
    kdf = Scrypt(salt=salt, length=length, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(material)


def resolve_secret(secret: str | None = None) -> str:
    """Return the explicit secret or the configured one.

    Raises :class:`ConfigurationError` when neither is available.
    """
    if secret:
        return secret
    configured = get_encryption_settings().secret_value()
    if not configured:
        raise ConfigurationError(
            f"{ENCRYPTION_SECRET_ENV} environment variable is required for field-level encryption",
            variable=ENCRYPTION_SECRET_ENV,
        )
    return configured


@lru_cache(maxsize=8)
def _derive_key_for(secret: str) -> bytes:
    material = secret.encode("utf-8")
    salt = _scrypt(material, SALT_LABEL, SALT_LENGTH)
    return _scrypt(material, salt, KEY_LENGTH)


def derive_key(secret: str | None = None) -> bytes:
    """Derive the 32-byte AES key from the operator secret."""
    return _derive_key_for(resolve_secret(secret))


__all__ = ["KEY_LENGTH", "SALT_LABEL", "SALT_LENGTH", "derive_key", "resolve_secret"]
