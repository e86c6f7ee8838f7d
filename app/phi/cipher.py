"""AES-256-GCM cipher for individual record fields.

Tokens are ``<b64 nonce>:<b64 tag>:<b64 ciphertext>``. Anything that does not
have that shape is treated as legacy plaintext and returned as-is on decrypt,
so the read path can run over historical rows without a migration flag.
"""

from __future__ import annotations

import base64
import binascii
import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.common.logger import get_logger
from app.phi.keys import derive_key

logger = get_logger("phi.cipher")

NONCE_LENGTH = 16
TAG_LENGTH = 16
DELIMITER = ":"


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _b64decode(segment: str) -> bytes:
    return base64.b64decode(segment.encode("ascii"), validate=True)


def split_token(value: str) -> tuple[str, str, str] | None:
    """Return the three token segments, or None for non-token strings."""
    if DELIMITER not in value:
        return None
    parts = value.split(DELIMITER)
    if len(parts) != 3:
        return None
    return parts[0], parts[1], parts[2]


class FieldCipher:
    """Encrypt/decrypt field values with a key derived from the operator secret.

    ``secret`` may be injected explicitly; otherwise it is resolved from
    ``ENCRYPTION_SECRET`` on each operation (the derived key is memoized).
    """

    def __init__(self, secret: str | None = None) -> None:
        self._secret = secret

    def __repr__(self) -> str:
        source = "explicit" if self._secret else "env"
        return f"FieldCipher(secret=<{source}>)"

    def _key(self) -> bytes:
        return derive_key(self._secret)

    def encrypt(self, plaintext: str | None) -> str | None:
        if not plaintext:
            return plaintext

        key = self._key()
        nonce = os.urandom(NONCE_LENGTH)
        sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return DELIMITER.join((_b64encode(nonce), _b64encode(tag), _b64encode(ciphertext)))

    def decrypt(self, token: str | None) -> str | None:
        if not token:
            return token

        segments = split_token(token)
        if segments is None:
            return token

        # Resolved outside the try: a missing secret is a configuration fault,
        # not a decryption failure.
        key = self._key()
        try:
            nonce = _b64decode(segments[0])
            tag = _b64decode(segments[1])
            ciphertext = _b64decode(segments[2])
            if len(nonce) != NONCE_LENGTH or len(tag) != TAG_LENGTH:
                return token
            plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, binascii.Error, ValueError) as exc:
            logger.debug("Field decrypt failed; returning stored value unchanged (%s)", type(exc).__name__)
            return token


def looks_encrypted(value: object) -> bool:
    """True when ``value`` has the token shape (not a proof it decrypts)."""
    return isinstance(value, str) and split_token(value) is not None


@lru_cache(maxsize=1)
def get_field_cipher() -> FieldCipher:
    """Process-wide cipher bound to the configured operator secret."""
    return FieldCipher()


def encrypt(plaintext: str | None) -> str | None:
    """Encrypt a field value with the configured operator secret."""
    return get_field_cipher().encrypt(plaintext)


def decrypt(token: str | None) -> str | None:
    """Decrypt a field value; legacy or foreign data is returned unchanged."""
    return get_field_cipher().decrypt(token)


__all__ = [
    "DELIMITER",
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "FieldCipher",
    "decrypt",
    "encrypt",
    "get_field_cipher",
    "looks_encrypted",
    "split_token",
]
