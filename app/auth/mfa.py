"""TOTP secrets and single-use backup codes for multi-factor login.

Everything persisted by this module is an encrypted token produced by the
field cipher: the TOTP secret itself, and a JSON list of salted SHA-256
hashes of the backup codes. Functions here never persist anything; callers
store the returned blobs on the user record.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass, field
from datetime import datetime

import pyotp

from app.common.logger import get_logger
from app.phi.cipher import get_field_cipher
from app.phi.ports import FieldEncryptionPort
from config.settings import get_mfa_settings

logger = get_logger("auth.mfa")

TOTP_DIGITS = 6
TOTP_PERIOD_SECONDS = 30
TOTP_VALID_WINDOW = 1
TOTP_DIGEST = hashlib.sha1
TOTP_SECRET_LENGTH = 32  # base32 chars -> 160 bits

BACKUP_CODE_COUNT = 10
BACKUP_CODE_BYTES = 4
BACKUP_HASH_SCHEME = "sha256"
BACKUP_SALT_BYTES = 16


@dataclass(frozen=True)
class MfaEnrollment:
    encrypted_secret: str
    otpauth_uri: str = field(repr=False)
    # Base32 for manual entry; the caller decides whether to show it.
    secret: str = field(repr=False)


@dataclass(frozen=True)
class BackupCodeSet:
    plaintext_codes: list[str] = field(repr=False)
    encrypted_codes: str


@dataclass(frozen=True)
class BackupCodeVerification:
    valid: bool
    updated_encrypted_codes: str


def _build_totp(secret: str, issuer: str | None = None) -> pyotp.TOTP:
    return pyotp.TOTP(
        secret,
        digits=TOTP_DIGITS,
        digest=TOTP_DIGEST,
        interval=TOTP_PERIOD_SECONDS,
        issuer=issuer,
    )


def generate_mfa_secret(
    label: str,
    *,
    issuer: str | None = None,
    cipher: FieldEncryptionPort | None = None,
) -> MfaEnrollment:
    """Create a fresh TOTP secret bound to ``label`` (usually the user's email)."""
    cipher = cipher or get_field_cipher()
    issuer = issuer or get_mfa_settings().issuer

    secret = pyotp.random_base32(length=TOTP_SECRET_LENGTH)
    totp = _build_totp(secret, issuer)
    otpauth_uri = totp.provisioning_uri(name=label, issuer_name=issuer)

    return MfaEnrollment(
        encrypted_secret=cipher.encrypt(secret),
        otpauth_uri=otpauth_uri,
        secret=secret,
    )


def verify_mfa_token(
    encrypted_secret: str,
    token: str,
    *,
    cipher: FieldEncryptionPort | None = None,
    for_time: datetime | int | None = None,
) -> bool:
    """Check a submitted 6-digit code against the stored secret (±1 period)."""
    cipher = cipher or get_field_cipher()
    code = (token or "").strip()
    if len(code) != TOTP_DIGITS or not code.isdigit():
        return False

    secret = cipher.decrypt(encrypted_secret)
    if not secret:
        return False

    try:
        return _build_totp(secret).verify(code, for_time=for_time, valid_window=TOTP_VALID_WINDOW)
    except (binascii.Error, ValueError):
        # Undecryptable blobs come back as the token itself, which is not base32.
        logger.warning("Stored MFA secret could not be decoded; rejecting token")
        return False


def _normalize_backup_code(code: str) -> str:
    return (code or "").strip().upper()


def _hash_backup_code(code: str, salt: bytes | None = None) -> str:
    salt = salt if salt is not None else secrets.token_bytes(BACKUP_SALT_BYTES)
    digest = hashlib.sha256(salt + code.encode("utf-8")).hexdigest()
    return f"{BACKUP_HASH_SCHEME}${salt.hex()}${digest}"


def _matches_backup_hash(code: str, stored: str) -> bool:
    parts = stored.split("$")
    if len(parts) == 3 and parts[0] == BACKUP_HASH_SCHEME:
        try:
            salt = bytes.fromhex(parts[1])
        except ValueError:
            return False
        return hmac.compare_digest(_hash_backup_code(code, salt).encode("utf-8"), stored.encode("utf-8"))
    # Unsalted hex digests from enrollments made before salting.
    legacy = hashlib.sha256(code.encode("utf-8")).hexdigest()
    return hmac.compare_digest(legacy.encode("utf-8"), stored.encode("utf-8"))


def _serialize_hashes(hashes: list[str]) -> str:
    return json.dumps(hashes, separators=(",", ":"))


def generate_backup_codes(*, cipher: FieldEncryptionPort | None = None) -> BackupCodeSet:
    """Create the 10 recovery codes shown once to the user at enrollment."""
    cipher = cipher or get_field_cipher()

    codes = [secrets.token_hex(BACKUP_CODE_BYTES).upper() for _ in range(BACKUP_CODE_COUNT)]
    hashes = [_hash_backup_code(code) for code in codes]

    return BackupCodeSet(
        plaintext_codes=codes,
        encrypted_codes=cipher.encrypt(_serialize_hashes(hashes)),
    )


def _load_hashes(encrypted_codes: str, cipher: FieldEncryptionPort) -> list[str] | None:
    raw = cipher.decrypt(encrypted_codes)
    try:
        hashes = json.loads(raw or "")
    except ValueError:
        return None
    if not isinstance(hashes, list) or not all(isinstance(item, str) for item in hashes):
        return None
    return hashes


def verify_backup_code(
    encrypted_codes: str,
    code: str,
    *,
    cipher: FieldEncryptionPort | None = None,
) -> BackupCodeVerification:
    """Consume one backup code.

    On success the matching hash is removed and the remaining list is
    re-encrypted; the caller must persist ``updated_encrypted_codes``. On
    failure the original blob is returned untouched.
    """
    cipher = cipher or get_field_cipher()
    rejected = BackupCodeVerification(valid=False, updated_encrypted_codes=encrypted_codes)

    normalized = _normalize_backup_code(code)
    if not normalized:
        return rejected

    hashes = _load_hashes(encrypted_codes, cipher)
    if hashes is None:
        logger.warning("Stored backup codes could not be decoded; rejecting code")
        return rejected

    for index, stored in enumerate(hashes):
        if _matches_backup_hash(normalized, stored):
            remaining = hashes[:index] + hashes[index + 1 :]
            return BackupCodeVerification(
                valid=True,
                updated_encrypted_codes=cipher.encrypt(_serialize_hashes(remaining)),
            )
    return rejected


def count_backup_codes(encrypted_codes: str, *, cipher: FieldEncryptionPort | None = None) -> int:
    """Number of unused backup codes left in the stored blob (0 if unreadable)."""
    hashes = _load_hashes(encrypted_codes, cipher or get_field_cipher())
    return len(hashes) if hashes is not None else 0


__all__ = [
    "BACKUP_CODE_COUNT",
    "BackupCodeSet",
    "BackupCodeVerification",
    "MfaEnrollment",
    "count_backup_codes",
    "generate_backup_codes",
    "generate_mfa_secret",
    "verify_backup_code",
    "verify_mfa_token",
]
