"""Multi-factor authentication secrets and recovery codes."""

from app.auth.mfa import (
    BackupCodeSet,
    BackupCodeVerification,
    MfaEnrollment,
    count_backup_codes,
    generate_backup_codes,
    generate_mfa_secret,
    verify_backup_code,
    verify_mfa_token,
)

__all__ = [
    "BackupCodeSet",
    "BackupCodeVerification",
    "MfaEnrollment",
    "count_backup_codes",
    "generate_backup_codes",
    "generate_mfa_secret",
    "verify_backup_code",
    "verify_mfa_token",
]
