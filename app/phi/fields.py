"""Apply the field cipher to a declared subset of record keys."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from app.phi.cipher import get_field_cipher
from app.phi.ports import FieldEncryptionPort


def _transform_fields(
    record: Mapping[str, Any],
    field_names: Iterable[str],
    transform: Callable[[str], str | None],
) -> dict[str, Any]:
    result = dict(record)
    for name in field_names:
        value = result.get(name)
        if isinstance(value, str) and value:
            result[name] = transform(value)
    return result


def encrypt_fields(
    record: Mapping[str, Any],
    field_names: Iterable[str],
    *,
    cipher: FieldEncryptionPort | None = None,
) -> dict[str, Any]:
    """Return a shallow copy of ``record`` with the named string fields encrypted.

    Keys not listed, missing keys, and values that are not non-empty strings
    (``None``, numbers, booleans, empty strings) are left exactly as they are.
    The input mapping is never mutated.
    """
    cipher = cipher or get_field_cipher()
    return _transform_fields(record, field_names, cipher.encrypt)


def decrypt_fields(
    record: Mapping[str, Any],
    field_names: Iterable[str],
    *,
    cipher: FieldEncryptionPort | None = None,
) -> dict[str, Any]:
    """Inverse of :func:`encrypt_fields`; legacy plaintext values pass through."""
    cipher = cipher or get_field_cipher()
    return _transform_fields(record, field_names, cipher.decrypt)


__all__ = ["encrypt_fields", "decrypt_fields"]
