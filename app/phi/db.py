"""SQLAlchemy column type for encrypted text fields.

``EncryptedText`` wraps the field cipher around ``Text`` so a mapped column
is encrypted on write and decrypted on read. Legacy plaintext rows load
unchanged, matching :func:`app.phi.cipher.decrypt`.
"""

from __future__ import annotations

from sqlalchemy import Text, TypeDecorator

from app.phi.cipher import get_field_cipher
from app.phi.ports import FieldEncryptionPort


class EncryptedText(TypeDecorator):
    """Text column whose non-empty values are stored as encrypted tokens."""

    impl = Text
    cache_ok = True

    def __init__(self, *args, cipher: FieldEncryptionPort | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._cipher = cipher

    @property
    def cipher(self) -> FieldEncryptionPort:
        return self._cipher or get_field_cipher()

    def process_bind_param(self, value, dialect):
        if value is None or value == "":
            return value
        if not isinstance(value, str):
            raise TypeError(f"EncryptedText expects str values, got {type(value).__name__}")
        return self.cipher.encrypt(value)

    def process_result_value(self, value, dialect):
        if value is None or value == "":
            return value
        return self.cipher.decrypt(value)


__all__ = ["EncryptedText"]
