"""PHI-safe logging helpers."""

from __future__ import annotations

import hashlib
from typing import Any, Iterable, Mapping


def safe_log_text(text: str | None) -> str:
    """Return a PHI-safe representation of a field value or token.

    Never returns the raw value. Only a short hash and the length are
    emitted so logs can correlate repeated values without storing PHI or
    ciphertext.
    """
    normalized = (text or "").strip()
    if not normalized:
        return "<empty>"
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:12]
    return f"<sha256={digest} len={len(normalized)}>"


def safe_log_fields(record: Mapping[str, Any], field_names: Iterable[str]) -> str:
    """Summarize which sensitive fields of a record carry a value."""
    present = sorted(name for name in field_names if isinstance(record.get(name), str) and record.get(name))
    return ",".join(present) if present else "<none>"


__all__ = ["safe_log_text", "safe_log_fields"]
