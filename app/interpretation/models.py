"""Request/response models for AI lab-result interpretation."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from app.phi.cipher import get_field_cipher
from app.phi.fields import decrypt_fields, encrypt_fields
from app.phi.ports import FieldEncryptionPort
from app.phi.sensitive_fields import (
    SENSITIVE_INTERPRETATION_FIELDS,
    SENSITIVE_LAB_RESULT_FIELDS,
)


class AIProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class RiskLevel(str, Enum):
    NORMAL = "NORMAL"
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class InterpretationRequest(BaseModel):
    """Decrypted lab result handed to an AI provider."""

    test_name: str
    result_value: str
    unit: str | None = None
    reference_range: str | None = None
    date_performed: str
    notes: str | None = None

    @classmethod
    def from_lab_record(
        cls,
        record: Mapping[str, Any],
        *,
        cipher: FieldEncryptionPort | None = None,
    ) -> "InterpretationRequest":
        """Build a request from a stored (camelCase, encrypted) lab result row."""
        plain = decrypt_fields(record, SENSITIVE_LAB_RESULT_FIELDS, cipher=cipher)
        performed = plain.get("datePerformed")
        if hasattr(performed, "isoformat"):
            performed = performed.isoformat()[:10]
        return cls(
            test_name=str(plain.get("testName") or ""),
            result_value=str(plain.get("resultValue") or ""),
            unit=plain.get("unit") or None,
            reference_range=plain.get("referenceRange") or None,
            date_performed=str(performed or ""),
            notes=plain.get("notes") or None,
        )


class ProviderPayload(BaseModel):
    """The JSON object each provider is asked to return."""

    interpretation: str = ""
    summary: str = ""
    risk_level: str = Field(default="", alias="riskLevel")
    confidence: float | None = None
    recommendations: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InterpretationResult(BaseModel):
    provider: AIProvider
    model: str
    interpretation: str
    summary: str
    risk_level: RiskLevel
    confidence: float = Field(ge=0.0, le=1.0)
    recommendations: list[str] = Field(default_factory=list)
    token_usage: int = 0
    latency_ms: int = 0

    def to_storage_record(self, *, cipher: FieldEncryptionPort | None = None) -> dict[str, Any]:
        """Row for the interpretation table with sensitive fields encrypted.

        Recommendations are JSON-encoded before encryption.
        """
        record = {
            "provider": self.provider.value,
            "model": self.model,
            "interpretation": self.interpretation,
            "summary": self.summary,
            "riskLevel": self.risk_level.value,
            "confidence": self.confidence,
            "recommendations": json.dumps(self.recommendations),
            "tokenUsage": self.token_usage,
            "latencyMs": self.latency_ms,
        }
        return encrypt_fields(
            record,
            SENSITIVE_INTERPRETATION_FIELDS,
            cipher=cipher or get_field_cipher(),
        )


__all__ = [
    "AIProvider",
    "InterpretationRequest",
    "InterpretationResult",
    "ProviderPayload",
    "RiskLevel",
]
