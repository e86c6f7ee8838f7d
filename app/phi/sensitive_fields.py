"""Per-entity lists of fields that are encrypted at rest.

Names, dates, identifiers, statuses and enums are deliberately absent so they
stay queryable in the database. Changing any list is a data migration: rows
written under the old list keep their previous encoding.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from app.common.exceptions import UnknownEntityError

SENSITIVE_PATIENT_FIELDS: tuple[str, ...] = (
    "allergies",
    "medicalConditions",
    "medications",
    "notes",
    "emergencyContact",
    "emergencyPhone",
)

SENSITIVE_LAB_RESULT_FIELDS: tuple[str, ...] = (
    "resultValue",
    "notes",
    "interpretationText",
    "recommendations",
)

SENSITIVE_INTERPRETATION_FIELDS: tuple[str, ...] = (
    "interpretation",
    "summary",
    "recommendations",
)

SENSITIVE_MEDICAL_HISTORY_FIELDS: tuple[str, ...] = (
    "medicalConditions",
    "medications",
    "notes",
)

SENSITIVE_EYE_CONSULTATION_FIELDS: tuple[str, ...] = (
    "chiefComplaint",
    "diagnosis",
    "plan",
)

SENSITIVE_REPORT_FIELDS: tuple[str, ...] = (
    "content",
    "summary",
    "keyFindings",
)

SENSITIVE_EQUIPMENT_FIELDS: tuple[str, ...] = ("notes",)

SENSITIVE_PREDICTION_ALERT_FIELDS: tuple[str, ...] = ("recommendedAction",)

SENSITIVE_FIELDS_BY_ENTITY: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "patient": SENSITIVE_PATIENT_FIELDS,
        "lab_result": SENSITIVE_LAB_RESULT_FIELDS,
        "interpretation": SENSITIVE_INTERPRETATION_FIELDS,
        "medical_history": SENSITIVE_MEDICAL_HISTORY_FIELDS,
        "eye_consultation": SENSITIVE_EYE_CONSULTATION_FIELDS,
        "report": SENSITIVE_REPORT_FIELDS,
        "equipment": SENSITIVE_EQUIPMENT_FIELDS,
        "prediction_alert": SENSITIVE_PREDICTION_ALERT_FIELDS,
    }
)


def _normalize_entity(entity: str) -> str:
    return entity.strip().lower().replace("-", "_").replace(" ", "_")


def get_sensitive_fields(entity: str) -> tuple[str, ...]:
    """Look up the field list for an entity name (``lab-result`` == ``lab_result``)."""
    key = _normalize_entity(entity)
    try:
        return SENSITIVE_FIELDS_BY_ENTITY[key]
    except KeyError:
        raise UnknownEntityError(entity) from None


__all__ = [
    "SENSITIVE_PATIENT_FIELDS",
    "SENSITIVE_LAB_RESULT_FIELDS",
    "SENSITIVE_INTERPRETATION_FIELDS",
    "SENSITIVE_MEDICAL_HISTORY_FIELDS",
    "SENSITIVE_EYE_CONSULTATION_FIELDS",
    "SENSITIVE_REPORT_FIELDS",
    "SENSITIVE_EQUIPMENT_FIELDS",
    "SENSITIVE_PREDICTION_ALERT_FIELDS",
    "SENSITIVE_FIELDS_BY_ENTITY",
    "get_sensitive_fields",
]
