"""PHI field encryption package.

Key derivation, the AES-GCM field cipher, the field-set codec and the
registry of which fields are encrypted per entity.
"""

from app.phi.cipher import FieldCipher, decrypt, encrypt, get_field_cipher, looks_encrypted
from app.phi.fields import decrypt_fields, encrypt_fields
from app.phi.keys import derive_key
from app.phi.sensitive_fields import (
    SENSITIVE_EQUIPMENT_FIELDS,
    SENSITIVE_EYE_CONSULTATION_FIELDS,
    SENSITIVE_FIELDS_BY_ENTITY,
    SENSITIVE_INTERPRETATION_FIELDS,
    SENSITIVE_LAB_RESULT_FIELDS,
    SENSITIVE_MEDICAL_HISTORY_FIELDS,
    SENSITIVE_PATIENT_FIELDS,
    SENSITIVE_PREDICTION_ALERT_FIELDS,
    SENSITIVE_REPORT_FIELDS,
    get_sensitive_fields,
)

__all__ = [
    "FieldCipher",
    "decrypt",
    "decrypt_fields",
    "derive_key",
    "encrypt",
    "encrypt_fields",
    "get_field_cipher",
    "get_sensitive_fields",
    "looks_encrypted",
    "SENSITIVE_EQUIPMENT_FIELDS",
    "SENSITIVE_EYE_CONSULTATION_FIELDS",
    "SENSITIVE_FIELDS_BY_ENTITY",
    "SENSITIVE_INTERPRETATION_FIELDS",
    "SENSITIVE_LAB_RESULT_FIELDS",
    "SENSITIVE_MEDICAL_HISTORY_FIELDS",
    "SENSITIVE_PATIENT_FIELDS",
    "SENSITIVE_PREDICTION_ALERT_FIELDS",
    "SENSITIVE_REPORT_FIELDS",
]
