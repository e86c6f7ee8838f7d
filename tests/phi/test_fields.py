import pytest

from app.common.exceptions import UnknownEntityError
from app.phi.cipher import FieldCipher, looks_encrypted
from app.phi.fields import decrypt_fields, encrypt_fields
from app.phi.sensitive_fields import (
    SENSITIVE_EQUIPMENT_FIELDS,
    SENSITIVE_FIELDS_BY_ENTITY,
    SENSITIVE_LAB_RESULT_FIELDS,
    SENSITIVE_PATIENT_FIELDS,
    get_sensitive_fields,
)


@pytest.fixture
def patient_record():
    return {
        "id": "pat_123",
        "firstName": "Ada",
        "dateOfBirth": "1980-02-01",
        "allergies": "Penicillin",
        "medications": "Metformin 500mg",
        "notes": "",
        "emergencyContact": None,
        "emergencyPhone": 5551234,
    }


class TestEncryptFields:
    def test_only_listed_fields_are_encrypted(self, patient_record):
        result = encrypt_fields(patient_record, SENSITIVE_PATIENT_FIELDS)

        assert looks_encrypted(result["allergies"])
        assert looks_encrypted(result["medications"])
        assert result["id"] == "pat_123"
        assert result["firstName"] == "Ada"
        assert result["dateOfBirth"] == "1980-02-01"

    def test_non_string_and_empty_values_are_untouched(self, patient_record):
        result = encrypt_fields(patient_record, SENSITIVE_PATIENT_FIELDS)

        assert result["notes"] == ""
        assert result["emergencyContact"] is None
        assert result["emergencyPhone"] == 5551234

    def test_boolean_values_are_untouched(self):
        result = encrypt_fields({"notes": True}, ("notes",))
        assert result["notes"] is True

    def test_missing_keys_are_not_added(self, patient_record):
        result = encrypt_fields(patient_record, SENSITIVE_PATIENT_FIELDS)
        assert "medicalConditions" not in result
        assert set(result) == set(patient_record)

    def test_input_is_not_mutated(self, patient_record):
        snapshot = dict(patient_record)
        encrypt_fields(patient_record, SENSITIVE_PATIENT_FIELDS)
        assert patient_record == snapshot

    def test_round_trip(self, patient_record):
        encrypted = encrypt_fields(patient_record, SENSITIVE_PATIENT_FIELDS)
        assert decrypt_fields(encrypted, SENSITIVE_PATIENT_FIELDS) == patient_record

    def test_explicit_cipher_is_used(self):
        cipher = FieldCipher(secret="another-operator-secret")
        encrypted = encrypt_fields({"notes": "calibrated"}, SENSITIVE_EQUIPMENT_FIELDS, cipher=cipher)

        # The configured secret cannot read it; the matching cipher can.
        assert decrypt_fields(encrypted, SENSITIVE_EQUIPMENT_FIELDS) == encrypted
        assert decrypt_fields(encrypted, SENSITIVE_EQUIPMENT_FIELDS, cipher=cipher) == {"notes": "calibrated"}


class TestDecryptFields:
    def test_legacy_plaintext_passes_through(self):
        row = {"resultValue": "5.4", "notes": "fasting sample", "testName": "HbA1c"}
        assert decrypt_fields(row, SENSITIVE_LAB_RESULT_FIELDS) == row

    def test_mixed_encrypted_and_legacy_values(self):
        encrypted = encrypt_fields({"resultValue": "5.4"}, SENSITIVE_LAB_RESULT_FIELDS)
        row = {**encrypted, "notes": "entered before encryption was enabled"}

        result = decrypt_fields(row, SENSITIVE_LAB_RESULT_FIELDS)

        assert result == {"resultValue": "5.4", "notes": "entered before encryption was enabled"}


class TestRegistry:
    def test_lists_have_no_duplicates_or_blanks(self):
        for entity, names in SENSITIVE_FIELDS_BY_ENTITY.items():
            assert names, entity
            assert len(set(names)) == len(names), entity
            assert all(name.strip() for name in names), entity

    def test_queryable_fields_are_not_listed(self):
        patient = get_sensitive_fields("patient")
        for name in ("firstName", "lastName", "dateOfBirth", "id"):
            assert name not in patient

    def test_lab_result_fields(self):
        assert get_sensitive_fields("lab_result") == (
            "resultValue",
            "notes",
            "interpretationText",
            "recommendations",
        )

    @pytest.mark.parametrize("name", ["lab-result", "Lab Result", " LAB_RESULT "])
    def test_entity_names_are_normalized(self, name):
        assert get_sensitive_fields(name) == SENSITIVE_LAB_RESULT_FIELDS

    def test_unknown_entity(self):
        with pytest.raises(UnknownEntityError) as excinfo:
            get_sensitive_fields("invoice")
        assert "invoice" in str(excinfo.value)

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            SENSITIVE_FIELDS_BY_ENTITY["invoice"] = ("total",)
