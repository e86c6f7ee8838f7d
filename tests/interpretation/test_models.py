import json
from datetime import date

import pytest
from pydantic import ValidationError

from app.interpretation.models import AIProvider, InterpretationRequest, InterpretationResult, RiskLevel
from app.interpretation.prompts import build_user_prompt
from app.phi.cipher import decrypt, looks_encrypted
from app.phi.fields import encrypt_fields
from app.phi.sensitive_fields import SENSITIVE_LAB_RESULT_FIELDS


def _result(**overrides):
    values = {
        "provider": AIProvider.ANTHROPIC,
        "model": "claude-test",
        "interpretation": "Potassium is slightly low.",
        "summary": "Mild hypokalemia",
        "risk_level": RiskLevel.LOW,
        "confidence": 0.7,
        "recommendations": ["Repeat electrolytes", "Review diuretics"],
        "token_usage": 10,
        "latency_ms": 250,
    }
    values.update(overrides)
    return InterpretationResult(**values)


def test_from_encrypted_lab_record():
    stored = encrypt_fields(
        {
            "testName": "Potassium",
            "resultValue": "3.2",
            "unit": "mmol/L",
            "referenceRange": "3.5-5.1",
            "datePerformed": date(2024, 6, 3),
            "notes": "On furosemide",
        },
        SENSITIVE_LAB_RESULT_FIELDS,
    )

    request = InterpretationRequest.from_lab_record(stored)

    assert request.result_value == "3.2"
    assert request.notes == "On furosemide"
    assert request.date_performed == "2024-06-03"


def test_user_prompt_lines():
    request = InterpretationRequest(
        test_name="Potassium",
        result_value="3.2",
        unit="mmol/L",
        date_performed="2024-06-03",
    )

    prompt = build_user_prompt(request)

    assert "Test Name: Potassium\n" in prompt
    assert "Result Value: 3.2 mmol/L\n" in prompt
    assert "Reference Range" not in prompt
    assert "Clinical Notes" not in prompt


def test_storage_record_encrypts_sensitive_fields():
    record = _result().to_storage_record()

    for name in ("interpretation", "summary", "recommendations"):
        assert looks_encrypted(record[name])
    assert record["riskLevel"] == "LOW"
    assert record["provider"] == "anthropic"
    assert json.loads(decrypt(record["recommendations"])) == ["Repeat electrolytes", "Review diuretics"]


def test_confidence_bounds():
    with pytest.raises(ValidationError):
        _result(confidence=1.5)
