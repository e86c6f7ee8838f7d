import json

import pytest
from typer.testing import CliRunner

from app.phi.cli import app
from app.phi.cipher import looks_encrypted

runner = CliRunner()


@pytest.fixture
def patient_file(tmp_path):
    path = tmp_path / "patient.json"
    path.write_text(
        json.dumps({"id": "pat_1", "firstName": "Ada", "allergies": "Penicillin", "notes": None}),
        encoding="utf-8",
    )
    return path


def test_encrypt_then_decrypt_record(tmp_path, patient_file):
    result = runner.invoke(app, ["encrypt-record", "patient", str(patient_file)])
    assert result.exit_code == 0, result.output

    encrypted = json.loads(result.stdout)
    assert looks_encrypted(encrypted["allergies"])
    assert encrypted["firstName"] == "Ada"
    assert encrypted["notes"] is None

    encrypted_path = tmp_path / "patient.enc.json"
    encrypted_path.write_text(result.stdout, encoding="utf-8")
    result = runner.invoke(app, ["decrypt-record", "patient", str(encrypted_path)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["allergies"] == "Penicillin"


def test_encrypt_record_accepts_a_list(tmp_path):
    path = tmp_path / "equipment.json"
    path.write_text(json.dumps([{"notes": "a"}, {"notes": "b"}]), encoding="utf-8")

    result = runner.invoke(app, ["encrypt-record", "equipment", str(path)])

    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert len(rows) == 2
    assert all(looks_encrypted(row["notes"]) for row in rows)


def test_unknown_entity_exits_2(patient_file):
    result = runner.invoke(app, ["encrypt-record", "invoice", str(patient_file)])
    assert result.exit_code == 2


def test_non_object_payload_exits_2(tmp_path):
    path = tmp_path / "scalar.json"
    path.write_text("42", encoding="utf-8")
    result = runner.invoke(app, ["encrypt-record", "patient", str(path)])
    assert result.exit_code == 2


@pytest.mark.parametrize("content", [b"{not json", b"\xff\xfe\x00garbage"])
def test_unreadable_file_exits_2(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_bytes(content)
    result = runner.invoke(app, ["encrypt-record", "patient", str(path)])
    assert result.exit_code == 2
    assert not isinstance(result.exception, (ValueError, UnicodeDecodeError))


def test_encrypt_without_secret_exits_1(without_secret, patient_file):
    result = runner.invoke(app, ["encrypt-record", "patient", str(patient_file)])
    assert result.exit_code == 1


def test_check_config_ok():
    result = runner.invoke(app, ["check-config"])
    assert result.exit_code == 0, result.output


def test_check_config_without_secret(without_secret):
    result = runner.invoke(app, ["check-config"])
    assert result.exit_code == 1


def test_fields_for_one_entity():
    result = runner.invoke(app, ["fields", "equipment"])
    assert result.exit_code == 0, result.output
    assert "notes" in result.stdout
