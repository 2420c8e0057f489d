"""
Integration tests for the clinician flags API.

Part of PT-115: Clinician flags
"""
from datetime import datetime, timezone

import pytest

from application.ports.prescription_repository import ProgramRecord
from domain.models import ClinicianFlag, FlagType
from tests.fakes import CLINICIAN_ID, PATIENT_ID, PROGRAM_ID

pytestmark = pytest.mark.integration


def add_flag(store, *, clinician_id=CLINICIAN_ID, program_id=PROGRAM_ID, resolved=False,
             flag_type=FlagType.PAIN_FLARE):
    return store.flags.seed_flag(ClinicianFlag(
        program_id=program_id,
        patient_id=PATIENT_ID,
        clinician_id=clinician_id,
        flag_type=flag_type,
        flag_reason="test flag",
        flag_date=datetime.now(timezone.utc).date(),
        resolved=resolved,
    ))


def add_program(store, program_id="program-2", clinician_id="clinician-2"):
    return store.prescriptions.seed_program(
        ProgramRecord(id=program_id, patient_id=PATIENT_ID, clinician_id=clinician_id)
    )


class TestListFlags:

    def test_empty(self, client):
        assert client.get("/flags").json() == {"flags": [], "total": 0}

    def test_defaults_to_caller(self, client, fake_store):
        first = add_flag(fake_store)
        second = add_flag(fake_store, flag_type=FlagType.BLOCK_COMPLETE)
        add_program(fake_store)
        add_flag(fake_store, clinician_id="clinician-2", program_id="program-2")
        add_flag(fake_store, resolved=True)

        body = client.get("/flags").json()

        assert body["total"] == 2
        assert [f["id"] for f in body["flags"]] == [second.id, first.id]

    def test_explicit_clinician(self, client, fake_store):
        add_program(fake_store)
        add_flag(fake_store, clinician_id="clinician-2", program_id="program-2")

        body = client.get("/flags", params={"clinician_id": "clinician-2"}).json()

        assert body["total"] == 1
        assert body["flags"][0]["clinician_id"] == "clinician-2"

    def test_reassigned_program_moves_to_new_owner(self, client, fake_store):
        flag = add_flag(fake_store)
        add_program(fake_store, program_id=PROGRAM_ID)

        assert client.get("/flags").json()["total"] == 0
        body = client.get("/flags", params={"clinician_id": "clinician-2"}).json()
        assert [f["id"] for f in body["flags"]] == [flag.id]


class TestProgramFlags:

    def test_include_resolved_by_default(self, client, fake_store):
        add_flag(fake_store)
        add_flag(fake_store, resolved=True)
        add_flag(fake_store, program_id="program-2")

        assert client.get(f"/flags/program/{PROGRAM_ID}").json()["total"] == 2

    def test_unresolved_only(self, client, fake_store):
        add_flag(fake_store)
        add_flag(fake_store, resolved=True)

        body = client.get(
            f"/flags/program/{PROGRAM_ID}", params={"include_resolved": "false"}
        ).json()

        assert body["total"] == 1
        assert body["flags"][0]["resolved"] is False


class TestResolveFlag:

    def test_resolve(self, client, fake_store):
        flag = add_flag(fake_store)

        response = client.patch(f"/flags/{flag.id}/resolve")

        assert response.status_code == 200
        body = response.json()
        assert body["resolved"] is True
        assert body["resolved_by"] == CLINICIAN_ID
        assert body["resolved_at"] is not None
        assert client.get("/flags").json()["total"] == 0

    def test_unknown_flag(self, client):
        response = client.patch("/flags/flag-404/resolve")
        assert response.status_code == 404
        assert response.json()["detail"] == "Flag not found: flag-404"
