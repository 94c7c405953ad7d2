# emr_core/patients/tests/test_patient_api.py
from datetime import timedelta

import pytest
from django.utils import timezone

from emr_core.conftest import PATIENT_PAYLOAD
from emr_core.patients.models import Patient
from emr_core.patients.services import PatientService
from emr_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db

URL = "/api/v1/patients/"


def test_create_returns_201_with_generated_code(api_client, tenant, facility):
    res = api_client.post(URL, PATIENT_PAYLOAD, format="json", **scoped(tenant, facility))
    assert res.status_code == 201, res.data
    assert res.data["patient_code"].startswith("P")
    assert res.data["full_name"] == "Amina Otieno"
    assert res.data["allergies"] == []


def test_create_validation_error_envelope(api_client, tenant, facility):
    payload = dict(PATIENT_PAYLOAD, first_name="A", gender="UNKNOWN", date_of_birth="2999-01-01")
    res = api_client.post(URL, payload, format="json", **scoped(tenant, facility))

    assert res.status_code == 400
    err = res.data["error"]
    assert err["code"] == "validation_error"
    assert err["request_id"]
    assert {"first_name", "gender", "date_of_birth"} <= set(err["details"])


def test_create_duplicate_phone_is_409(api_client, tenant, facility, patient):
    res = api_client.post(
        URL, dict(PATIENT_PAYLOAD, email=""), format="json", **scoped(tenant, facility)
    )
    assert res.status_code == 409
    assert res.data["error"]["code"] == "conflict"
    assert "phone" in res.data["error"]["details"]


def test_retrieve_includes_recent_visits_and_active_prescriptions(api_client, tenant, facility, patient, visit):
    res = api_client.get(f"{URL}{patient.id}/", **scoped(tenant, facility))
    assert res.status_code == 200
    assert [v["id"] for v in res.data["recent_visits"]] == [visit.id]
    assert res.data["active_prescriptions"] == []


def test_retrieve_other_facility_patient_is_404(api_client, user, tenant, facility, other_tenant, other_facility):
    foreign = PatientService.register(
        tenant_id=other_tenant.id, facility_id=other_facility.id, actor_user_id=user.id, data=PATIENT_PAYLOAD
    )
    res = api_client.get(f"{URL}{foreign.id}/", **scoped(tenant, facility))
    assert res.status_code == 404
    assert res.data["error"]["code"] == "not_found"


def test_patch_updates_fields_and_keeps_code(api_client, tenant, facility, patient):
    res = api_client.patch(
        f"{URL}{patient.id}/",
        {"phone": "0788888888", "email": "Amina.O@Example.com"},
        format="json",
        **scoped(tenant, facility),
    )
    assert res.status_code == 200, res.data
    assert res.data["phone"] == "0788888888"
    assert res.data["email"] == "amina.o@example.com"
    assert res.data["patient_code"] == patient.patient_code


def test_patch_empty_body_is_400(api_client, tenant, facility, patient):
    res = api_client.patch(f"{URL}{patient.id}/", {}, format="json", **scoped(tenant, facility))
    assert res.status_code == 400


def test_delete_then_get_is_404_and_restore_brings_back(api_client, tenant, facility, patient):
    res = api_client.delete(f"{URL}{patient.id}/", **scoped(tenant, facility))
    assert res.status_code == 204

    assert api_client.get(f"{URL}{patient.id}/", **scoped(tenant, facility)).status_code == 404

    res = api_client.post(f"{URL}{patient.id}/restore/", **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data["status"] == "ACTIVE"
    assert res.data["deleted_at"] is None


def test_delete_with_visits_is_422(api_client, tenant, facility, patient, visit):
    res = api_client.delete(f"{URL}{patient.id}/", **scoped(tenant, facility))
    assert res.status_code == 422
    assert res.data["error"]["code"] == "business_rule_violation"
    assert "existing visits" in res.data["error"]["message"]


def test_restore_live_patient_is_422(api_client, tenant, facility, patient):
    res = api_client.post(f"{URL}{patient.id}/restore/", **scoped(tenant, facility))
    assert res.status_code == 422


def test_set_status(api_client, tenant, facility, patient):
    res = api_client.patch(
        f"{URL}{patient.id}/status/", {"status": "INACTIVE"}, format="json", **scoped(tenant, facility)
    )
    assert res.status_code == 200
    assert res.data["status"] == "INACTIVE"


def test_by_code(api_client, tenant, facility, patient):
    res = api_client.get(f"{URL}by-code/{patient.patient_code}/", **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data["id"] == str(patient.id)

    missing = api_client.get(f"{URL}by-code/P1900-99999/", **scoped(tenant, facility))
    assert missing.status_code == 404


def _bulk_register(tenant, facility, user, n):
    base = timezone.now() - timedelta(days=1)
    for i in range(n):
        p = PatientService.register(
            tenant_id=tenant.id,
            facility_id=facility.id,
            actor_user_id=user.id,
            data=dict(PATIENT_PAYLOAD, first_name=f"Pat{i:02d}", phone=f"07000000{i:02d}", email=""),
        )
        Patient.objects.filter(id=p.id).update(created_at=base + timedelta(minutes=i))


def test_list_pagination_envelope(api_client, user, tenant, facility):
    _bulk_register(tenant, facility, user, 45)

    res = api_client.get(URL, {"page": 2, "limit": 20}, **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data["meta"] == {"page": 2, "limit": 20, "total": 45, "totalPages": 3}
    assert len(res.data["data"]) == 20

    # newest first: page 2 holds rows 21-40, i.e. Pat24 down to Pat05
    assert [r["first_name"] for r in res.data["data"]] == [f"Pat{i:02d}" for i in range(24, 4, -1)]

    first_page = api_client.get(URL, {"page": 1, "limit": 20}, **scoped(tenant, facility)).data["data"]
    assert not {r["id"] for r in first_page} & {r["id"] for r in res.data["data"]}

    past_end = api_client.get(URL, {"page": 9, "limit": 20}, **scoped(tenant, facility))
    assert past_end.status_code == 200
    assert past_end.data["data"] == []


def test_list_rejects_bad_limit(api_client, tenant, facility):
    res = api_client.get(URL, {"limit": 1000}, **scoped(tenant, facility))
    assert res.status_code == 400
    assert "limit" in res.data["error"]["details"]


def test_list_rows_carry_counts(api_client, tenant, facility, patient, visit):
    res = api_client.get(URL, **scoped(tenant, facility))
    row = res.data["data"][0]
    assert row["visit_count"] == 1
    assert row["prescription_count"] == 0


def test_search_only_matches_email_when_token_has_at(api_client, tenant, facility, patient):
    by_email = api_client.get(URL, {"q": "amina@example"}, **scoped(tenant, facility))
    assert by_email.data["meta"]["total"] == 1

    plain = api_client.get(URL, {"q": "example"}, **scoped(tenant, facility))
    assert plain.data["meta"]["total"] == 0

    by_name = api_client.get(URL, {"search": "otien"}, **scoped(tenant, facility))
    assert by_name.data["meta"]["total"] == 1


def test_stats(api_client, user, tenant, facility, patient):
    _bulk_register(tenant, facility, user, 2)
    api_client.patch(f"{URL}{patient.id}/status/", {"status": "INACTIVE"}, format="json", **scoped(tenant, facility))

    res = api_client.get(f"{URL}stats/", **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data == {"total": 3, "active": 2, "inactive": 1, "recent": 3}
