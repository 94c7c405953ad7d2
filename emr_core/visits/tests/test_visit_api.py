# emr_core/visits/tests/test_visit_api.py
from datetime import timedelta

import pytest
from django.utils import timezone

from emr_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db

URL = "/api/v1/visits/"


def test_create_visit(api_client, user, tenant, facility, patient):
    res = api_client.post(
        URL,
        {
            "patient": str(patient.id),
            "visit_type": "ROUTINE",
            "chief_complaint": "Cough",
            "bp_systolic": 120,
            "bp_diastolic": 80,
            "weight": "70.0",
            "height": "175.0",
        },
        format="json",
        **scoped(tenant, facility),
    )
    assert res.status_code == 201, res.data
    assert res.data["status"] == "IN_PROGRESS"
    assert res.data["provider_id"] == user.id
    assert res.data["patient"]["patient_code"] == patient.patient_code
    assert res.data["bmi"] == "22.9"


def test_create_out_of_range_vitals_is_400(api_client, tenant, facility, patient):
    res = api_client.post(
        URL,
        {"patient": str(patient.id), "visit_type": "ROUTINE", "spo2": 50},
        format="json",
        **scoped(tenant, facility),
    )
    assert res.status_code == 400
    assert "spo2" in res.data["error"]["details"]


def test_patch_soap_notes(api_client, tenant, facility, visit):
    res = api_client.patch(
        f"{URL}{visit.id}/",
        {"assessment": "Tension headache", "plan": "Hydration", "icd_codes": ["G44.2"]},
        format="json",
        **scoped(tenant, facility),
    )
    assert res.status_code == 200, res.data
    assert res.data["assessment"] == "Tension headache"
    assert res.data["icd_codes"] == ["G44.2"]


def test_patch_visit_type_is_400(api_client, tenant, facility, visit):
    res = api_client.patch(f"{URL}{visit.id}/", {"visit_type": "EMERGENCY"}, format="json", **scoped(tenant, facility))
    assert res.status_code == 400
    assert "visit_type" in res.data["error"]["details"]


def test_lock_then_patch_is_422(api_client, tenant, facility, visit):
    res = api_client.post(f"{URL}{visit.id}/lock/", **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data["is_locked"] is True
    assert res.data["status"] == "COMPLETED"

    res = api_client.patch(f"{URL}{visit.id}/", {"plan": "More rest"}, format="json", **scoped(tenant, facility))
    assert res.status_code == 422
    assert res.data["error"]["code"] == "business_rule_violation"


def test_cancel_requires_reason(api_client, tenant, facility, visit):
    res = api_client.post(f"{URL}{visit.id}/cancel/", {}, format="json", **scoped(tenant, facility))
    assert res.status_code == 400

    res = api_client.post(f"{URL}{visit.id}/cancel/", {"reason": "No show"}, format="json", **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data["status"] == "CANCELLED"


def test_list_filters_and_stats(api_client, tenant, facility, visit):
    api_client.post(f"{URL}{visit.id}/lock/", **scoped(tenant, facility))

    res = api_client.get(URL, {"status": "COMPLETED", "patient": str(visit.patient_id)}, **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data["meta"]["total"] == 1

    res = api_client.get(URL, {"status": "IN_PROGRESS"}, **scoped(tenant, facility))
    assert res.data["meta"]["total"] == 0

    res = api_client.get(URL, {"visit_type": "routine"}, **scoped(tenant, facility))
    assert res.data["meta"]["total"] == 1

    stats = api_client.get(f"{URL}stats/", **scoped(tenant, facility))
    assert stats.data == {"total": 1, "completed": 1, "in_progress": 0, "cancelled": 0}


def test_list_rejects_bad_status_filter(api_client, tenant, facility):
    res = api_client.get(URL, {"status": "DONE"}, **scoped(tenant, facility))
    assert res.status_code == 400


def test_stats_honour_date_range(api_client, tenant, facility, visit):
    today = timezone.localdate()
    tomorrow = today + timedelta(days=1)

    res = api_client.get(f"{URL}stats/", {"start_date": today, "end_date": today}, **scoped(tenant, facility))
    assert res.status_code == 200
    assert res.data["total"] == 1
    assert res.data["in_progress"] == 1

    res = api_client.get(f"{URL}stats/", {"start_date": tomorrow}, **scoped(tenant, facility))
    assert res.data["total"] == 0


def test_stats_reject_inverted_range(api_client, tenant, facility):
    res = api_client.get(
        f"{URL}stats/", {"start_date": "2024-05-02", "end_date": "2024-05-01"}, **scoped(tenant, facility)
    )
    assert res.status_code == 400
    assert "end_date" in res.data["error"]["details"]


def test_provider_filter_must_be_an_integer(api_client, user, tenant, facility, visit):
    res = api_client.get(URL, {"provider": "1.5"}, **scoped(tenant, facility))
    assert res.status_code == 400
    assert "provider" in res.data["error"]["details"]

    res = api_client.get(URL, {"provider": user.id}, **scoped(tenant, facility))
    assert res.data["meta"]["total"] == 1


def test_patch_provider_outside_facility_is_400(api_client, make_user, tenant, facility, visit):
    outsider = make_user("DOCTOR", member=False)
    res = api_client.patch(f"{URL}{visit.id}/", {"provider": outsider.id}, format="json", **scoped(tenant, facility))
    assert res.status_code == 400
    assert "provider" in res.data["error"]["details"]
