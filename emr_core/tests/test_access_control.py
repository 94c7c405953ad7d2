# emr_core/tests/test_access_control.py
import pytest

from emr_core.common.permissions import user_roles
from emr_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db

PATIENT = {
    "first_name": "Brian",
    "last_name": "Kamau",
    "date_of_birth": "1975-09-30",
    "gender": "MALE",
    "phone": "0722000111",
}


def test_receptionist_registers_but_cannot_edit_patients(client_for, tenant, facility, patient):
    c = client_for("RECEPTIONIST")
    assert c.post("/api/v1/patients/", PATIENT, format="json", **scoped(tenant, facility)).status_code == 201
    assert c.get(f"/api/v1/patients/{patient.id}/", **scoped(tenant, facility)).status_code == 200

    res = c.patch(f"/api/v1/patients/{patient.id}/", {"address": "x"}, format="json", **scoped(tenant, facility))
    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"


def test_only_admin_deletes_or_restores_patients(client_for, tenant, facility, patient):
    doctor = client_for("DOCTOR")
    assert doctor.delete(f"/api/v1/patients/{patient.id}/", **scoped(tenant, facility)).status_code == 403
    assert doctor.post(f"/api/v1/patients/{patient.id}/restore/", **scoped(tenant, facility)).status_code == 403

    admin = client_for("ADMIN")
    assert admin.delete(f"/api/v1/patients/{patient.id}/", **scoped(tenant, facility)).status_code == 204


def test_patient_stats_and_status_are_doctor_or_admin(client_for, tenant, facility, patient):
    nurse = client_for("NURSE")
    assert nurse.get("/api/v1/patients/stats/", **scoped(tenant, facility)).status_code == 403
    assert client_for("DOCTOR").get("/api/v1/patients/stats/", **scoped(tenant, facility)).status_code == 200


def test_visit_roles(client_for, tenant, facility, patient, visit):
    nurse = client_for("NURSE")
    payload = {"patient": str(patient.id), "visit_type": "ROUTINE"}
    assert nurse.post("/api/v1/visits/", payload, format="json", **scoped(tenant, facility)).status_code == 201
    assert nurse.post(f"/api/v1/visits/{visit.id}/lock/", **scoped(tenant, facility)).status_code == 403

    receptionist = client_for("RECEPTIONIST")
    assert receptionist.post("/api/v1/visits/", payload, format="json", **scoped(tenant, facility)).status_code == 403
    res = receptionist.post(
        f"/api/v1/visits/{visit.id}/cancel/", {"reason": "No show"}, format="json", **scoped(tenant, facility)
    )
    assert res.status_code == 200


def test_prescriptions_are_written_by_doctors(client_for, tenant, facility, patient):
    payload = {
        "patient": str(patient.id),
        "medication_name": "Amoxicillin",
        "dosage": "500mg",
        "frequency": "Twice daily",
        "route": "oral",
        "duration": "7 days",
        "quantity": "14",
    }
    assert client_for("NURSE").post(
        "/api/v1/prescriptions/", payload, format="json", **scoped(tenant, facility)
    ).status_code == 403
    assert client_for("NURSE").get("/api/v1/prescriptions/", **scoped(tenant, facility)).status_code == 200
    assert client_for("DOCTOR").post(
        "/api/v1/prescriptions/", payload, format="json", **scoped(tenant, facility)
    ).status_code == 201


def test_billing_payments_get_vs_post(client_for, tenant, facility, user, patient):
    from emr_core.billing.services import InvoiceService

    inv = InvoiceService.create(
        tenant_id=tenant.id,
        facility_id=facility.id,
        actor_user_id=user.id,
        patient_id=patient.id,
        items=[{"description": "Consultation", "quantity": 1, "unit_price": "40.00"}],
    )
    url = f"/api/v1/billing/invoices/{inv.id}/payments/"

    nurse = client_for("NURSE")
    assert nurse.get(url, **scoped(tenant, facility)).status_code == 200
    assert nurse.post(url, {"amount": "10.00", "method": "CASH"}, format="json", **scoped(tenant, facility)).status_code == 403

    receptionist = client_for("RECEPTIONIST")
    res = receptionist.post(url, {"amount": "10.00", "method": "CASH"}, format="json", **scoped(tenant, facility))
    assert res.status_code == 201


def test_audit_log_is_admin_or_doctor(client_for, tenant, facility):
    assert client_for("RECEPTIONIST").get("/api/v1/audit/events/", **scoped(tenant, facility)).status_code == 403
    assert client_for("DOCTOR").get("/api/v1/audit/events/", **scoped(tenant, facility)).status_code == 200


def test_member_without_any_role_is_denied(make_user, tenant, facility):
    from django.contrib.auth.models import Group
    from rest_framework.test import APIClient

    u = make_user("NURSE")
    u.groups.clear()
    u.facility_memberships.update(role="")
    assert user_roles(u, u.facility_memberships.get()) == set()

    c = APIClient()
    c.force_authenticate(user=u)
    assert c.get("/api/v1/patients/", **scoped(tenant, facility)).status_code == 403
    assert not Group.objects.filter(user=u).exists()


def test_group_and_membership_roles_are_merged(make_user):
    from django.contrib.auth.models import Group

    u = make_user("NURSE")
    u.groups.add(Group.objects.create(name="DOCTOR"))
    assert user_roles(u, u.facility_memberships.get()) == {"NURSE", "DOCTOR"}
