# emr_core/patients/tests/test_patient_services.py
import re
import uuid

import pytest
from django.utils import timezone
from rest_framework.exceptions import NotFound

from emr_core.audit.models import AuditEvent
from emr_core.common.api.exceptions import BusinessRuleError, ConflictError
from emr_core.conftest import PATIENT_PAYLOAD
from emr_core.patients.models import Patient, PatientStatus
from emr_core.patients.services import CODE_COLLISION_MSG, PatientService, next_patient_code

pytestmark = pytest.mark.django_db


def _register(tenant, facility, user, **overrides):
    return PatientService.register(
        tenant_id=tenant.id,
        facility_id=facility.id,
        actor_user_id=user.id,
        data=dict(PATIENT_PAYLOAD, **overrides),
    )


def test_register_assigns_yearly_sequential_code(tenant, facility, user):
    a = _register(tenant, facility, user)
    b = _register(tenant, facility, user, phone="0799999999", email="")

    year = timezone.now().year
    assert re.fullmatch(r"P\d{4}-\d{5}", a.patient_code)
    assert a.patient_code == f"P{year}-00001"
    assert b.patient_code == f"P{year}-00002"


def test_register_defaults_medical_lists_to_empty(tenant, facility, user):
    p = _register(tenant, facility, user)
    assert p.allergies == []
    assert p.chronic_conditions == []
    assert p.current_medications == []
    assert p.status == PatientStatus.ACTIVE


def test_register_duplicate_phone_is_conflict(tenant, facility, user):
    _register(tenant, facility, user)

    with pytest.raises(ConflictError) as exc:
        _register(tenant, facility, user, email="someone-else@example.com")
    assert "phone" in exc.value.detail


def test_register_duplicate_email_is_case_insensitive(tenant, facility, user):
    _register(tenant, facility, user)

    with pytest.raises(ConflictError) as exc:
        _register(tenant, facility, user, phone="0700000001", email="AMINA@example.com")
    assert "email" in exc.value.detail


def test_register_code_race_reports_retry_not_duplicate_contact(tenant, facility, user, monkeypatch):
    first = _register(tenant, facility, user)
    monkeypatch.setattr(
        "emr_core.patients.services.next_patient_code",
        lambda **kwargs: first.patient_code,
    )

    with pytest.raises(ConflictError) as exc:
        _register(tenant, facility, user, phone="0711111111", email="")

    assert str(exc.value.detail) == CODE_COLLISION_MSG
    assert exc.value.get_codes() == "patient_code_conflict"
    assert Patient.objects.filter(tenant_id=tenant.id).count() == 1


def test_same_phone_allowed_in_another_facility(tenant, facility, user, other_tenant, other_facility):
    _register(tenant, facility, user)
    other = PatientService.register(
        tenant_id=other_tenant.id,
        facility_id=other_facility.id,
        actor_user_id=user.id,
        data=PATIENT_PAYLOAD,
    )
    assert other.patient_code.endswith("-00001")


def test_phone_reusable_after_soft_delete(tenant, facility, user):
    first = _register(tenant, facility, user)
    PatientService.soft_delete(
        tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=first.id
    )

    second = _register(tenant, facility, user)
    assert second.id != first.id
    # deleted rows still count toward the sequence, so codes are never reissued
    assert second.patient_code.endswith("-00002")


def test_next_patient_code_restarts_per_year(tenant, facility, user):
    _register(tenant, facility, user)
    assert next_patient_code(tenant_id=tenant.id, facility_id=facility.id, year=1999) == "P1999-00001"


def test_soft_delete_sets_inactive(tenant, facility, user, patient):
    PatientService.soft_delete(
        tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=patient.id
    )
    patient.refresh_from_db()
    assert patient.deleted_at is not None
    assert patient.status == PatientStatus.INACTIVE


def test_soft_delete_with_visits_is_rejected_and_unchanged(tenant, facility, user, patient, visit):
    with pytest.raises(BusinessRuleError):
        PatientService.soft_delete(
            tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=patient.id
        )

    patient.refresh_from_db()
    assert patient.deleted_at is None
    assert patient.status == PatientStatus.ACTIVE


def test_restore_requires_deleted_patient(tenant, facility, user, patient):
    with pytest.raises(BusinessRuleError):
        PatientService.restore(
            tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=patient.id
        )


def test_restore_clears_marker_and_reactivates(tenant, facility, user, patient):
    PatientService.soft_delete(
        tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=patient.id
    )
    restored = PatientService.restore(
        tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=patient.id
    )
    assert restored.deleted_at is None
    assert restored.status == PatientStatus.ACTIVE


def test_restore_unknown_patient_is_not_found(tenant, facility, user):
    with pytest.raises(NotFound):
        PatientService.restore(
            tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=uuid.uuid4()
        )


def test_restore_blocked_when_phone_was_reused(tenant, facility, user, patient):
    PatientService.soft_delete(
        tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=patient.id
    )
    _register(tenant, facility, user)

    with pytest.raises(ConflictError):
        PatientService.restore(
            tenant_id=tenant.id, facility_id=facility.id, actor_user_id=user.id, patient_id=patient.id
        )


def test_update_keeps_code_and_audits_with_redaction(tenant, facility, user, patient):
    code = patient.patient_code
    updated = PatientService.update(
        tenant_id=tenant.id,
        facility_id=facility.id,
        actor_user_id=user.id,
        patient_id=patient.id,
        data={"address": "12 Market Road", "insurance_number": "NHIF-123", "patient_code": "P1900-00001"},
    )
    assert updated.patient_code == code
    assert updated.address == "12 Market Road"

    event = AuditEvent.objects.filter(event_code="patient.updated", entity_id=patient.id).get()
    assert event.changes["address"] == "12 Market Road"
    assert event.changes["insurance_number"] == "[REDACTED]"
    assert event.actor_user_id == user.id


def test_each_mutation_writes_one_audit_event(tenant, facility, user, patient):
    PatientService.set_status(
        tenant_id=tenant.id,
        facility_id=facility.id,
        actor_user_id=user.id,
        patient_id=patient.id,
        status=PatientStatus.INACTIVE,
    )
    codes = set(
        AuditEvent.objects.filter(entity_id=patient.id).order_by("occurred_at").values_list("event_code", flat=True)
    )
    assert codes == {"patient.created", "patient.status_changed"}
    assert AuditEvent.objects.filter(entity_id=patient.id).count() == 2
    assert Patient.objects.get(id=patient.id).status == PatientStatus.INACTIVE
