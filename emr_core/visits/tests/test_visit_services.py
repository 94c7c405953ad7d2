# emr_core/visits/tests/test_visit_services.py
import uuid
from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, ValidationError

from emr_core.common.api.exceptions import BusinessRuleError
from emr_core.patients.services import PatientService
from emr_core.visits.models import VisitStatus
from emr_core.visits.services import VisitService

pytestmark = pytest.mark.django_db


def _scope(tenant, facility, user):
    return {"tenant_id": tenant.id, "facility_id": facility.id, "actor_user_id": user.id}


def test_create_defaults_provider_to_actor_and_computes_bmi(tenant, facility, user, patient):
    visit = VisitService.create(
        **_scope(tenant, facility, user),
        patient_id=patient.id,
        visit_type="walk-in",
        data={"weight": Decimal("70.0"), "height": Decimal("175.0")},
    )
    assert visit.provider_id == user.id
    assert visit.status == VisitStatus.IN_PROGRESS
    assert visit.visit_type == "walk-in"
    assert visit.bmi == Decimal("22.9")


def test_create_rejects_out_of_range_vitals(tenant, facility, user, patient):
    with pytest.raises(ValidationError) as exc:
        VisitService.create(
            **_scope(tenant, facility, user),
            patient_id=patient.id,
            visit_type="ROUTINE",
            data={"heart_rate": 250},
        )
    assert "heart_rate" in exc.value.detail


def test_create_for_deleted_patient_is_not_found(tenant, facility, user, patient):
    PatientService.soft_delete(**_scope(tenant, facility, user), patient_id=patient.id)

    with pytest.raises(NotFound):
        VisitService.create(**_scope(tenant, facility, user), patient_id=patient.id, visit_type="ROUTINE")


def test_create_unknown_provider_is_validation_error(tenant, facility, user, patient):
    with pytest.raises(ValidationError):
        VisitService.create(
            **_scope(tenant, facility, user), patient_id=patient.id, visit_type="ROUTINE", provider_id=987654
        )


def test_provider_must_be_member_of_the_facility(tenant, facility, user, patient, make_user):
    outsider = make_user("DOCTOR", member=False)
    with pytest.raises(ValidationError) as exc:
        VisitService.create(
            **_scope(tenant, facility, user), patient_id=patient.id, visit_type="ROUTINE", provider_id=outsider.id
        )
    assert "provider" in exc.value.detail


def test_provider_from_another_facility_is_rejected(tenant, facility, user, patient, other_tenant, other_facility):
    from django.contrib.auth import get_user_model

    from emr_core.iam.models import FacilityMembership

    elsewhere = get_user_model().objects.create_user(username="elsewhere", password="x")
    FacilityMembership.objects.create(tenant=other_tenant, facility=other_facility, user=elsewhere, role="DOCTOR")

    with pytest.raises(ValidationError):
        VisitService.create(
            **_scope(tenant, facility, user), patient_id=patient.id, visit_type="ROUTINE", provider_id=elsewhere.id
        )


def test_receptionist_cannot_be_provider(tenant, facility, user, patient, visit, make_user):
    front_desk = make_user("RECEPTIONIST")
    with pytest.raises(ValidationError):
        VisitService.update(**_scope(tenant, facility, user), visit_id=visit.id, data={"provider_id": front_desk.id})


def test_member_doctor_can_be_provider(tenant, facility, user, patient, make_user):
    doctor = make_user("DOCTOR")
    visit = VisitService.create(
        **_scope(tenant, facility, user), patient_id=patient.id, visit_type="ROUTINE", provider_id=doctor.id
    )
    assert visit.provider_id == doctor.id


def test_update_recomputes_bmi(tenant, facility, user, visit):
    VisitService.update(**_scope(tenant, facility, user), visit_id=visit.id, data={"weight": Decimal("70.0")})
    updated = VisitService.update(
        **_scope(tenant, facility, user), visit_id=visit.id, data={"height": Decimal("175.0")}
    )
    assert updated.bmi == Decimal("22.9")


def test_update_rejects_immutable_fields(tenant, facility, user, visit):
    with pytest.raises(ValidationError):
        VisitService.update(**_scope(tenant, facility, user), visit_id=visit.id, data={"visit_type": "EMERGENCY"})


def test_lock_completes_and_freezes(tenant, facility, user, visit):
    locked = VisitService.lock(**_scope(tenant, facility, user), visit_id=visit.id)
    assert locked.is_locked
    assert locked.status == VisitStatus.COMPLETED
    assert locked.locked_by_id == user.id
    assert locked.locked_at is not None

    with pytest.raises(BusinessRuleError):
        VisitService.update(**_scope(tenant, facility, user), visit_id=visit.id, data={"plan": "Rest"})
    with pytest.raises(BusinessRuleError):
        VisitService.lock(**_scope(tenant, facility, user), visit_id=visit.id)
    with pytest.raises(BusinessRuleError):
        VisitService.cancel(**_scope(tenant, facility, user), visit_id=visit.id, reason="Patient left")


def test_lock_requires_chief_complaint(tenant, facility, user, patient):
    visit = VisitService.create(**_scope(tenant, facility, user), patient_id=patient.id, visit_type="ROUTINE")

    with pytest.raises(BusinessRuleError) as exc:
        VisitService.lock(**_scope(tenant, facility, user), visit_id=visit.id)
    assert "Chief complaint" in str(exc.value.detail)


def test_cancel_appends_reason_and_blocks_further_changes(tenant, facility, user, visit):
    cancelled = VisitService.cancel(**_scope(tenant, facility, user), visit_id=visit.id, reason="Patient left")
    assert cancelled.status == VisitStatus.CANCELLED
    assert cancelled.notes.endswith("Cancelled: Patient left")

    with pytest.raises(BusinessRuleError):
        VisitService.cancel(**_scope(tenant, facility, user), visit_id=visit.id, reason="again")
    with pytest.raises(BusinessRuleError):
        VisitService.lock(**_scope(tenant, facility, user), visit_id=visit.id)
    with pytest.raises(BusinessRuleError):
        VisitService.update(**_scope(tenant, facility, user), visit_id=visit.id, data={"plan": "Rest"})


def test_cancel_requires_reason(tenant, facility, user, visit):
    with pytest.raises(ValidationError):
        VisitService.cancel(**_scope(tenant, facility, user), visit_id=visit.id, reason="   ")


def test_unknown_visit_is_not_found(tenant, facility, user):
    with pytest.raises(NotFound):
        VisitService.lock(**_scope(tenant, facility, user), visit_id=uuid.uuid4())
