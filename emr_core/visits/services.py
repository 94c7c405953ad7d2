# emr_core/visits/services.py
from __future__ import annotations

import logging
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from emr_core.audit.services import AuditService
from emr_core.common.api.exceptions import BusinessRuleError
from emr_core.iam.models import MembershipRole
from emr_core.iam.services.membership import get_active_membership
from emr_core.patients.selectors import get_patient
from emr_core.visits.models import Visit, VisitStatus
from emr_core.visits.selectors import get_visit
from emr_core.visits.vitals import compute_bmi, out_of_range

logger = logging.getLogger(__name__)

VISIT_LOCKED_MSG = "Visit is locked and can no longer be modified."

CLINICAL_FIELDS = {
    "visit_date",
    "chief_complaint",
    "bp_systolic",
    "bp_diastolic",
    "heart_rate",
    "respiratory_rate",
    "temperature",
    "spo2",
    "weight",
    "height",
    "pain_scale",
    "subjective",
    "objective",
    "assessment",
    "plan",
    "primary_diagnosis",
    "secondary_diagnoses",
    "icd_codes",
    "follow_up_date",
    "follow_up_reason",
    "notes",
}

IMMUTABLE_FIELDS = ("patient", "patient_id", "visit_type")


def _assert_vitals(values: dict) -> None:
    errors = out_of_range(values)
    if errors:
        raise ValidationError(errors)


PROVIDER_ROLES = {MembershipRole.ADMIN, MembershipRole.DOCTOR, MembershipRole.NURSE}


def _resolve_provider_id(
    provider_id: int | None,
    actor_user_id: int | None,
    *,
    tenant_id: UUID,
    facility_id: UUID,
) -> int:
    """
    The provider must be an active clinician of this facility.
    Superusers act as ADMIN everywhere and need no membership.
    """
    provider_id = provider_id or actor_user_id
    if provider_id is None:
        raise ValidationError({"provider": ["A provider is required."]})

    user = get_user_model().objects.filter(id=provider_id, is_active=True).first()
    if user is None:
        raise ValidationError({"provider": ["Unknown provider."]})
    if user.is_superuser:
        return provider_id

    membership = get_active_membership(user_id=provider_id, tenant_id=tenant_id, facility_id=facility_id)
    if membership is None or membership.role not in PROVIDER_ROLES:
        logger.warning("visit provider rejected provider_id=%s facility_id=%s", provider_id, facility_id)
        raise ValidationError({"provider": ["Provider is not a clinician of this facility."]})
    return provider_id


def _assert_writable(visit: Visit) -> None:
    if visit.is_locked:
        logger.warning("visit write rejected id=%s reason=locked", visit.id)
        raise BusinessRuleError(VISIT_LOCKED_MSG)
    if visit.status == VisitStatus.CANCELLED:
        logger.warning("visit write rejected id=%s reason=cancelled", visit.id)
        raise BusinessRuleError("Visit is cancelled.")


class VisitService:
    @staticmethod
    @transaction.atomic
    def create(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        patient_id: UUID,
        visit_type: str,
        provider_id: int | None = None,
        data: dict | None = None,
        request=None,
    ) -> Visit:
        patient = get_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)
        provider_id = _resolve_provider_id(
            provider_id, actor_user_id, tenant_id=tenant_id, facility_id=facility_id
        )

        values = {k: v for k, v in (data or {}).items() if k in CLINICAL_FIELDS and v is not None}
        _assert_vitals(values)

        visit = Visit(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            provider_id=provider_id,
            visit_type=visit_type,
            status=VisitStatus.IN_PROGRESS,
            **values,
        )
        visit.bmi = compute_bmi(visit.weight, visit.height)
        visit.save()

        AuditService.log(
            event_code="visit.created",
            entity_type="Visit",
            entity_id=visit.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"patient_id": patient.id, "provider_id": provider_id, "visit_type": visit_type, **values},
            request=request,
        )
        logger.info("visit created id=%s patient_id=%s", visit.id, patient.id)
        return visit

    @staticmethod
    @transaction.atomic
    def update(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        visit_id: UUID,
        data: dict,
        request=None,
    ) -> Visit:
        visit = get_visit(tenant_id=tenant_id, facility_id=facility_id, visit_id=visit_id, for_update=True)
        _assert_writable(visit)

        data = data or {}
        frozen = [f for f in IMMUTABLE_FIELDS if f in data]
        if frozen:
            raise ValidationError({f: ["This field cannot be changed after creation."] for f in frozen})

        updates = {k: v for k, v in data.items() if k in CLINICAL_FIELDS}
        _assert_vitals(updates)

        if "provider_id" in data:
            updates["provider_id"] = _resolve_provider_id(
                data["provider_id"], actor_user_id, tenant_id=tenant_id, facility_id=facility_id
            )

        for k, v in updates.items():
            setattr(visit, k, v)
        visit.bmi = compute_bmi(visit.weight, visit.height)
        visit.save()

        AuditService.log(
            event_code="visit.updated",
            entity_type="Visit",
            entity_id=visit.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes=updates,
            request=request,
        )
        return visit

    @staticmethod
    @transaction.atomic
    def lock(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        visit_id: UUID,
        request=None,
    ) -> Visit:
        """
        Sign off the visit: marks it COMPLETED and freezes it. There is no unlock.
        """
        visit = get_visit(tenant_id=tenant_id, facility_id=facility_id, visit_id=visit_id, for_update=True)
        if visit.is_locked:
            raise BusinessRuleError("Visit is already locked.")
        if visit.status == VisitStatus.CANCELLED:
            raise BusinessRuleError("Cannot lock a cancelled visit.")
        if not (visit.chief_complaint or "").strip():
            raise BusinessRuleError("Chief complaint is required to complete visit.")

        visit.status = VisitStatus.COMPLETED
        visit.is_locked = True
        visit.locked_at = timezone.now()
        visit.locked_by_id = actor_user_id
        visit.save(update_fields=["status", "is_locked", "locked_at", "locked_by", "updated_at"])

        AuditService.log(
            event_code="visit.locked",
            entity_type="Visit",
            entity_id=visit.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"status": visit.status, "is_locked": True, "locked_at": visit.locked_at},
            request=request,
        )
        logger.info("visit locked id=%s", visit.id)
        return visit

    @staticmethod
    @transaction.atomic
    def cancel(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        visit_id: UUID,
        reason: str,
        request=None,
    ) -> Visit:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError({"reason": ["A cancellation reason is required."]})

        visit = get_visit(tenant_id=tenant_id, facility_id=facility_id, visit_id=visit_id, for_update=True)
        if visit.is_locked:
            raise BusinessRuleError(VISIT_LOCKED_MSG)
        if visit.status == VisitStatus.CANCELLED:
            raise BusinessRuleError("Visit is already cancelled.")

        visit.status = VisitStatus.CANCELLED
        visit.notes = f"{visit.notes}\n\nCancelled: {reason}".strip()
        visit.save(update_fields=["status", "notes", "updated_at"])

        AuditService.log(
            event_code="visit.cancelled",
            entity_type="Visit",
            entity_id=visit.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"status": visit.status},
            metadata={"reason": reason},
            request=request,
        )
        logger.info("visit cancelled id=%s", visit.id)
        return visit
