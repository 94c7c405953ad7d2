# emr_core/patients/services.py
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from emr_core.audit.services import AuditService
from emr_core.common.api.exceptions import BusinessRuleError, ConflictError
from emr_core.patients.models import Patient, PatientStatus
from emr_core.patients.selectors import PATIENT_NOT_FOUND_MSG, get_patient

logger = logging.getLogger(__name__)

DUPLICATE_ON_CREATE_MSG = "A patient with this phone number or email already exists."
DUPLICATE_ON_UPDATE_MSG = "Another patient with this phone number or email already exists."
CODE_COLLISION_MSG = "Another registration took this patient code at the same moment. Please retry."

LIST_FIELDS = ("allergies", "chronic_conditions", "current_medications")

UPDATABLE_FIELDS = {
    "first_name",
    "middle_name",
    "last_name",
    "date_of_birth",
    "gender",
    "phone",
    "email",
    "address",
    "emergency_contact_name",
    "emergency_contact_phone",
    "emergency_contact_relation",
    "blood_type",
    "allergies",
    "chronic_conditions",
    "current_medications",
    "family_history",
    "insurance_provider",
    "insurance_number",
    "insurance_expiry",
    "notes",
}


def next_patient_code(*, tenant_id: UUID, facility_id: UUID, year: int | None = None) -> str:
    """
    P<year>-<5 digit sequence>. The sequence counts every code issued in this
    scope for the year (soft-deleted rows included), so it restarts each January.
    """
    year = year or timezone.now().year
    prefix = f"P{year}-"
    issued = Patient.objects.in_scope(tenant_id=tenant_id, facility_id=facility_id).filter(
        patient_code__startswith=prefix
    ).count()
    return f"{prefix}{issued + 1:05d}"


def _assert_contact_unique(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    phone: str | None,
    email: str | None,
    message: str,
    exclude_id: UUID | None = None,
) -> None:
    qs = Patient.objects.in_scope(tenant_id=tenant_id, facility_id=facility_id).not_deleted()
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)

    collisions: dict[str, Any] = {}
    if phone and qs.filter(phone=phone).exists():
        collisions["phone"] = ["This phone number is already registered to another patient."]
    if email and qs.filter(email__iexact=email).exists():
        collisions["email"] = ["This email is already registered to another patient."]

    if collisions:
        logger.warning("patient contact collision fields=%s", sorted(collisions))
        raise ConflictError({"detail": message, **collisions})


class PatientService:
    @staticmethod
    @transaction.atomic
    def register(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        data: dict,
        request=None,
    ) -> Patient:
        values = {k: v for k, v in (data or {}).items() if k in UPDATABLE_FIELDS}
        for f in LIST_FIELDS:
            values[f] = list(values.get(f) or [])

        _assert_contact_unique(
            tenant_id=tenant_id,
            facility_id=facility_id,
            phone=values.get("phone"),
            email=values.get("email"),
            message=DUPLICATE_ON_CREATE_MSG,
        )

        code = next_patient_code(tenant_id=tenant_id, facility_id=facility_id)
        try:
            with transaction.atomic():
                patient = Patient.objects.create(
                    tenant_id=tenant_id,
                    facility_id=facility_id,
                    patient_code=code,
                    status=PatientStatus.ACTIVE,
                    **values,
                )
        except IntegrityError:
            code_taken = Patient.objects.in_scope(tenant_id=tenant_id, facility_id=facility_id).filter(
                patient_code=code
            ).exists()
            logger.warning("patient register race code=%s code_taken=%s", code, code_taken)
            if code_taken:
                raise ConflictError(CODE_COLLISION_MSG, code="patient_code_conflict")
            raise ConflictError(DUPLICATE_ON_CREATE_MSG)

        AuditService.log(
            event_code="patient.created",
            entity_type="Patient",
            entity_id=patient.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes=values,
            metadata={"patient_code": code},
            request=request,
        )
        logger.info("patient registered id=%s code=%s", patient.id, code)
        return patient

    @staticmethod
    @transaction.atomic
    def update(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        patient_id: UUID,
        data: dict,
        request=None,
    ) -> Patient:
        patient = get_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)

        updates = {k: v for k, v in (data or {}).items() if k in UPDATABLE_FIELDS}
        for f in LIST_FIELDS:
            if f in updates:
                updates[f] = list(updates[f] or [])

        if "phone" in updates or "email" in updates:
            _assert_contact_unique(
                tenant_id=tenant_id,
                facility_id=facility_id,
                phone=updates.get("phone"),
                email=updates.get("email"),
                message=DUPLICATE_ON_UPDATE_MSG,
                exclude_id=patient.id,
            )

        for k, v in updates.items():
            setattr(patient, k, v)

        try:
            with transaction.atomic():
                patient.save()
        except IntegrityError:
            raise ConflictError(DUPLICATE_ON_UPDATE_MSG)

        AuditService.log(
            event_code="patient.updated",
            entity_type="Patient",
            entity_id=patient.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes=updates,
            request=request,
        )
        return patient

    @staticmethod
    @transaction.atomic
    def set_status(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        patient_id: UUID,
        status: str,
        request=None,
    ) -> Patient:
        patient = get_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)
        previous = patient.status

        patient.status = status
        patient.save(update_fields=["status", "updated_at"])

        AuditService.log(
            event_code="patient.status_changed",
            entity_type="Patient",
            entity_id=patient.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"status": status},
            metadata={"previous_status": previous},
            request=request,
        )
        return patient

    @staticmethod
    @transaction.atomic
    def soft_delete(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        patient_id: UUID,
        request=None,
    ) -> Patient:
        patient = get_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)

        if patient.visits.exists():
            logger.warning("patient delete blocked id=%s reason=has_visits", patient.id)
            raise BusinessRuleError("Cannot delete patient with existing visits. Deactivate instead.")

        patient.deleted_at = timezone.now()
        patient.status = PatientStatus.INACTIVE
        patient.save(update_fields=["deleted_at", "status", "updated_at"])

        AuditService.log(
            event_code="patient.deleted",
            entity_type="Patient",
            entity_id=patient.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"deleted_at": patient.deleted_at, "status": patient.status},
            request=request,
        )
        logger.info("patient soft-deleted id=%s", patient.id)
        return patient

    @staticmethod
    @transaction.atomic
    def restore(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        patient_id: UUID,
        request=None,
    ) -> Patient:
        patient = (
            Patient.objects.select_for_update()
            .in_scope(tenant_id=tenant_id, facility_id=facility_id)
            .filter(id=patient_id)
            .first()
        )
        if patient is None:
            raise NotFound(PATIENT_NOT_FOUND_MSG)
        if not patient.is_deleted:
            raise BusinessRuleError("Patient is not deleted.")

        # Restoring must not resurrect a phone/email now used by a live patient.
        _assert_contact_unique(
            tenant_id=tenant_id,
            facility_id=facility_id,
            phone=patient.phone,
            email=patient.email,
            message=DUPLICATE_ON_UPDATE_MSG,
            exclude_id=patient.id,
        )

        patient.deleted_at = None
        patient.status = PatientStatus.ACTIVE
        patient.save(update_fields=["deleted_at", "status", "updated_at"])

        AuditService.log(
            event_code="patient.restored",
            entity_type="Patient",
            entity_id=patient.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"deleted_at": None, "status": patient.status},
            request=request,
        )
        logger.info("patient restored id=%s", patient.id)
        return patient
