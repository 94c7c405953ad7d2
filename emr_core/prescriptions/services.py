# emr_core/prescriptions/services.py
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from emr_core.audit.services import AuditService
from emr_core.common.api.exceptions import BusinessRuleError
from emr_core.patients.selectors import get_patient
from emr_core.prescriptions.allergies import check_allergies
from emr_core.prescriptions.models import Prescription, PrescriptionStatus
from emr_core.prescriptions.selectors import get_prescription
from emr_core.visits.models import Visit

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("medication_name", "dosage", "frequency", "route", "duration", "quantity")

MUTABLE_FIELDS = {
    "medication_name",
    "generic_name",
    "brand_name",
    "dosage",
    "frequency",
    "route",
    "duration",
    "quantity",
    "refills",
    "instructions",
    "notes",
}


def _assert_refills(value) -> None:
    if value is not None and not (0 <= int(value) <= 12):
        raise ValidationError({"refills": ["Refills must be between 0 and 12."]})


def _assert_active(rx: Prescription, verb: str) -> None:
    if rx.status != PrescriptionStatus.ACTIVE:
        logger.warning("prescription %s rejected id=%s status=%s", verb, rx.id, rx.status)
        if rx.status == PrescriptionStatus.DISCONTINUED and verb == "discontinue":
            raise BusinessRuleError("Prescription is already discontinued.")
        raise BusinessRuleError(f"Cannot {verb} a {rx.status.lower()} prescription.")


class PrescriptionService:
    @staticmethod
    @transaction.atomic
    def create(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int,
        patient_id: UUID,
        data: dict,
        visit_id: UUID | None = None,
        request=None,
    ) -> tuple[Prescription, list[str]]:
        """
        Returns the prescription and any allergy warnings. Warnings never block the write.
        """
        patient = get_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)

        visit = None
        if visit_id is not None:
            visit = Visit.objects.filter(tenant_id=tenant_id, facility_id=facility_id, id=visit_id).first()
            if visit is None:
                raise NotFound("Visit not found.")
            if visit.patient_id != patient.id:
                raise ValidationError({"visit": ["Visit does not belong to this patient."]})

        values = {k: v for k, v in (data or {}).items() if k in MUTABLE_FIELDS}
        missing = [f for f in REQUIRED_FIELDS if not str(values.get(f) or "").strip()]
        if missing:
            raise ValidationError({f: ["This field is required."] for f in missing})
        _assert_refills(values.get("refills"))

        warnings = check_allergies(
            patient.allergies or [],
            [values.get("medication_name"), values.get("generic_name"), values.get("brand_name")],
        )

        rx = Prescription.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            visit=visit,
            prescriber_id=actor_user_id,
            status=PrescriptionStatus.ACTIVE,
            **values,
        )

        AuditService.log(
            event_code="prescription.created",
            entity_type="Prescription",
            entity_id=rx.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"patient_id": patient.id, "visit_id": visit.id if visit else None, **values},
            metadata={"allergy_warning_count": len(warnings)},
            request=request,
        )
        if warnings:
            logger.warning("prescription created with allergy warnings id=%s count=%s", rx.id, len(warnings))
        logger.info("prescription created id=%s patient_id=%s", rx.id, patient.id)
        return rx, warnings

    @staticmethod
    @transaction.atomic
    def update(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        prescription_id: UUID,
        data: dict,
        request=None,
    ) -> Prescription:
        rx = get_prescription(
            tenant_id=tenant_id, facility_id=facility_id, prescription_id=prescription_id, for_update=True
        )
        _assert_active(rx, "update")

        updates = {k: v for k, v in (data or {}).items() if k in MUTABLE_FIELDS}
        blanked = [f for f in REQUIRED_FIELDS if f in updates and not str(updates[f] or "").strip()]
        if blanked:
            raise ValidationError({f: ["This field may not be blank."] for f in blanked})
        _assert_refills(updates.get("refills"))

        for k, v in updates.items():
            setattr(rx, k, v)
        rx.save()

        AuditService.log(
            event_code="prescription.updated",
            entity_type="Prescription",
            entity_id=rx.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes=updates,
            request=request,
        )
        return rx

    @staticmethod
    @transaction.atomic
    def discontinue(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        prescription_id: UUID,
        reason: str,
        notes: str = "",
        request=None,
    ) -> Prescription:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError({"reason": ["A discontinuation reason is required."]})

        rx = get_prescription(
            tenant_id=tenant_id, facility_id=facility_id, prescription_id=prescription_id, for_update=True
        )
        _assert_active(rx, "discontinue")

        rx.status = PrescriptionStatus.DISCONTINUED
        rx.discontinue_reason = reason
        rx.discontinued_at = timezone.now()
        rx.discontinued_by_id = actor_user_id
        if notes:
            rx.notes = f"{rx.notes}\nDiscontinued: {notes}".strip()
        rx.save(update_fields=[
            "status", "discontinue_reason", "discontinued_at", "discontinued_by", "notes", "updated_at",
        ])

        AuditService.log(
            event_code="prescription.discontinued",
            entity_type="Prescription",
            entity_id=rx.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"status": rx.status, "discontinue_reason": reason},
            request=request,
        )
        logger.info("prescription discontinued id=%s", rx.id)
        return rx

    @staticmethod
    @transaction.atomic
    def complete(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        prescription_id: UUID,
        request=None,
    ) -> Prescription:
        rx = get_prescription(
            tenant_id=tenant_id, facility_id=facility_id, prescription_id=prescription_id, for_update=True
        )
        _assert_active(rx, "complete")

        rx.status = PrescriptionStatus.COMPLETED
        rx.save(update_fields=["status", "updated_at"])

        AuditService.log(
            event_code="prescription.completed",
            entity_type="Prescription",
            entity_id=rx.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"status": rx.status},
            request=request,
        )
        logger.info("prescription completed id=%s", rx.id)
        return rx
