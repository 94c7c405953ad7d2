# emr_core/prescriptions/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Q, QuerySet
from rest_framework.exceptions import NotFound

from emr_core.prescriptions.models import Prescription, PrescriptionStatus

PRESCRIPTION_NOT_FOUND_MSG = "Prescription not found."


def prescriptions_qs(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Prescription]:
    return Prescription.objects.filter(tenant_id=tenant_id, facility_id=facility_id).select_related("patient")


def get_prescription(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    prescription_id: UUID,
    for_update: bool = False,
) -> Prescription:
    qs = prescriptions_qs(tenant_id=tenant_id, facility_id=facility_id)
    if for_update:
        qs = qs.select_for_update(of=("self",))
    rx = qs.filter(id=prescription_id).first()
    if rx is None:
        raise NotFound(PRESCRIPTION_NOT_FOUND_MSG)
    return rx


def search_prescriptions(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    q: str | None = None,
    status: str | None = None,
    patient_id: UUID | None = None,
    visit_id: UUID | None = None,
) -> QuerySet[Prescription]:
    qs = prescriptions_qs(tenant_id=tenant_id, facility_id=facility_id)

    qv = (q or "").strip()
    if qv:
        qs = qs.filter(
            Q(medication_name__icontains=qv)
            | Q(generic_name__icontains=qv)
            | Q(brand_name__icontains=qv)
            | Q(patient__first_name__icontains=qv)
            | Q(patient__last_name__icontains=qv)
        )
    if status:
        qs = qs.filter(status=status)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if visit_id:
        qs = qs.filter(visit_id=visit_id)

    return qs.order_by("-created_at", "-id")


def active_prescriptions(*, tenant_id: UUID, facility_id: UUID, patient_id: UUID) -> QuerySet[Prescription]:
    return search_prescriptions(
        tenant_id=tenant_id,
        facility_id=facility_id,
        patient_id=patient_id,
        status=PrescriptionStatus.ACTIVE,
    )
