# emr_core/patients/selectors.py
from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from django.conf import settings
from django.db.models import Count, Q, QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound

from emr_core.patients.models import Patient, PatientStatus

PATIENT_NOT_FOUND_MSG = "Patient not found."


def patients_qs(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Patient]:
    return Patient.objects.in_scope(tenant_id=tenant_id, facility_id=facility_id).not_deleted()


def get_patient(*, tenant_id: UUID, facility_id: UUID, patient_id: UUID) -> Patient:
    """
    Soft-deleted patients are invisible to normal reads.
    """
    patient = patients_qs(tenant_id=tenant_id, facility_id=facility_id).filter(id=patient_id).first()
    if patient is None:
        raise NotFound(PATIENT_NOT_FOUND_MSG)
    return patient


def get_patient_by_code(*, tenant_id: UUID, facility_id: UUID, patient_code: str) -> Patient:
    patient = patients_qs(tenant_id=tenant_id, facility_id=facility_id).filter(patient_code=patient_code).first()
    if patient is None:
        raise NotFound(PATIENT_NOT_FOUND_MSG)
    return patient


def search_filter(q: str) -> Q:
    """
    Free-text match on code, first/last name and phone.
    Email is only searched when the token looks like an email (contains "@").
    """
    cond = (
        Q(patient_code__icontains=q)
        | Q(first_name__icontains=q)
        | Q(last_name__icontains=q)
        | Q(phone__icontains=q)
    )
    if "@" in q:
        cond |= Q(email__icontains=q)
    return cond


def search_patients(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    q: str | None = None,
    status: str | None = None,
) -> QuerySet[Patient]:
    qs = patients_qs(tenant_id=tenant_id, facility_id=facility_id)

    qv = (q or "").strip()
    if qv:
        qs = qs.filter(search_filter(qv))

    if status:
        qs = qs.filter(status=status)

    return qs.annotate(
        visit_count=Count("visits", distinct=True),
        prescription_count=Count("prescriptions", distinct=True),
    ).order_by("-created_at", "-id")


def patient_stats(*, tenant_id: UUID, facility_id: UUID) -> dict[str, int]:
    recent_days = int(getattr(settings, "EMR_PATIENT_RECENT_DAYS", 30))
    since = timezone.now() - timedelta(days=recent_days)

    qs = patients_qs(tenant_id=tenant_id, facility_id=facility_id)
    return qs.aggregate(
        total=Count("id"),
        active=Count("id", filter=Q(status=PatientStatus.ACTIVE)),
        inactive=Count("id", filter=Q(status=PatientStatus.INACTIVE)),
        recent=Count("id", filter=Q(created_at__gte=since)),
    )
