# emr_core/visits/selectors.py
from __future__ import annotations

from datetime import date
from uuid import UUID

from django.db.models import Count, Q, QuerySet
from rest_framework.exceptions import NotFound

from emr_core.visits.models import Visit, VisitStatus

VISIT_NOT_FOUND_MSG = "Visit not found."


def visits_qs(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Visit]:
    return Visit.objects.filter(tenant_id=tenant_id, facility_id=facility_id).select_related("patient", "provider")


def get_visit(*, tenant_id: UUID, facility_id: UUID, visit_id: UUID, for_update: bool = False) -> Visit:
    qs = visits_qs(tenant_id=tenant_id, facility_id=facility_id)
    if for_update:
        qs = qs.select_for_update(of=("self",))
    visit = qs.filter(id=visit_id).first()
    if visit is None:
        raise NotFound(VISIT_NOT_FOUND_MSG)
    return visit


def search_visits(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    patient_id: UUID | None = None,
    provider_id: int | None = None,
    status: str | None = None,
    visit_type: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> QuerySet[Visit]:
    qs = visits_qs(tenant_id=tenant_id, facility_id=facility_id)

    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if provider_id:
        qs = qs.filter(provider_id=provider_id)
    if status:
        qs = qs.filter(status=status)
    if visit_type:
        qs = qs.filter(visit_type__iexact=visit_type)
    if start_date:
        qs = qs.filter(visit_date__date__gte=start_date)
    if end_date:
        qs = qs.filter(visit_date__date__lte=end_date)

    return qs.order_by("-visit_date", "-id")


def visit_stats(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, int]:
    """
    Status counts for visits whose visit_date falls in the (inclusive) range.
    """
    qs = Visit.objects.filter(tenant_id=tenant_id, facility_id=facility_id)
    if start_date:
        qs = qs.filter(visit_date__date__gte=start_date)
    if end_date:
        qs = qs.filter(visit_date__date__lte=end_date)

    return qs.aggregate(
        total=Count("id"),
        completed=Count("id", filter=Q(status=VisitStatus.COMPLETED)),
        in_progress=Count("id", filter=Q(status=VisitStatus.IN_PROGRESS)),
        cancelled=Count("id", filter=Q(status=VisitStatus.CANCELLED)),
    )
