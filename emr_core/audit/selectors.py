# emr_core/audit/selectors.py
from __future__ import annotations

from datetime import date
from uuid import UUID

from django.db.models import QuerySet

from emr_core.audit.models import AuditEvent


def list_audit_events(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    event_code: str | None = None,
    actor_user_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> QuerySet[AuditEvent]:
    qs = AuditEvent.objects.filter(tenant_id=tenant_id, facility_id=facility_id)

    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    if entity_id:
        qs = qs.filter(entity_id=entity_id)
    if event_code:
        qs = qs.filter(event_code=event_code)
    if actor_user_id is not None:
        qs = qs.filter(actor_user_id=actor_user_id)
    if start_date:
        qs = qs.filter(occurred_at__date__gte=start_date)
    if end_date:
        qs = qs.filter(occurred_at__date__lte=end_date)

    return qs.order_by("-occurred_at")


def get_audit_event(*, tenant_id: UUID, facility_id: UUID, event_id: UUID) -> AuditEvent:
    return AuditEvent.objects.get(id=event_id, tenant_id=tenant_id, facility_id=facility_id)
