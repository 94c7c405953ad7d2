# emr_core/audit/api/views.py
from __future__ import annotations

import csv
from uuid import UUID

from django.http import StreamingHttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from emr_core.audit.api.filters import AuditEventFilter
from emr_core.audit.api.serializers import AuditEventSerializer
from emr_core.audit.models import AuditEvent
from emr_core.audit.selectors import get_audit_event, list_audit_events
from emr_core.common.api.filters import parse_query
from emr_core.common.api.params import UUID_LOOKUP_REGEX
from emr_core.common.api.pagination import paginate
from emr_core.common.permissions import AuditPermission
from emr_core.common.scope import require_scope

AUDIT_FILTER_PARAMS = [
    OpenApiParameter(name="entity_type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     description="Filter by entity type (e.g. Patient, Visit, Invoice)."),
    OpenApiParameter(name="entity_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="event_code", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     description="Filter by event code (e.g. patient.deleted, invoice.payment_recorded)."),
    OpenApiParameter(name="actor_user_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="start_date", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="end_date", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False),
]

EXPORT_COLUMNS = ["id", "timestamp", "event_code", "entity_type", "entity_id", "actor_user_id", "ip_address"]


class _Echo:
    """File-like object whose write() hands the row back to csv.writer."""

    def write(self, value):
        return value


def _filtered_events(request):
    scope = require_scope(request)
    params = parse_query(AuditEventFilter, request)
    return list_audit_events(tenant_id=scope.tenant_id, facility_id=scope.facility_id, **params)


class AuditEventViewSet(viewsets.GenericViewSet):
    """
    Read-only reporting over audit events (scoped).
    """
    permission_classes = [AuditPermission]
    lookup_value_regex = UUID_LOOKUP_REGEX

    serializer_class = AuditEventSerializer
    queryset = AuditEvent.objects.none()

    @extend_schema(tags=["Audit"], responses={200: AuditEventSerializer(many=True)}, parameters=AUDIT_FILTER_PARAMS)
    def list(self, request):
        return paginate(request, _filtered_events(request), AuditEventSerializer)

    @extend_schema(tags=["Audit"], responses={200: AuditEventSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        event = get_audit_event(tenant_id=scope.tenant_id, facility_id=scope.facility_id, event_id=UUID(str(pk)))
        return Response(AuditEventSerializer(event).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Audit"], responses={(200, "text/csv"): OpenApiTypes.STR}, parameters=AUDIT_FILTER_PARAMS)
    @action(detail=False, methods=["get"], url_path="export")
    def export(self, request):
        qs = _filtered_events(request)
        writer = csv.writer(_Echo())

        def rows():
            yield writer.writerow(EXPORT_COLUMNS)
            for e in qs.iterator():
                yield writer.writerow(
                    [e.id, e.occurred_at.isoformat(), e.event_code, e.entity_type, e.entity_id,
                     e.actor_user_id or "", e.ip_address or ""]
                )

        response = StreamingHttpResponse(rows(), content_type="text/csv")
        response["Content-Disposition"] = 'attachment; filename="audit-events.csv"'
        return response
