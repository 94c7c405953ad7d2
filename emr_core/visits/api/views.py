# emr_core/visits/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from emr_core.common.api.filters import parse_query
from emr_core.common.api.pagination import paginate
from emr_core.common.api.params import DATE_RANGE_PARAMS, UUID_LOOKUP_REGEX
from emr_core.common.permissions import VisitPermission
from emr_core.common.scope import require_scope
from emr_core.visits.api.filters import VisitFilter, VisitStatsFilter
from emr_core.visits.api.serializers import (
    VisitCancelSerializer,
    VisitCreateSerializer,
    VisitSerializer,
    VisitStatsSerializer,
    VisitUpdateSerializer,
)
from emr_core.visits.models import Visit
from emr_core.visits.selectors import get_visit, search_visits, visit_stats
from emr_core.visits.services import VisitService

VISIT_LIST_PARAMS = [
    OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="provider", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     enum=["IN_PROGRESS", "COMPLETED", "CANCELLED"]),
    OpenApiParameter(name="visit_type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="start_date", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="end_date", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False),
]


def _actor_id(request) -> int | None:
    user = getattr(request, "user", None)
    return user.id if user and user.is_authenticated else None


class VisitViewSet(viewsets.ViewSet):
    permission_classes = [VisitPermission]
    lookup_value_regex = UUID_LOOKUP_REGEX

    serializer_class = VisitSerializer
    queryset = Visit.objects.none()

    @extend_schema(tags=["Visits"], parameters=VISIT_LIST_PARAMS, responses={200: VisitSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)
        params = parse_query(VisitFilter, request)

        qs = search_visits(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            patient_id=params.get("patient"),
            provider_id=params.get("provider"),
            status=params.get("status"),
            visit_type=params.get("visit_type"),
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return paginate(request, qs, VisitSerializer)

    @extend_schema(tags=["Visits"], request=VisitCreateSerializer, responses={201: VisitSerializer})
    def create(self, request):
        scope = require_scope(request)

        ser = VisitCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        visit = VisitService.create(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            patient_id=data.pop("patient"),
            visit_type=data.pop("visit_type"),
            provider_id=data.pop("provider", None),
            data=data,
            request=request,
        )
        return Response(VisitSerializer(visit).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Visits"], responses={200: VisitSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        visit = get_visit(tenant_id=scope.tenant_id, facility_id=scope.facility_id, visit_id=UUID(str(pk)))
        return Response(VisitSerializer(visit).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Visits"], request=VisitUpdateSerializer, responses={200: VisitSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)

        ser = VisitUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        if "provider" in data:
            data["provider_id"] = data.pop("provider")

        visit = VisitService.update(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            visit_id=UUID(str(pk)),
            data=data,
            request=request,
        )
        return Response(VisitSerializer(visit).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Visits"], request=VisitUpdateSerializer, responses={200: VisitSerializer})
    def update(self, request, pk=None):
        return self.partial_update(request, pk=pk)

    @extend_schema(tags=["Visits"], request=None, responses={200: VisitSerializer})
    @action(detail=True, methods=["post"], url_path="lock")
    def lock(self, request, pk=None):
        scope = require_scope(request)
        visit = VisitService.lock(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            visit_id=UUID(str(pk)),
            request=request,
        )
        return Response(VisitSerializer(visit).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Visits"], request=VisitCancelSerializer, responses={200: VisitSerializer})
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        scope = require_scope(request)

        ser = VisitCancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        visit = VisitService.cancel(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            visit_id=UUID(str(pk)),
            reason=ser.validated_data["reason"],
            request=request,
        )
        return Response(VisitSerializer(visit).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Visits"], parameters=DATE_RANGE_PARAMS, responses={200: VisitStatsSerializer})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        scope = require_scope(request)
        params = parse_query(VisitStatsFilter, request)
        data = visit_stats(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return Response(VisitStatsSerializer(data).data, status=status.HTTP_200_OK)
