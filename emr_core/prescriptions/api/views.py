# emr_core/prescriptions/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from emr_core.common.api.filters import parse_query
from emr_core.common.api.pagination import paginate
from emr_core.common.api.params import UUID_LOOKUP_REGEX
from emr_core.common.permissions import PrescriptionPermission
from emr_core.common.scope import require_scope
from emr_core.prescriptions.api.filters import ActivePrescriptionFilter, PrescriptionFilter
from emr_core.prescriptions.api.serializers import (
    PrescriptionCreatedSerializer,
    PrescriptionCreateSerializer,
    PrescriptionDiscontinueSerializer,
    PrescriptionSerializer,
    PrescriptionUpdateSerializer,
)
from emr_core.prescriptions.models import Prescription
from emr_core.prescriptions.selectors import active_prescriptions, get_prescription, search_prescriptions
from emr_core.prescriptions.services import PrescriptionService

PRESCRIPTION_LIST_PARAMS = [
    OpenApiParameter(name="q", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     description="Search medication, generic and brand names and patient names."),
    OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     enum=["ACTIVE", "DISCONTINUED", "COMPLETED"]),
    OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="visit", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
]


def _actor_id(request) -> int | None:
    user = getattr(request, "user", None)
    return user.id if user and user.is_authenticated else None


class PrescriptionViewSet(viewsets.ViewSet):
    permission_classes = [PrescriptionPermission]
    lookup_value_regex = UUID_LOOKUP_REGEX

    serializer_class = PrescriptionSerializer
    queryset = Prescription.objects.none()

    @extend_schema(tags=["Prescriptions"], parameters=PRESCRIPTION_LIST_PARAMS,
                   responses={200: PrescriptionSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)
        params = parse_query(PrescriptionFilter, request)

        qs = search_prescriptions(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            q=params.get("q"),
            status=params.get("status"),
            patient_id=params.get("patient"),
            visit_id=params.get("visit"),
        )
        return paginate(request, qs, PrescriptionSerializer)

    @extend_schema(tags=["Prescriptions"], request=PrescriptionCreateSerializer,
                   responses={201: PrescriptionCreatedSerializer})
    def create(self, request):
        scope = require_scope(request)

        ser = PrescriptionCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        rx, warnings = PrescriptionService.create(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            patient_id=data.pop("patient"),
            visit_id=data.pop("visit", None),
            data=data,
            request=request,
        )
        rx.allergy_warnings = warnings
        return Response(PrescriptionCreatedSerializer(rx).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Prescriptions"], responses={200: PrescriptionSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        rx = get_prescription(
            tenant_id=scope.tenant_id, facility_id=scope.facility_id, prescription_id=UUID(str(pk))
        )
        return Response(PrescriptionSerializer(rx).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Prescriptions"], request=PrescriptionUpdateSerializer, responses={200: PrescriptionSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)

        ser = PrescriptionUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        rx = PrescriptionService.update(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            prescription_id=UUID(str(pk)),
            data=ser.validated_data,
            request=request,
        )
        return Response(PrescriptionSerializer(rx).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Prescriptions"], request=PrescriptionUpdateSerializer, responses={200: PrescriptionSerializer})
    def update(self, request, pk=None):
        return self.partial_update(request, pk=pk)

    @extend_schema(tags=["Prescriptions"], request=PrescriptionDiscontinueSerializer,
                   responses={200: PrescriptionSerializer})
    @action(detail=True, methods=["post"], url_path="discontinue")
    def discontinue(self, request, pk=None):
        scope = require_scope(request)

        ser = PrescriptionDiscontinueSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        rx = PrescriptionService.discontinue(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            prescription_id=UUID(str(pk)),
            reason=ser.validated_data["reason"],
            notes=ser.validated_data.get("notes", ""),
            request=request,
        )
        return Response(PrescriptionSerializer(rx).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Prescriptions"], request=None, responses={200: PrescriptionSerializer})
    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, pk=None):
        scope = require_scope(request)
        rx = PrescriptionService.complete(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            prescription_id=UUID(str(pk)),
            request=request,
        )
        return Response(PrescriptionSerializer(rx).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Prescriptions"],
        parameters=[OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY,
                                     required=True)],
        responses={200: PrescriptionSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="active")
    def active(self, request):
        scope = require_scope(request)
        params = parse_query(ActivePrescriptionFilter, request)
        qs = active_prescriptions(
            tenant_id=scope.tenant_id, facility_id=scope.facility_id, patient_id=params["patient"]
        )
        return Response(PrescriptionSerializer(qs, many=True).data, status=status.HTTP_200_OK)
