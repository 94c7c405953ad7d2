# emr_core/patients/api/views.py
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
from emr_core.common.permissions import PatientPermission
from emr_core.common.scope import require_scope
from emr_core.patients.api.filters import PatientFilter
from emr_core.patients.api.serializers import (
    PatientCreateSerializer,
    PatientDetailSerializer,
    PatientListSerializer,
    PatientSerializer,
    PatientStatsSerializer,
    PatientStatusSerializer,
    PatientUpdateSerializer,
)
from emr_core.patients.models import Patient
from emr_core.patients.selectors import get_patient, get_patient_by_code, patient_stats, search_patients
from emr_core.patients.services import PatientService

PATIENT_LIST_PARAMS = [
    OpenApiParameter(name="q", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     description="Search by patient code, name or phone (email when the term contains '@')."),
    OpenApiParameter(name="search", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     description="Alias of q."),
    OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     enum=["ACTIVE", "INACTIVE"]),
]


def _actor_id(request) -> int | None:
    user = getattr(request, "user", None)
    return user.id if user and user.is_authenticated else None


class PatientViewSet(viewsets.ViewSet):
    permission_classes = [PatientPermission]
    lookup_value_regex = UUID_LOOKUP_REGEX

    serializer_class = PatientSerializer
    queryset = Patient.objects.none()

    @extend_schema(tags=["Patients"], parameters=PATIENT_LIST_PARAMS, responses={200: PatientListSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)
        params = parse_query(PatientFilter, request)

        qs = search_patients(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            q=params.get("q") or params.get("search"),
            status=params.get("status"),
        )
        return paginate(request, qs, PatientListSerializer)

    @extend_schema(tags=["Patients"], request=PatientCreateSerializer, responses={201: PatientSerializer})
    def create(self, request):
        scope = require_scope(request)

        ser = PatientCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patient = PatientService.register(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            data=ser.validated_data,
            request=request,
        )
        return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Patients"], responses={200: PatientDetailSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        patient = get_patient(tenant_id=scope.tenant_id, facility_id=scope.facility_id, patient_id=UUID(str(pk)))
        return Response(PatientDetailSerializer(patient).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patients"], request=PatientUpdateSerializer, responses={200: PatientSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)

        ser = PatientUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        patient = PatientService.update(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            patient_id=UUID(str(pk)),
            data=ser.validated_data,
            request=request,
        )
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patients"], request=PatientUpdateSerializer, responses={200: PatientSerializer})
    def update(self, request, pk=None):
        # PUT behaves like PATCH: unspecified fields are left untouched
        return self.partial_update(request, pk=pk)

    @extend_schema(tags=["Patients"], responses={204: None})
    def destroy(self, request, pk=None):
        scope = require_scope(request)
        PatientService.soft_delete(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            patient_id=UUID(str(pk)),
            request=request,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Patients"], responses={200: PatientDetailSerializer})
    @action(detail=False, methods=["get"], url_path=r"by-code/(?P<code>[^/]+)")
    def by_code(self, request, code=None):
        scope = require_scope(request)
        patient = get_patient_by_code(tenant_id=scope.tenant_id, facility_id=scope.facility_id, patient_code=code)
        return Response(PatientDetailSerializer(patient).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patients"], request=PatientStatusSerializer, responses={200: PatientSerializer})
    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        scope = require_scope(request)

        ser = PatientStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patient = PatientService.set_status(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            patient_id=UUID(str(pk)),
            status=ser.validated_data["status"],
            request=request,
        )
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patients"], request=None, responses={200: PatientSerializer})
    @action(detail=True, methods=["post"], url_path="restore")
    def restore(self, request, pk=None):
        scope = require_scope(request)
        patient = PatientService.restore(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            patient_id=UUID(str(pk)),
            request=request,
        )
        return Response(PatientSerializer(patient).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Patients"], responses={200: PatientStatsSerializer})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        scope = require_scope(request)
        data = patient_stats(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        return Response(PatientStatsSerializer(data).data, status=status.HTTP_200_OK)
