# emr_core/reports/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from emr_core.common.api.filters import parse_query
from emr_core.common.api.pagination import paginate
from emr_core.common.api.params import DATE_RANGE_PARAMS
from emr_core.common.permissions import ReportPermission
from emr_core.common.scope import require_scope
from emr_core.reports import selectors
from emr_core.reports.api.filters import (
    AgingReportFilter,
    BillingReportFilter,
    ClinicalReportFilter,
    RevenueReportFilter,
)
from emr_core.reports.api.serializers import (
    AgingReportSerializer,
    DiagnosisCountSerializer,
    OutstandingInvoiceSerializer,
    OutstandingSummarySerializer,
    PaymentMethodTotalSerializer,
    PrescriptionPatternSerializer,
    ProviderProductivitySerializer,
    RevenueReportSerializer,
)

REVENUE_PARAMS = DATE_RANGE_PARAMS + [
    OpenApiParameter(name="period", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     enum=list(selectors.PERIODS), description="Series granularity, default month."),
]

AGING_PARAMS = [
    OpenApiParameter(name="as_of", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False,
                     description="Age invoices as of this date (default today)."),
]

TOP_LIST_PARAMS = DATE_RANGE_PARAMS + [
    OpenApiParameter(name="limit", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False,
                     description="Rows to return (1-50, default 10)."),
]


class ReportViewSet(viewsets.ViewSet):
    """
    /reports/ read-only aggregates for the active facility.
    """
    permission_classes = [ReportPermission]

    @extend_schema(tags=["Reports"], responses={200: OutstandingInvoiceSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="outstanding")
    def outstanding(self, request):
        scope = require_scope(request)
        qs = selectors.outstanding_invoices(tenant_id=scope.tenant_id, facility_id=scope.facility_id)

        res = paginate(request, qs, OutstandingInvoiceSerializer)
        res.data["summary"] = OutstandingSummarySerializer(
            selectors.outstanding_summary(tenant_id=scope.tenant_id, facility_id=scope.facility_id)
        ).data
        return res

    @extend_schema(tags=["Reports"], parameters=AGING_PARAMS, responses={200: AgingReportSerializer})
    @action(detail=False, methods=["get"], url_path="aging")
    def aging(self, request):
        scope = require_scope(request)
        params = parse_query(AgingReportFilter, request)

        data = selectors.aging_report(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            as_of=params.get("as_of"),
        )
        return Response(AgingReportSerializer(data).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Reports"], parameters=REVENUE_PARAMS, responses={200: RevenueReportSerializer})
    @action(detail=False, methods=["get"], url_path="revenue")
    def revenue(self, request):
        scope = require_scope(request)
        params = parse_query(RevenueReportFilter, request)

        data = selectors.revenue_report(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
            period=params.get("period", "month"),
        )
        return Response(RevenueReportSerializer(data).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Reports"], parameters=DATE_RANGE_PARAMS, responses={200: PaymentMethodTotalSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="payment-methods")
    def payment_methods(self, request):
        scope = require_scope(request)
        params = parse_query(BillingReportFilter, request)

        rows = selectors.payment_method_breakdown(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return Response(PaymentMethodTotalSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Reports"], parameters=DATE_RANGE_PARAMS, responses={200: ProviderProductivitySerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="provider-productivity")
    def provider_productivity(self, request):
        scope = require_scope(request)
        params = parse_query(ClinicalReportFilter, request)

        rows = selectors.provider_productivity(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return Response(ProviderProductivitySerializer(rows, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Reports"], parameters=TOP_LIST_PARAMS, responses={200: DiagnosisCountSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="diagnoses")
    def diagnoses(self, request):
        scope = require_scope(request)
        params = parse_query(ClinicalReportFilter, request)

        rows = selectors.top_diagnoses(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
            limit=params.get("limit", 10),
        )
        return Response(DiagnosisCountSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Reports"], parameters=TOP_LIST_PARAMS, responses={200: PrescriptionPatternSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="prescription-patterns")
    def prescription_patterns(self, request):
        scope = require_scope(request)
        params = parse_query(ClinicalReportFilter, request)

        rows = selectors.prescription_patterns(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
            limit=params.get("limit", 10),
        )
        return Response(PrescriptionPatternSerializer(rows, many=True).data, status=status.HTTP_200_OK)
