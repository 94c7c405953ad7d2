# emr_core/billing/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from emr_core.billing.api.filters import InvoiceFilter, InvoiceStatsFilter
from emr_core.billing.api.serializers import (
    ApplyDiscountSerializer,
    InvoiceCreateSerializer,
    InvoiceListSerializer,
    InvoiceSerializer,
    InvoiceStatsSerializer,
    InvoiceUpdateSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    RefundCreateSerializer,
    RefundSerializer,
)
from emr_core.billing.models import Invoice
from emr_core.billing.selectors import get_invoice, invoice_stats, payments_for, refunds_for, search_invoices
from emr_core.billing.services import InvoiceService, PaymentService
from emr_core.common.api.filters import parse_query
from emr_core.common.api.pagination import paginate
from emr_core.common.api.params import DATE_RANGE_PARAMS, UUID_LOOKUP_REGEX
from emr_core.common.permissions import BillingPermission
from emr_core.common.scope import require_scope

INVOICE_LIST_PARAMS = [
    OpenApiParameter(name="q", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     description="Search invoice number, patient name or patient code."),
    OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                     enum=["UNPAID", "PARTIALLY_PAID", "PAID"]),
    OpenApiParameter(name="patient", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(name="visit", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
] + DATE_RANGE_PARAMS


def _actor_id(request) -> int | None:
    user = getattr(request, "user", None)
    return user.id if user and user.is_authenticated else None


class InvoiceViewSet(viewsets.GenericViewSet):
    """
    /billing/invoices/
    """
    permission_classes = [BillingPermission]
    lookup_value_regex = UUID_LOOKUP_REGEX

    serializer_class = InvoiceSerializer
    queryset = Invoice.objects.none()

    @extend_schema(tags=["Billing"], parameters=INVOICE_LIST_PARAMS, responses={200: InvoiceListSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)
        params = parse_query(InvoiceFilter, request)

        qs = search_invoices(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            q=params.get("q"),
            status=params.get("status"),
            patient_id=params.get("patient"),
            visit_id=params.get("visit"),
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return paginate(request, qs, InvoiceListSerializer)

    @extend_schema(tags=["Billing"], responses={200: InvoiceSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        inv = get_invoice(tenant_id=scope.tenant_id, facility_id=scope.facility_id, invoice_id=UUID(str(pk)))
        return Response(InvoiceSerializer(inv).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Billing"], request=InvoiceCreateSerializer, responses={201: InvoiceSerializer})
    def create(self, request):
        scope = require_scope(request)

        ser = InvoiceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        inv = InvoiceService.create(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            patient_id=data["patient"],
            visit_id=data.get("visit"),
            items=data["items"],
            discount_amount=data["discount_amount"],
            discount_percent=data["discount_percent"],
            discount_reason=data["discount_reason"],
            tax_rate=data["tax_rate"],
            notes=data["notes"],
            request=request,
        )
        inv = get_invoice(tenant_id=scope.tenant_id, facility_id=scope.facility_id, invoice_id=inv.id)
        return Response(InvoiceSerializer(inv).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Billing"], request=InvoiceUpdateSerializer, responses={200: InvoiceSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)

        ser = InvoiceUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        inv = InvoiceService.update(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            invoice_id=UUID(str(pk)),
            data=ser.validated_data,
            request=request,
        )
        inv = get_invoice(tenant_id=scope.tenant_id, facility_id=scope.facility_id, invoice_id=inv.id)
        return Response(InvoiceSerializer(inv).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Billing"], request=InvoiceUpdateSerializer, responses={200: InvoiceSerializer})
    def update(self, request, pk=None):
        return self.partial_update(request, pk=pk)

    @extend_schema(tags=["Billing"], request=ApplyDiscountSerializer, responses={200: InvoiceSerializer})
    @action(detail=True, methods=["post"], url_path="apply-discount")
    def apply_discount(self, request, pk=None):
        scope = require_scope(request)

        ser = ApplyDiscountSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        inv = InvoiceService.apply_discount(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            invoice_id=UUID(str(pk)),
            discount_amount=ser.validated_data["discount_amount"],
            discount_percent=ser.validated_data["discount_percent"],
            reason=ser.validated_data["discount_reason"],
            request=request,
        )
        inv = get_invoice(tenant_id=scope.tenant_id, facility_id=scope.facility_id, invoice_id=inv.id)
        return Response(InvoiceSerializer(inv).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=PaymentCreateSerializer,
        responses={200: PaymentSerializer(many=True), 201: PaymentSerializer},
    )
    @action(detail=True, methods=["get", "post"], url_path="payments")
    def payments(self, request, pk=None):
        """
        - GET: list payments
        - POST: record a payment
        """
        scope = require_scope(request)
        invoice_id = UUID(str(pk))

        if request.method.lower() == "get":
            inv = get_invoice(tenant_id=scope.tenant_id, facility_id=scope.facility_id, invoice_id=invoice_id)
            return Response(PaymentSerializer(payments_for(inv), many=True).data, status=status.HTTP_200_OK)

        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        pay = PaymentService.record_payment(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            invoice_id=invoice_id,
            amount=ser.validated_data["amount"],
            method=ser.validated_data["method"],
            receipt_no=ser.validated_data["receipt_no"],
            notes=ser.validated_data["notes"],
            request=request,
        )
        return Response(PaymentSerializer(pay).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Billing"],
        request=RefundCreateSerializer,
        responses={200: RefundSerializer(many=True), 201: RefundSerializer},
    )
    @action(detail=True, methods=["get", "post"], url_path="refunds")
    def refunds(self, request, pk=None):
        """
        - GET: list refunds
        - POST: record a refund against money already paid
        """
        scope = require_scope(request)
        invoice_id = UUID(str(pk))

        if request.method.lower() == "get":
            inv = get_invoice(tenant_id=scope.tenant_id, facility_id=scope.facility_id, invoice_id=invoice_id)
            return Response(RefundSerializer(refunds_for(inv), many=True).data, status=status.HTTP_200_OK)

        ser = RefundCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        refund = PaymentService.record_refund(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            actor_user_id=_actor_id(request),
            invoice_id=invoice_id,
            amount=ser.validated_data["amount"],
            reason=ser.validated_data["reason"],
            notes=ser.validated_data["notes"],
            request=request,
        )
        return Response(RefundSerializer(refund).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Billing"], parameters=DATE_RANGE_PARAMS, responses={200: InvoiceStatsSerializer})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        scope = require_scope(request)
        params = parse_query(InvoiceStatsFilter, request)
        data = invoice_stats(
            tenant_id=scope.tenant_id,
            facility_id=scope.facility_id,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return Response(InvoiceStatsSerializer(data).data, status=status.HTTP_200_OK)
