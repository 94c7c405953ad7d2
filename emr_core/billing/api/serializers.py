# emr_core/billing/api/serializers.py
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from emr_core.billing.models import Invoice, InvoiceLine, Payment, PaymentMethod, Refund

MONEY = {"max_digits": 12, "decimal_places": 2}
PERCENT = {"max_digits": 5, "decimal_places": 2, "min_value": Decimal("0"), "max_value": Decimal("100")}


class InvoiceLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceLine
        fields = ["id", "position", "description", "quantity", "unit_price", "line_total"]
        read_only_fields = fields


class InvoiceLineInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255)
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"))
    unit_price = serializers.DecimalField(min_value=Decimal("0"), **MONEY)
    # Optional; checked against quantity * unit_price, never stored as given.
    total = serializers.DecimalField(required=False, allow_null=True, **MONEY)


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "invoice",
            "amount",
            "method",
            "receipt_no",
            "notes",
            "received_at",
            "recorded_by_user_id",
            "created_at",
        ]
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = [
            "id",
            "invoice",
            "amount",
            "reason",
            "reference",
            "notes",
            "refunded_at",
            "recorded_by_user_id",
            "created_at",
        ]
        read_only_fields = fields


class InvoiceListSerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    visit_id = serializers.UUIDField(read_only=True, allow_null=True)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "invoice_number",
            "patient_id",
            "patient_name",
            "visit_id",
            "status",
            "subtotal",
            "discount_total",
            "tax_amount",
            "grand_total",
            "amount_paid",
            "balance_due",
            "created_at",
        ]
        read_only_fields = fields


class InvoiceSerializer(InvoiceListSerializer):
    lines = InvoiceLineSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    refunds = RefundSerializer(many=True, read_only=True)

    class Meta(InvoiceListSerializer.Meta):
        fields = InvoiceListSerializer.Meta.fields + [
            "discount_amount",
            "discount_percent",
            "discount_reason",
            "tax_rate",
            "paid_at",
            "notes",
            "lines",
            "payments",
            "refunds",
            "updated_at",
        ]
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    patient = serializers.UUIDField()
    visit = serializers.UUIDField(required=False, allow_null=True)
    items = InvoiceLineInputSerializer(many=True, allow_empty=False)
    discount_amount = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=Decimal("0"), **MONEY)
    discount_percent = serializers.DecimalField(required=False, default=Decimal("0.00"), **PERCENT)
    discount_reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    tax_rate = serializers.DecimalField(required=False, default=Decimal("0.00"), **PERCENT)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceUpdateSerializer(serializers.Serializer):
    items = InvoiceLineInputSerializer(many=True, allow_empty=False, required=False)
    discount_amount = serializers.DecimalField(required=False, min_value=Decimal("0"), **MONEY)
    discount_percent = serializers.DecimalField(required=False, **PERCENT)
    discount_reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    tax_rate = serializers.DecimalField(required=False, **PERCENT)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class ApplyDiscountSerializer(serializers.Serializer):
    discount_amount = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=Decimal("0"), **MONEY)
    discount_percent = serializers.DecimalField(required=False, default=Decimal("0.00"), **PERCENT)
    discount_reason = serializers.CharField(max_length=255)


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    receipt_no = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class RefundCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    reason = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceStatsSerializer(serializers.Serializer):
    total_invoices = serializers.IntegerField()
    total_revenue = serializers.DecimalField(**MONEY)
    unpaid_count = serializers.IntegerField()
    outstanding_balance = serializers.DecimalField(**MONEY)
    by_status = serializers.DictField(child=serializers.IntegerField())
