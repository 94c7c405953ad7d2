# emr_core/reports/api/serializers.py
from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from emr_core.billing.api.serializers import MONEY
from emr_core.billing.models import Invoice


class OutstandingInvoiceSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    patient_code = serializers.CharField(source="patient.patient_code", read_only=True)
    age_days = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "patient",
            "patient_name",
            "patient_code",
            "status",
            "grand_total",
            "amount_paid",
            "balance_due",
            "created_at",
            "age_days",
        ]
        read_only_fields = fields

    def get_age_days(self, obj: Invoice) -> int:
        return (timezone.localdate() - timezone.localtime(obj.created_at).date()).days


class OutstandingSummarySerializer(serializers.Serializer):
    count = serializers.IntegerField()
    total_outstanding = serializers.DecimalField(**MONEY)


class AgingBucketSerializer(serializers.Serializer):
    bucket = serializers.CharField()
    count = serializers.IntegerField()
    balance = serializers.DecimalField(**MONEY)


class AgingReportSerializer(serializers.Serializer):
    as_of = serializers.DateField()
    total_outstanding = serializers.DecimalField(**MONEY)
    total_count = serializers.IntegerField()
    buckets = AgingBucketSerializer(many=True)


class StatusTotalsSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    total = serializers.DecimalField(**MONEY)
    balance = serializers.DecimalField(**MONEY)


class RevenuePointSerializer(serializers.Serializer):
    period_start = serializers.DateField()
    collected = serializers.DecimalField(**MONEY)
    refunded = serializers.DecimalField(**MONEY)
    net = serializers.DecimalField(**MONEY)


class RevenueReportSerializer(serializers.Serializer):
    period = serializers.CharField()
    start_date = serializers.DateField(allow_null=True)
    end_date = serializers.DateField(allow_null=True)
    invoice_count = serializers.IntegerField()
    billed = serializers.DecimalField(**MONEY)
    collected = serializers.DecimalField(**MONEY)
    refunded = serializers.DecimalField(**MONEY)
    net_revenue = serializers.DecimalField(**MONEY)
    by_status = serializers.DictField(child=StatusTotalsSerializer())
    series = RevenuePointSerializer(many=True)


class PaymentMethodTotalSerializer(serializers.Serializer):
    method = serializers.CharField()
    count = serializers.IntegerField()
    total = serializers.DecimalField(**MONEY)


class ProviderProductivitySerializer(serializers.Serializer):
    provider_id = serializers.IntegerField()
    provider_name = serializers.CharField()
    visits = serializers.IntegerField()
    completed = serializers.IntegerField()
    cancelled = serializers.IntegerField()
    locked = serializers.IntegerField()


class DiagnosisCountSerializer(serializers.Serializer):
    diagnosis = serializers.CharField(source="primary_diagnosis")
    count = serializers.IntegerField()


class PrescriptionPatternSerializer(serializers.Serializer):
    medication_name = serializers.CharField()
    count = serializers.IntegerField()
    active = serializers.IntegerField()
    patients = serializers.IntegerField()
