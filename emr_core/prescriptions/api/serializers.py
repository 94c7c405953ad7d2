# emr_core/prescriptions/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from emr_core.prescriptions.models import Prescription


class PrescriptionCreateSerializer(serializers.Serializer):
    patient = serializers.UUIDField()
    visit = serializers.UUIDField(required=False, allow_null=True)

    medication_name = serializers.CharField(max_length=200)
    generic_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    brand_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")

    dosage = serializers.CharField(max_length=100)
    frequency = serializers.CharField(max_length=100)
    # Free text (oral, IV, topical, ...)
    route = serializers.CharField(max_length=50)
    duration = serializers.CharField(max_length=100)
    quantity = serializers.CharField(max_length=50)
    refills = serializers.IntegerField(min_value=0, max_value=12, required=False, default=0)

    instructions = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class PrescriptionUpdateSerializer(serializers.Serializer):
    medication_name = serializers.CharField(max_length=200, required=False)
    generic_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    brand_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    dosage = serializers.CharField(max_length=100, required=False)
    frequency = serializers.CharField(max_length=100, required=False)
    route = serializers.CharField(max_length=50, required=False)
    duration = serializers.CharField(max_length=100, required=False)
    quantity = serializers.CharField(max_length=50, required=False)
    refills = serializers.IntegerField(min_value=0, max_value=12, required=False)
    instructions = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class PrescriptionDiscontinueSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class PrescriptionSerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    visit_id = serializers.UUIDField(read_only=True, allow_null=True)
    prescriber_id = serializers.IntegerField(read_only=True)
    discontinued_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)

    class Meta:
        model = Prescription
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "patient_id",
            "patient_name",
            "visit_id",
            "prescriber_id",
            "medication_name",
            "generic_name",
            "brand_name",
            "dosage",
            "frequency",
            "route",
            "duration",
            "quantity",
            "refills",
            "instructions",
            "notes",
            "status",
            "discontinue_reason",
            "discontinued_at",
            "discontinued_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PrescriptionCreatedSerializer(PrescriptionSerializer):
    allergy_warnings = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta(PrescriptionSerializer.Meta):
        fields = PrescriptionSerializer.Meta.fields + ["allergy_warnings"]
        read_only_fields = fields
