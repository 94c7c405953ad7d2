# emr_core/visits/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from emr_core.visits.models import Visit, VisitType
from emr_core.visits.vitals import VITAL_RANGES


def _vital_int(name: str):
    lo, hi = VITAL_RANGES[name]
    return serializers.IntegerField(min_value=lo, max_value=hi, required=False, allow_null=True)


def _vital_decimal(name: str, max_digits: int):
    lo, hi = VITAL_RANGES[name]
    return serializers.DecimalField(
        max_digits=max_digits,
        decimal_places=1,
        min_value=lo,
        max_value=hi,
        required=False,
        allow_null=True,
    )


class VitalsFieldsMixin(serializers.Serializer):
    bp_systolic = _vital_int("bp_systolic")
    bp_diastolic = _vital_int("bp_diastolic")
    heart_rate = _vital_int("heart_rate")
    respiratory_rate = _vital_int("respiratory_rate")
    temperature = _vital_decimal("temperature", 4)
    spo2 = _vital_int("spo2")
    weight = _vital_decimal("weight", 5)
    height = _vital_decimal("height", 4)
    pain_scale = _vital_int("pain_scale")


class ClinicalNoteFieldsMixin(serializers.Serializer):
    visit_date = serializers.DateTimeField(required=False)
    chief_complaint = serializers.CharField(required=False, allow_blank=True)

    subjective = serializers.CharField(required=False, allow_blank=True)
    objective = serializers.CharField(required=False, allow_blank=True)
    assessment = serializers.CharField(required=False, allow_blank=True)
    plan = serializers.CharField(required=False, allow_blank=True)

    primary_diagnosis = serializers.CharField(max_length=255, required=False, allow_blank=True)
    secondary_diagnoses = serializers.ListField(child=serializers.CharField(max_length=255), required=False)
    icd_codes = serializers.ListField(child=serializers.CharField(max_length=16), required=False)

    follow_up_date = serializers.DateField(required=False, allow_null=True)
    follow_up_reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    notes = serializers.CharField(required=False, allow_blank=True)


class VisitCreateSerializer(VitalsFieldsMixin, ClinicalNoteFieldsMixin):
    patient = serializers.UUIDField()
    provider = serializers.IntegerField(required=False, min_value=1)
    # Any string is accepted; VisitType lists the usual values.
    visit_type = serializers.CharField(max_length=50, help_text=f"e.g. {', '.join(VisitType.values)}")


class VisitUpdateSerializer(VitalsFieldsMixin, ClinicalNoteFieldsMixin):
    provider = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        frozen = [f for f in ("patient", "visit_type") if f in self.initial_data]
        if frozen:
            raise serializers.ValidationError({f: ["This field cannot be changed after creation."] for f in frozen})
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class VisitCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class VisitPatientSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    patient_code = serializers.CharField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()


class VisitSerializer(serializers.ModelSerializer):
    patient = VisitPatientSerializer(read_only=True)
    provider_id = serializers.IntegerField(read_only=True)
    locked_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Visit
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "patient",
            "provider_id",
            "visit_type",
            "visit_date",
            "status",
            "chief_complaint",
            "bp_systolic",
            "bp_diastolic",
            "heart_rate",
            "respiratory_rate",
            "temperature",
            "spo2",
            "weight",
            "height",
            "bmi",
            "pain_scale",
            "subjective",
            "objective",
            "assessment",
            "plan",
            "primary_diagnosis",
            "secondary_diagnoses",
            "icd_codes",
            "follow_up_date",
            "follow_up_reason",
            "notes",
            "is_locked",
            "locked_at",
            "locked_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class VisitStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    completed = serializers.IntegerField()
    in_progress = serializers.IntegerField()
    cancelled = serializers.IntegerField()
