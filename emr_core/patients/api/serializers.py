# emr_core/patients/api/serializers.py
from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from emr_core.patients.models import Gender, Patient, PatientStatus


def _string_list():
    return serializers.ListField(
        child=serializers.CharField(max_length=200),
        required=False,
        default=list,
    )


class PatientCreateSerializer(serializers.Serializer):
    first_name = serializers.CharField(min_length=2, max_length=50)
    middle_name = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    last_name = serializers.CharField(min_length=2, max_length=50)
    date_of_birth = serializers.DateField()
    gender = serializers.ChoiceField(choices=Gender.choices)

    phone = serializers.CharField(min_length=10, max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    address = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")

    emergency_contact_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    emergency_contact_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    emergency_contact_relation = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")

    blood_type = serializers.CharField(max_length=10, required=False, allow_blank=True, default="")
    allergies = _string_list()
    chronic_conditions = _string_list()
    current_medications = _string_list()
    family_history = serializers.CharField(required=False, allow_blank=True, default="")

    insurance_provider = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    insurance_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    insurance_expiry = serializers.DateField(required=False, allow_null=True, default=None)

    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_date_of_birth(self, value):
        if value > timezone.localdate():
            raise serializers.ValidationError("Date of birth cannot be in the future.")
        return value

    def validate_phone(self, value):
        return value.strip()

    def validate_email(self, value):
        return (value or "").strip().lower()


class PatientUpdateSerializer(PatientCreateSerializer):
    """
    Partial update contract (PATCH/PUT). Use with partial=True so only supplied fields change.
    """

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class PatientStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PatientStatus.choices)


class PatientSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Patient
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "patient_code",
            "first_name",
            "middle_name",
            "last_name",
            "full_name",
            "date_of_birth",
            "gender",
            "phone",
            "email",
            "address",
            "emergency_contact_name",
            "emergency_contact_phone",
            "emergency_contact_relation",
            "blood_type",
            "allergies",
            "chronic_conditions",
            "current_medications",
            "family_history",
            "insurance_provider",
            "insurance_number",
            "insurance_expiry",
            "notes",
            "status",
            "deleted_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PatientListSerializer(PatientSerializer):
    visit_count = serializers.IntegerField(read_only=True)
    prescription_count = serializers.IntegerField(read_only=True)

    class Meta(PatientSerializer.Meta):
        fields = PatientSerializer.Meta.fields + ["visit_count", "prescription_count"]
        read_only_fields = fields


class PatientDetailSerializer(PatientSerializer):
    recent_visits = serializers.SerializerMethodField()
    active_prescriptions = serializers.SerializerMethodField()

    class Meta(PatientSerializer.Meta):
        fields = PatientSerializer.Meta.fields + ["recent_visits", "active_prescriptions"]
        read_only_fields = fields

    def get_recent_visits(self, obj) -> list[dict]:
        rows = obj.visits.order_by("-visit_date").values(
            "id", "visit_date", "visit_type", "status", "chief_complaint", "is_locked"
        )[:10]
        return [dict(r) for r in rows]

    def get_active_prescriptions(self, obj) -> list[dict]:
        from emr_core.prescriptions.models import PrescriptionStatus

        rows = obj.prescriptions.filter(status=PrescriptionStatus.ACTIVE).order_by("-created_at").values(
            "id", "medication_name", "dosage", "frequency", "route", "duration"
        )
        return [dict(r) for r in rows]


class PatientStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    active = serializers.IntegerField()
    inactive = serializers.IntegerField()
    recent = serializers.IntegerField()
