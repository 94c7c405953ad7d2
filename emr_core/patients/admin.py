# emr_core/patients/admin.py
from django.contrib import admin

from emr_core.patients.models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = (
        "patient_code",
        "first_name",
        "last_name",
        "phone",
        "status",
        "deleted_at",
        "created_at",
    )
    list_filter = ("status", "gender", "tenant_id", "facility_id")
    search_fields = ("patient_code", "first_name", "last_name", "phone", "email")
    readonly_fields = ("patient_code", "created_at", "updated_at", "deleted_at")
    ordering = ("-created_at",)
