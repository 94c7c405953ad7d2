from django.contrib import admin

from emr_core.prescriptions.models import Prescription


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "medication_name", "dosage", "status", "created_at")
    list_filter = ("status", "route")
    search_fields = ("medication_name", "generic_name", "brand_name", "patient__patient_code")
    readonly_fields = ("discontinued_at", "discontinued_by", "created_at", "updated_at")
