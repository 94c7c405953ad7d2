from django.contrib import admin

from emr_core.visits.models import Visit


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ("id", "patient", "visit_type", "visit_date", "status", "is_locked", "facility_id")
    list_filter = ("status", "is_locked")
    search_fields = ("patient__patient_code", "visit_type", "primary_diagnosis")
    readonly_fields = ("locked_at", "locked_by", "bmi", "created_at", "updated_at")
