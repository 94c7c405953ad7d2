# emr_core/audit/admin.py
from django.contrib import admin

from emr_core.audit.models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = (
        "event_code",
        "entity_type",
        "entity_id",
        "tenant_id",
        "facility_id",
        "actor_user",
        "occurred_at",
    )
    list_filter = ("tenant_id", "facility_id", "event_code", "entity_type")
    search_fields = ("event_code", "entity_type", "entity_id")
    readonly_fields = [f.name for f in AuditEvent._meta.fields]
    ordering = ("-occurred_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
