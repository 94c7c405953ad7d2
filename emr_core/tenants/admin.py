# emr_core/tenants/admin.py
from django.contrib import admin

from emr_core.tenants.models import Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "code")
    readonly_fields = ("id", "created_at", "updated_at")
