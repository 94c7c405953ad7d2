# emr_core/iam/admin.py
from __future__ import annotations

from django.contrib import admin

from emr_core.iam.models import FacilityMembership


@admin.register(FacilityMembership)
class FacilityMembershipAdmin(admin.ModelAdmin):
    list_display = ("tenant", "facility", "user", "role", "is_active")
    list_filter = ("tenant", "facility", "role", "is_active")
    search_fields = ("facility__name", "facility__code", "user__username", "user__email")
    autocomplete_fields = ("tenant", "facility", "user")
