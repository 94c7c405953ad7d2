# emr_core/facilities/models.py
from __future__ import annotations

import uuid

from django.db import models

from emr_core.tenants.models import Tenant


class Facility(models.Model):
    """
    A clinic site under a Tenant. Patients, visits, prescriptions and
    invoices are all scoped to one facility.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="facilities")

    name = models.CharField(max_length=255)
    code = models.SlugField(max_length=64)  # unique per tenant

    phone = models.CharField(max_length=32, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "facilities_facility"
        constraints = [
            models.UniqueConstraint(fields=["tenant", "code"], name="uq_facility_tenant_code"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"
