# emr_core/iam/models.py
import uuid

from django.conf import settings
from django.db import models

from emr_core.facilities.models import Facility
from emr_core.tenants.models import Tenant


class MembershipRole(models.TextChoices):
    ADMIN = "ADMIN", "Administrator"
    DOCTOR = "DOCTOR", "Doctor"
    NURSE = "NURSE", "Nurse"
    RECEPTIONIST = "RECEPTIONIST", "Receptionist"


class FacilityMembership(models.Model):
    """
    Assigns a user to a facility with a role.
    This is the RBAC enforcement point for facility-level access.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="facility_memberships")
    facility = models.ForeignKey(Facility, on_delete=models.PROTECT, related_name="memberships")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="facility_memberships")

    role = models.CharField(max_length=32, choices=MembershipRole.choices)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "iam_facility_membership"
        constraints = [
            models.UniqueConstraint(
                fields=["facility", "user"],
                name="uq_facility_user_membership",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "facility"], name="membership_tenant_fac_idx"),
            models.Index(fields=["tenant", "is_active"], name="membership_tenant_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}@{self.facility_id} ({self.role})"
