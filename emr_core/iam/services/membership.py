# emr_core/iam/services/membership.py
from __future__ import annotations

from uuid import UUID

from emr_core.iam.models import FacilityMembership


def list_user_facilities(user_id: int) -> list[dict]:
    """
    Return facility memberships for /me response.
    """
    qs = (
        FacilityMembership.objects.select_related("facility", "tenant")
        .filter(user_id=user_id, is_active=True)
        .order_by("facility__name")
    )

    return [
        {
            "tenant_id": str(m.tenant_id),
            "tenant_code": m.tenant.code,
            "facility_id": str(m.facility_id),
            "facility_code": m.facility.code,
            "facility_name": m.facility.name,
            "role": m.role,
        }
        for m in qs
    ]


def get_active_membership(*, user_id: int, tenant_id: UUID, facility_id: UUID) -> FacilityMembership | None:
    return FacilityMembership.objects.filter(
        is_active=True,
        tenant_id=tenant_id,
        facility_id=facility_id,
        user_id=user_id,
    ).first()


def is_user_member_of_facility(*, user_id: int, tenant_id: UUID, facility_id: UUID) -> bool:
    """
    Validate user -> (tenant, facility) membership.
    This is the single source of truth used by scope enforcement.
    """
    return get_active_membership(user_id=user_id, tenant_id=tenant_id, facility_id=facility_id) is not None
