# emr_core/common/scope.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from rest_framework.exceptions import ValidationError


@dataclass(frozen=True)
class Scope:
    tenant_id: UUID
    facility_id: UUID


# Preferred header names (what we standardize on)
HDR_TENANT = "X-Tenant-Id"
HDR_FACILITY = "X-Facility-Id"

MISSING_SCOPE_MSG = "Missing scope headers. Provide X-Tenant-Id and X-Facility-Id."
INVALID_SCOPE_MSG = "Invalid scope headers. Provide valid UUIDs for X-Tenant-Id and X-Facility-Id."


def _parse_uuid(value) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _get_header(request, name: str) -> Optional[str]:
    """
    request.headers is case-insensitive; fallback to META for APIRequestFactory requests.
    """
    headers = getattr(request, "headers", None)
    if headers is not None:
        v = headers.get(name)
        if v:
            return v
    meta_key = "HTTP_" + name.upper().replace("-", "_")
    return request.META.get(meta_key)


def resolve_scope(request) -> Optional[Scope]:
    """
    Pure header resolver.

    - Neither header present -> None
    - Only one present -> ValidationError(MISSING_SCOPE_MSG)
    - Non-UUID values -> ValidationError(INVALID_SCOPE_MSG)
    """
    # Values attached upstream (tests, previous permission check) win.
    t = getattr(request, "tenant_id", None)
    f = getattr(request, "facility_id", None)
    if t and f:
        tu, fu = _parse_uuid(t), _parse_uuid(f)
        if tu and fu:
            return Scope(tenant_id=tu, facility_id=fu)

    tenant_raw = _get_header(request, HDR_TENANT)
    facility_raw = _get_header(request, HDR_FACILITY)

    if not tenant_raw and not facility_raw:
        return None
    if not tenant_raw or not facility_raw:
        raise ValidationError(MISSING_SCOPE_MSG)

    tenant_id = _parse_uuid(tenant_raw)
    facility_id = _parse_uuid(facility_raw)
    if not tenant_id or not facility_id:
        raise ValidationError(INVALID_SCOPE_MSG)

    return Scope(tenant_id=tenant_id, facility_id=facility_id)


def attach_scope(request, scope: Scope) -> None:
    request.scope = scope
    request.tenant_id = scope.tenant_id
    request.facility_id = scope.facility_id


def require_scope(request) -> Scope:
    """
    Scope for a domain endpoint. Raises 400 when missing or malformed.
    Membership is enforced by the permission layer, not here.
    """
    existing = getattr(request, "scope", None)
    if isinstance(existing, Scope):
        return existing

    scope = resolve_scope(request)
    if scope is None:
        raise ValidationError(MISSING_SCOPE_MSG)

    attach_scope(request, scope)
    return scope
