# emr_core/common/permissions.py

from __future__ import annotations

import logging
from typing import Set

from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from emr_core.common.scope import require_scope

logger = logging.getLogger(__name__)

# Role names (Django auth Group names and FacilityMembership.role values)
ROLE_ADMIN = "ADMIN"
ROLE_DOCTOR = "DOCTOR"
ROLE_NURSE = "NURSE"
ROLE_RECEPTIONIST = "RECEPTIONIST"

ALL_ROLES = (ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE, ROLE_RECEPTIONIST)

CLINICAL_STAFF = {ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE, ROLE_RECEPTIONIST}

NO_FACILITY_ACCESS_MSG = "You do not have access to the selected facility."


def user_roles(user, membership=None) -> Set[str]:
    """
    Resolve roles from:
    1) Django groups: user.groups
    2) The caller's FacilityMembership.role for the active scope

    Superuser is treated as ADMIN. A user with neither gets an empty set (deny).
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    if getattr(user, "is_superuser", False):
        roles.add(ROLE_ADMIN)
        return roles

    if hasattr(user, "groups"):
        roles.update(user.groups.values_list("name", flat=True))

    if membership is not None and membership.role:
        roles.add(str(membership.role))

    return roles


def _membership_for(request, user, scope):
    cached = getattr(request, "membership", None)
    if cached is not None:
        return cached

    from emr_core.iam.services.membership import get_active_membership

    membership = get_active_membership(
        user_id=user.id,
        tenant_id=scope.tenant_id,
        facility_id=scope.facility_id,
    )
    request.membership = membership
    return membership


class BaseRolePermission(BasePermission):
    """
    Base permission class for role-based access control.

    - Unauthenticated -> False (DRF turns this into 401).
    - Missing/invalid scope headers -> 400.
    - Not a member of the scoped facility -> 403.
    - ADMIN bypass.
    - Action not listed in allowed_roles_per_action -> deny.
    """
    message = "You do not have permission to perform this action."

    # Override in subclasses: dict of action -> set of allowed roles
    allowed_roles_per_action: dict[str, Set[str]] = {}

    def _infer_action(self, request, view) -> str | None:
        action = getattr(view, "action", None)
        if action:
            return action

        # APIView endpoints: map by HTTP method
        kwargs = getattr(view, "kwargs", {}) or {}
        is_detail = "pk" in kwargs or "id" in kwargs

        method = request.method.upper()
        if method in ("GET", "HEAD", "OPTIONS"):
            return "retrieve" if is_detail else "list"
        if method == "POST":
            return "create"
        if method == "PUT":
            return "update"
        if method == "PATCH":
            return "partial_update"
        if method == "DELETE":
            return "destroy"
        return None

    def _action_key(self, request, view) -> str | None:
        """
        Actions answering both GET and POST (e.g. payments) are keyed "<action>.<method>".
        """
        action = self._infer_action(request, view)
        method_key = f"{action}.{request.method.lower()}"
        if method_key in self.allowed_roles_per_action:
            return method_key
        return action

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        scope = require_scope(request)

        membership = None
        if not getattr(user, "is_superuser", False):
            membership = _membership_for(request, user, scope)
            if membership is None:
                logger.warning(
                    "scope denied user_id=%s tenant_id=%s facility_id=%s",
                    user.id,
                    scope.tenant_id,
                    scope.facility_id,
                )
                raise PermissionDenied(NO_FACILITY_ACCESS_MSG)

        roles = user_roles(user, membership)
        request.roles = roles

        if ROLE_ADMIN in roles:
            return True

        allowed = self.allowed_roles_per_action.get(self._action_key(request, view))
        if allowed is None:
            return False
        return bool(roles & allowed)

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


# Specific permission classes for each module

class PatientPermission(BaseRolePermission):
    """Permissions for the patient registry"""
    allowed_roles_per_action = {
        "list": CLINICAL_STAFF,
        "retrieve": CLINICAL_STAFF,
        "by_code": CLINICAL_STAFF,
        "create": CLINICAL_STAFF,
        "update": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE},
        "partial_update": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE},
        "set_status": {ROLE_ADMIN, ROLE_DOCTOR},
        "stats": {ROLE_ADMIN, ROLE_DOCTOR},
        "destroy": {ROLE_ADMIN},
        "restore": {ROLE_ADMIN},
    }


class VisitPermission(BaseRolePermission):
    """Permissions for visit documentation"""
    allowed_roles_per_action = {
        "list": CLINICAL_STAFF,
        "retrieve": CLINICAL_STAFF,
        "create": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE},
        "update": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE},
        "partial_update": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE},
        "lock": {ROLE_ADMIN, ROLE_DOCTOR},
        "cancel": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "stats": {ROLE_ADMIN, ROLE_DOCTOR},
    }


class PrescriptionPermission(BaseRolePermission):
    """Permissions for prescriptions"""
    allowed_roles_per_action = {
        "list": CLINICAL_STAFF,
        "retrieve": CLINICAL_STAFF,
        "active": CLINICAL_STAFF,
        "create": {ROLE_ADMIN, ROLE_DOCTOR},
        "update": {ROLE_ADMIN, ROLE_DOCTOR},
        "partial_update": {ROLE_ADMIN, ROLE_DOCTOR},
        "discontinue": {ROLE_ADMIN, ROLE_DOCTOR},
        "complete": {ROLE_ADMIN, ROLE_DOCTOR},
    }


class BillingPermission(BaseRolePermission):
    """Permissions for invoices, payments and refunds"""
    allowed_roles_per_action = {
        "list": CLINICAL_STAFF,
        "retrieve": CLINICAL_STAFF,
        "payments.get": CLINICAL_STAFF,
        "refunds.get": CLINICAL_STAFF,
        "create": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "update": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "partial_update": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "apply_discount": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "payments.post": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "refunds.post": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "stats": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
    }


class ReportPermission(BaseRolePermission):
    """Financial reports for the front desk and up; clinical reports for doctors"""
    allowed_roles_per_action = {
        "outstanding": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "aging": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "revenue": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "payment_methods": {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST},
        "provider_productivity": {ROLE_ADMIN, ROLE_DOCTOR},
        "diagnoses": {ROLE_ADMIN, ROLE_DOCTOR},
        "prescription_patterns": {ROLE_ADMIN, ROLE_DOCTOR},
    }


class AuditPermission(BaseRolePermission):
    """Permissions for audit log access"""
    allowed_roles_per_action = {
        "list": {ROLE_ADMIN, ROLE_DOCTOR},
        "retrieve": {ROLE_ADMIN, ROLE_DOCTOR},
        "export": {ROLE_ADMIN, ROLE_DOCTOR},
    }
