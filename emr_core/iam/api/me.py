# emr_core/iam/api/me.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from emr_core.common.permissions import NO_FACILITY_ACCESS_MSG, user_roles
from emr_core.common.scope import attach_scope, resolve_scope
from emr_core.iam.api.schema_serializers import MeResponseSerializer
from emr_core.iam.services.membership import get_active_membership, list_user_facilities


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: MeResponseSerializer}, tags=["IAM"])
    def get(self, request):
        """
        Returns user info + memberships.
        Scope headers are OPTIONAL for GET /me.
        If provided, they MUST be valid and the user MUST be a member, else 400/403.
        """
        user = request.user
        membership = None
        active_scope = None

        scope = resolve_scope(request)
        if scope is not None:
            membership = get_active_membership(
                user_id=user.id,
                tenant_id=scope.tenant_id,
                facility_id=scope.facility_id,
            )
            if membership is None and not user.is_superuser:
                raise PermissionDenied(NO_FACILITY_ACCESS_MSG)
            attach_scope(request, scope)
            active_scope = {
                "tenant_id": str(scope.tenant_id),
                "facility_id": str(scope.facility_id),
            }

        return Response(
            {
                "user": {
                    "id": user.id,
                    "username": getattr(user, "username", None),
                    "email": getattr(user, "email", None),
                    "is_superuser": bool(getattr(user, "is_superuser", False)),
                },
                "memberships": list_user_facilities(user.id),
                "active_scope": active_scope,
                "roles": sorted(user_roles(user, membership)),
            },
            status=status.HTTP_200_OK,
        )
