# emr_core/iam/api/auth.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer

from emr_core.iam.api.schema_serializers import (
    LoginRequestSerializer,
    LoginResponseSerializer,
    LogoutResponseSerializer,
    RefreshResponseSerializer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CookiePolicy:
    access_name: str
    refresh_name: str
    access_max_age: int
    refresh_max_age: int
    secure: bool
    samesite: str

    @classmethod
    def from_settings(cls) -> "CookiePolicy":
        cfg = getattr(settings, "SIMPLE_JWT", {}) or {}
        return cls(
            access_name=cfg.get("AUTH_COOKIE", "emr_access"),
            refresh_name=cfg.get("AUTH_COOKIE_REFRESH", "emr_refresh"),
            access_max_age=_seconds(cfg.get("ACCESS_TOKEN_LIFETIME", timedelta(minutes=15))),
            refresh_max_age=_seconds(cfg.get("REFRESH_TOKEN_LIFETIME", timedelta(days=7))),
            secure=bool(cfg.get("AUTH_COOKIE_SECURE", False)),
            samesite=cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
        )

    def write(self, response: Response, *, access: str, refresh: str) -> None:
        for name, value, max_age in (
            (self.access_name, access, self.access_max_age),
            (self.refresh_name, refresh, self.refresh_max_age),
        ):
            response.set_cookie(
                name,
                value,
                max_age=max_age,
                httponly=True,
                secure=self.secure,
                samesite=self.samesite,
                path="/",
            )

    def clear(self, response: Response) -> None:
        response.delete_cookie(self.access_name, path="/")
        response.delete_cookie(self.refresh_name, path="/")


def _seconds(value) -> int:
    """JWT lifetimes may be configured as timedelta or plain seconds."""
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return int(value)


class CredentialView(APIView):
    """
    Login/refresh read credentials from the body or the refresh cookie only,
    so a stale access cookie never blocks them. Failures stay 401.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get_authenticate_header(self, request):
        return 'Bearer realm="api"'


class LoginView(CredentialView):
    @extend_schema(request=LoginRequestSerializer, responses={200: LoginResponseSerializer}, tags=["IAM"])
    def post(self, request):
        serializer = TokenObtainPairSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        access = serializer.validated_data["access"]
        logger.info("login ok user_id=%s", serializer.user.id)

        res = Response({"detail": "login ok", "access": access}, status=status.HTTP_200_OK)
        CookiePolicy.from_settings().write(res, access=access, refresh=serializer.validated_data["refresh"])
        return res


class RefreshView(CredentialView):
    @extend_schema(request=None, responses={200: RefreshResponseSerializer}, tags=["IAM"])
    def post(self, request):
        policy = CookiePolicy.from_settings()
        refresh = request.COOKIES.get(policy.refresh_name)

        serializer = TokenRefreshSerializer(data={"refresh": refresh})
        serializer.is_valid(raise_exception=True)

        access = serializer.validated_data["access"]
        res = Response({"detail": "refreshed", "access": access}, status=status.HTTP_200_OK)
        # refresh is only present when ROTATE_REFRESH_TOKENS is on
        policy.write(res, access=access, refresh=serializer.validated_data.get("refresh", refresh))
        return res


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={200: LogoutResponseSerializer}, tags=["IAM"])
    def post(self, request):
        res = Response({"detail": "logged out"}, status=status.HTTP_200_OK)
        CookiePolicy.from_settings().clear(res)
        logger.info("logout user_id=%s", request.user.id)
        return res
