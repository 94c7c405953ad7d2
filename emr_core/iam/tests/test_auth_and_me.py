# emr_core/iam/tests/test_auth_and_me.py
import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from emr_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db


def test_me_requires_auth():
    res = APIClient().get("/api/v1/me/")
    assert res.status_code == 401
    assert res.data["error"]["code"] == "not_authenticated"


def test_login_sets_cookies_and_cookie_authenticates(user, settings):
    client = APIClient()
    res = client.post("/api/v1/auth/login/", {"username": "testuser", "password": "testpass"}, format="json")
    assert res.status_code == 200
    assert res.data["access"]

    access_cookie = settings.SIMPLE_JWT["AUTH_COOKIE"]
    refresh_cookie = settings.SIMPLE_JWT["AUTH_COOKIE_REFRESH"]
    assert access_cookie in res.cookies
    assert refresh_cookie in res.cookies
    assert res.cookies[access_cookie]["httponly"]

    # the test client replays the cookies it received
    me = client.get("/api/v1/me/")
    assert me.status_code == 200
    assert me.data["user"]["id"] == user.id


def test_login_bad_password_is_401(user):
    res = APIClient().post("/api/v1/auth/login/", {"username": "testuser", "password": "nope"}, format="json")
    assert res.status_code == 401
    assert res.data["error"]["code"] == "authentication_failed"


def test_login_ignores_stale_access_cookie(user, settings):
    client = APIClient()
    client.cookies[settings.SIMPLE_JWT["AUTH_COOKIE"]] = "expired-garbage"
    res = client.post("/api/v1/auth/login/", {"username": "testuser", "password": "testpass"}, format="json")
    assert res.status_code == 200


def test_refresh_without_cookie_is_rejected():
    res = APIClient().post("/api/v1/auth/refresh/")
    assert res.status_code == 400
    assert res.data["error"]["code"] == "validation_error"


def test_refresh_rotates_from_cookie(user):
    client = APIClient()
    client.post("/api/v1/auth/login/", {"username": "testuser", "password": "testpass"}, format="json")

    res = client.post("/api/v1/auth/refresh/")
    assert res.status_code == 200
    assert res.data["detail"] == "refreshed"
    assert res.data["access"]


def test_logout_clears_cookies(user, settings):
    client = APIClient()
    client.post("/api/v1/auth/login/", {"username": "testuser", "password": "testpass"}, format="json")

    res = client.post("/api/v1/auth/logout/")
    assert res.status_code == 200
    assert res.cookies[settings.SIMPLE_JWT["AUTH_COOKIE"]].value == ""


def test_bearer_header_authenticates(user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {RefreshToken.for_user(user).access_token}")
    assert client.get("/api/v1/me/").status_code == 200


def test_garbage_bearer_token_is_401(user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")
    res = client.get("/api/v1/me/")
    assert res.status_code == 401


def test_me_returns_memberships_and_scope_roles(api_client, user, tenant, facility):
    res = api_client.get("/api/v1/me/", **scoped(tenant, facility))
    assert res.status_code == 200

    body = res.json()
    assert body["user"]["id"] == user.id
    assert body["memberships"] == [
        {
            "tenant_id": str(tenant.id),
            "tenant_code": tenant.code,
            "facility_id": str(facility.id),
            "facility_code": facility.code,
            "facility_name": facility.name,
            "role": "ADMIN",
        }
    ]
    assert body["active_scope"] == {"tenant_id": str(tenant.id), "facility_id": str(facility.id)}
    assert body["roles"] == ["ADMIN"]


def test_me_without_scope_headers(api_client):
    res = api_client.get("/api/v1/me/")
    assert res.status_code == 200
    assert res.data["active_scope"] is None


def test_me_scope_headers_block_non_member(user, other_tenant, other_facility):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {RefreshToken.for_user(user).access_token}")

    res = client.get("/api/v1/me/", **scoped(other_tenant, other_facility))
    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"
