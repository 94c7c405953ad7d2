# emr_core/tests/test_scope_enforcement.py
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from emr_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db

URL = "/api/v1/patients/"


def test_unauthenticated_is_401_even_without_scope():
    res = APIClient().get(URL)
    assert res.status_code == 401
    assert res.data["error"]["code"] == "not_authenticated"


def test_missing_scope_headers_is_400(api_client):
    res = api_client.get(URL)
    assert res.status_code == 400
    assert res.data["error"]["code"] == "validation_error"
    assert "Missing scope headers" in res.data["error"]["message"]


def test_single_scope_header_is_400(api_client, tenant):
    res = api_client.get(URL, HTTP_X_TENANT_ID=str(tenant.id))
    assert res.status_code == 400
    assert "Missing scope headers" in res.data["error"]["message"]


def test_invalid_scope_uuid_is_400(api_client):
    res = api_client.get(URL, HTTP_X_TENANT_ID="not-a-uuid", HTTP_X_FACILITY_ID="also-not-a-uuid")
    assert res.status_code == 400
    assert "Invalid scope headers" in res.data["error"]["message"]


def test_non_member_is_403(api_client, other_tenant, other_facility):
    res = api_client.get(URL, **scoped(other_tenant, other_facility))
    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"
    assert "do not have access" in res.data["error"]["message"].lower()


def test_inactive_membership_is_403(user, tenant, facility):
    user.facility_memberships.update(is_active=False)
    client = APIClient()
    client.force_authenticate(user=user)
    assert client.get(URL, **scoped(tenant, facility)).status_code == 403


def test_superuser_needs_no_membership(tenant, facility):
    admin = get_user_model().objects.create_superuser(username="root", password="x", email="root@example.com")
    client = APIClient()
    client.force_authenticate(user=admin)
    assert client.get(URL, **scoped(tenant, facility)).status_code == 200


def test_rows_from_other_scope_are_invisible(api_client, user, tenant, facility, other_tenant, other_facility):
    from emr_core.conftest import PATIENT_PAYLOAD
    from emr_core.iam.models import FacilityMembership
    from emr_core.patients.services import PatientService

    PatientService.register(
        tenant_id=other_tenant.id, facility_id=other_facility.id, actor_user_id=user.id, data=PATIENT_PAYLOAD
    )
    FacilityMembership.objects.create(tenant=other_tenant, facility=other_facility, user=user, role="ADMIN")

    assert api_client.get(URL, **scoped(tenant, facility)).data["meta"]["total"] == 0
    assert api_client.get(URL, **scoped(other_tenant, other_facility)).data["meta"]["total"] == 1
