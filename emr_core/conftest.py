# emr_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from emr_core.facilities.models import Facility
from emr_core.iam.models import FacilityMembership
from emr_core.tenants.models import Tenant

PATIENT_PAYLOAD = {
    "first_name": "Amina",
    "last_name": "Otieno",
    "date_of_birth": "1988-04-12",
    "gender": "FEMALE",
    "phone": "0712345678",
    "email": "amina@example.com",
}


def scope_headers(tenant, facility):
    """
    Scope headers as the DRF test client expects them (HTTP_ prefix).
    """
    return {
        "HTTP_X_TENANT_ID": str(tenant.id),
        "HTTP_X_FACILITY_ID": str(facility.id),
    }


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(code="test-tenant", name="Test Tenant")


@pytest.fixture
def facility(db, tenant):
    return Facility.objects.create(tenant=tenant, code="main", name="Main Facility")


@pytest.fixture
def make_user(db, tenant, facility):
    """
    make_user("NURSE") -> active user with that group and a membership in the test facility.
    Pass member=False for a user that belongs to no facility.
    """
    User = get_user_model()
    counter = {"n": 0}

    def _make(role="ADMIN", *, member=True, username=None):
        counter["n"] += 1
        user = User.objects.create_user(
            username=username or f"{role.lower()}{counter['n']}",
            password="testpass",
            is_active=True,
        )
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)

        if member:
            FacilityMembership.objects.create(
                tenant=tenant,
                facility=facility,
                user=user,
                role=role,
                is_active=True,
            )
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user("ADMIN", username="testuser")


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def client_for(make_user):
    """
    client_for("RECEPTIONIST") -> APIClient authenticated as a fresh member with that role.
    """

    def _client(role):
        c = APIClient()
        c.force_authenticate(user=make_user(role))
        return c

    return _client


@pytest.fixture
def scoped(tenant, facility):
    return scope_headers(tenant, facility)


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(code="other-tenant", name="Other Tenant")


@pytest.fixture
def other_facility(db, other_tenant):
    return Facility.objects.create(tenant=other_tenant, code="other", name="Other Facility")


@pytest.fixture
def patient(tenant, facility, user):
    from emr_core.patients.services import PatientService

    return PatientService.register(
        tenant_id=tenant.id,
        facility_id=facility.id,
        actor_user_id=user.id,
        data=dict(PATIENT_PAYLOAD, allergies=["Penicillin"]),
    )


@pytest.fixture
def visit(tenant, facility, patient, user):
    from emr_core.visits.services import VisitService

    return VisitService.create(
        tenant_id=tenant.id,
        facility_id=facility.id,
        actor_user_id=user.id,
        patient_id=patient.id,
        visit_type="ROUTINE",
        data={"chief_complaint": "Headache for three days"},
    )
