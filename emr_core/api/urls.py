# emr_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from emr_core.audit.api.views import AuditEventViewSet
from emr_core.billing.api.views import InvoiceViewSet
from emr_core.iam.api.auth import LoginView, LogoutView, RefreshView
from emr_core.iam.api.me import MeView
from emr_core.patients.api.views import PatientViewSet
from emr_core.prescriptions.api.views import PrescriptionViewSet
from emr_core.reports.api.views import ReportViewSet
from emr_core.visits.api.views import VisitViewSet

router = DefaultRouter()

router.register(r"patients", PatientViewSet, basename="patients")
router.register(r"visits", VisitViewSet, basename="visits")
router.register(r"prescriptions", PrescriptionViewSet, basename="prescriptions")
router.register(r"billing/invoices", InvoiceViewSet, basename="billing-invoices")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")
router.register(r"reports", ReportViewSet, basename="reports")

urlpatterns = [
    # Auth + /me (unscoped)
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),

    *router.urls,
]
