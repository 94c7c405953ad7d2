# emr_core/billing/selectors.py
from __future__ import annotations

from datetime import date
from uuid import UUID

from django.db.models import Count, Q, QuerySet, Sum
from rest_framework.exceptions import NotFound

from emr_core.billing.calculations import ZERO, money
from emr_core.billing.models import Invoice, InvoiceStatus, Payment, Refund

INVOICE_NOT_FOUND_MSG = "Invoice not found."


def invoices_qs(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Invoice]:
    return Invoice.objects.filter(tenant_id=tenant_id, facility_id=facility_id).select_related("patient")


def in_date_range(qs: QuerySet, field: str, start_date: date | None, end_date: date | None) -> QuerySet:
    if start_date:
        qs = qs.filter(**{f"{field}__date__gte": start_date})
    if end_date:
        qs = qs.filter(**{f"{field}__date__lte": end_date})
    return qs


def get_invoice(*, tenant_id: UUID, facility_id: UUID, invoice_id: UUID) -> Invoice:
    invoice = (
        invoices_qs(tenant_id=tenant_id, facility_id=facility_id)
        .prefetch_related("lines", "payments", "refunds")
        .filter(id=invoice_id)
        .first()
    )
    if invoice is None:
        raise NotFound(INVOICE_NOT_FOUND_MSG)
    return invoice


def search_invoices(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    q: str | None = None,
    status: str | None = None,
    patient_id: UUID | None = None,
    visit_id: UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> QuerySet[Invoice]:
    qs = invoices_qs(tenant_id=tenant_id, facility_id=facility_id)

    qv = (q or "").strip()
    if qv:
        qs = qs.filter(
            Q(invoice_number__icontains=qv)
            | Q(patient__first_name__icontains=qv)
            | Q(patient__last_name__icontains=qv)
            | Q(patient__patient_code__icontains=qv)
        )
    if status:
        qs = qs.filter(status=status)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if visit_id:
        qs = qs.filter(visit_id=visit_id)
    qs = in_date_range(qs, "created_at", start_date, end_date)

    return qs.order_by("-created_at", "-id")


def payments_for(invoice: Invoice) -> QuerySet[Payment]:
    return invoice.payments.order_by("-received_at")


def refunds_for(invoice: Invoice) -> QuerySet[Refund]:
    return invoice.refunds.order_by("-refunded_at")


def invoice_stats(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict:
    """
    Invoice counts and balances cover invoices created in the window; revenue
    covers payments received minus refunds issued in the window.
    """
    scoped = {"tenant_id": tenant_id, "facility_id": facility_id}
    open_statuses = [InvoiceStatus.UNPAID, InvoiceStatus.PARTIALLY_PAID]

    invoices = in_date_range(Invoice.objects.filter(**scoped), "created_at", start_date, end_date)
    payments = in_date_range(Payment.objects.filter(**scoped), "received_at", start_date, end_date)
    refunds = in_date_range(Refund.objects.filter(**scoped), "refunded_at", start_date, end_date)

    agg = invoices.aggregate(
        total_invoices=Count("id"),
        unpaid_count=Count("id", filter=Q(status__in=open_statuses)),
        outstanding_balance=Sum("balance_due", filter=Q(status__in=open_statuses)),
    )
    paid = payments.aggregate(s=Sum("amount"))["s"] or ZERO
    refunded = refunds.aggregate(s=Sum("amount"))["s"] or ZERO

    by_status = {s: 0 for s in InvoiceStatus.values}
    for row in invoices.values("status").annotate(n=Count("id")):
        by_status[row["status"]] = row["n"]

    return {
        "total_invoices": agg["total_invoices"],
        "total_revenue": money(paid - refunded),
        "unpaid_count": agg["unpaid_count"],
        "outstanding_balance": money(agg["outstanding_balance"] or ZERO),
        "by_status": by_status,
    }
