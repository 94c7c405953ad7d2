# emr_core/reports/selectors.py
from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from django.db.models import Count, Q, QuerySet, Sum
from django.utils import timezone

from emr_core.billing.calculations import ZERO, money
from emr_core.billing.models import Invoice, InvoiceStatus, Payment, PaymentMethod, Refund
from emr_core.billing.selectors import in_date_range
from emr_core.prescriptions.models import Prescription, PrescriptionStatus
from emr_core.visits.models import Visit, VisitStatus

OPEN_STATUSES = (InvoiceStatus.UNPAID, InvoiceStatus.PARTIALLY_PAID)

PERIODS = ("day", "week", "month", "year")

# (label, lower bound in days, upper bound in days or None)
AGING_BUCKETS = (
    ("0-30", 0, 30),
    ("31-60", 31, 60),
    ("61-90", 61, 90),
    ("90+", 91, None),
)


def _scoped(model, tenant_id: UUID, facility_id: UUID) -> QuerySet:
    return model.objects.filter(tenant_id=tenant_id, facility_id=facility_id)


def period_start(day: date, period: str) -> date:
    """First day of the day/week (Monday)/month/year containing `day`."""
    if period == "day":
        return day
    if period == "week":
        return day - timedelta(days=day.weekday())
    if period == "month":
        return day.replace(day=1)
    if period == "year":
        return day.replace(month=1, day=1)
    raise ValueError(f"unknown period: {period}")


# ---------- billing ----------

def outstanding_invoices(*, tenant_id: UUID, facility_id: UUID) -> QuerySet[Invoice]:
    """Invoices still owing money, largest balance first."""
    return (
        _scoped(Invoice, tenant_id, facility_id)
        .filter(status__in=OPEN_STATUSES)
        .select_related("patient")
        .order_by("-balance_due", "created_at", "id")
    )


def outstanding_summary(*, tenant_id: UUID, facility_id: UUID) -> dict:
    agg = outstanding_invoices(tenant_id=tenant_id, facility_id=facility_id).aggregate(
        count=Count("id"),
        total=Sum("balance_due"),
    )
    return {"count": agg["count"], "total_outstanding": money(agg["total"] or ZERO)}


def aging_report(*, tenant_id: UUID, facility_id: UUID, as_of: date | None = None) -> dict:
    """
    Unpaid balances bucketed by invoice age in days on `as_of` (today by default).
    Invoices created after `as_of` are left out.
    """
    as_of = as_of or timezone.localdate()
    buckets = {label: {"bucket": label, "count": 0, "balance": ZERO} for label, _, _ in AGING_BUCKETS}

    rows = outstanding_invoices(tenant_id=tenant_id, facility_id=facility_id).filter(
        created_at__date__lte=as_of
    ).values_list("created_at", "balance_due")

    for created_at, balance in rows:
        age = (as_of - timezone.localtime(created_at).date()).days
        for label, low, high in AGING_BUCKETS:
            if age >= low and (high is None or age <= high):
                buckets[label]["count"] += 1
                buckets[label]["balance"] += balance
                break

    result = [dict(b, balance=money(b["balance"])) for b in buckets.values()]
    return {
        "as_of": as_of,
        "total_outstanding": money(sum((b["balance"] for b in result), ZERO)),
        "total_count": sum(b["count"] for b in result),
        "buckets": result,
    }


def revenue_report(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    period: str = "month",
) -> dict:
    """
    Billed amounts come from invoices created in the window; collected and
    refunded amounts from payments received and refunds issued in it.
    The series holds one row per period that saw money move, oldest first.
    """
    invoices = in_date_range(_scoped(Invoice, tenant_id, facility_id), "created_at", start_date, end_date)
    payments = in_date_range(_scoped(Payment, tenant_id, facility_id), "received_at", start_date, end_date)
    refunds = in_date_range(_scoped(Refund, tenant_id, facility_id), "refunded_at", start_date, end_date)

    by_status = {s: {"count": 0, "total": ZERO, "balance": ZERO} for s in InvoiceStatus.values}
    for row in invoices.values("status").annotate(n=Count("id"), total=Sum("grand_total"), balance=Sum("balance_due")):
        by_status[row["status"]] = {
            "count": row["n"],
            "total": money(row["total"] or ZERO),
            "balance": money(row["balance"] or ZERO),
        }

    series: dict[date, dict[str, Decimal]] = defaultdict(lambda: {"collected": ZERO, "refunded": ZERO})
    for received_at, amount in payments.values_list("received_at", "amount"):
        series[period_start(timezone.localtime(received_at).date(), period)]["collected"] += amount
    for refunded_at, amount in refunds.values_list("refunded_at", "amount"):
        series[period_start(timezone.localtime(refunded_at).date(), period)]["refunded"] += amount

    collected = sum((s["collected"] for s in series.values()), ZERO)
    refunded = sum((s["refunded"] for s in series.values()), ZERO)

    return {
        "period": period,
        "start_date": start_date,
        "end_date": end_date,
        "invoice_count": sum(v["count"] for v in by_status.values()),
        "billed": money(sum((v["total"] for v in by_status.values()), ZERO)),
        "collected": money(collected),
        "refunded": money(refunded),
        "net_revenue": money(collected - refunded),
        "by_status": by_status,
        "series": [
            {
                "period_start": key,
                "collected": money(v["collected"]),
                "refunded": money(v["refunded"]),
                "net": money(v["collected"] - v["refunded"]),
            }
            for key, v in sorted(series.items())
        ],
    }


def payment_method_breakdown(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    """Every payment method with its count and total, largest total first."""
    payments = in_date_range(_scoped(Payment, tenant_id, facility_id), "received_at", start_date, end_date)

    rows = {m: {"method": m, "count": 0, "total": ZERO} for m in PaymentMethod.values}
    for row in payments.values("method").annotate(n=Count("id"), total=Sum("amount")):
        rows[row["method"]] = {"method": row["method"], "count": row["n"], "total": money(row["total"] or ZERO)}

    return sorted(rows.values(), key=lambda r: (-r["total"], r["method"]))


# ---------- clinical ----------

def _visits_in_range(tenant_id, facility_id, start_date, end_date) -> QuerySet[Visit]:
    return in_date_range(_scoped(Visit, tenant_id, facility_id), "visit_date", start_date, end_date)


def provider_productivity(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    rows = (
        _visits_in_range(tenant_id, facility_id, start_date, end_date)
        .values("provider_id", "provider__username", "provider__first_name", "provider__last_name")
        .annotate(
            visits=Count("id"),
            completed=Count("id", filter=Q(status=VisitStatus.COMPLETED)),
            cancelled=Count("id", filter=Q(status=VisitStatus.CANCELLED)),
            locked=Count("id", filter=Q(is_locked=True)),
        )
        .order_by("-visits", "provider_id")
    )
    return [
        {
            "provider_id": r["provider_id"],
            "provider_name": f"{r['provider__first_name']} {r['provider__last_name']}".strip()
            or r["provider__username"],
            "visits": r["visits"],
            "completed": r["completed"],
            "cancelled": r["cancelled"],
            "locked": r["locked"],
        }
        for r in rows
    ]


def top_diagnoses(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 10,
) -> list[dict]:
    """Most frequent primary diagnoses. Cancelled visits do not count."""
    return list(
        _visits_in_range(tenant_id, facility_id, start_date, end_date)
        .exclude(status=VisitStatus.CANCELLED)
        .exclude(primary_diagnosis="")
        .values("primary_diagnosis")
        .annotate(count=Count("id"))
        .order_by("-count", "primary_diagnosis")[:limit]
    )


def prescription_patterns(
    *,
    tenant_id: UUID,
    facility_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 10,
) -> list[dict]:
    """Most prescribed medications with how many are still active."""
    qs = in_date_range(_scoped(Prescription, tenant_id, facility_id), "created_at", start_date, end_date)
    return list(
        qs.values("medication_name")
        .annotate(
            count=Count("id"),
            active=Count("id", filter=Q(status=PrescriptionStatus.ACTIVE)),
            patients=Count("patient", distinct=True),
        )
        .order_by("-count", "medication_name")[:limit]
    )
