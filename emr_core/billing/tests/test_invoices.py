# emr_core/billing/tests/test_invoices.py
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from emr_core.billing.models import Invoice, InvoiceStatus
from emr_core.billing.services import InvoiceService, PaymentService
from emr_core.common.api.exceptions import BusinessRuleError, ConflictError
from emr_core.conftest import PATIENT_PAYLOAD
from emr_core.patients.services import PatientService
from emr_core.tests.helpers import scoped

pytestmark = pytest.mark.django_db

URL = "/api/v1/billing/invoices/"

ITEMS = [
    {"description": "Consultation", "quantity": "1", "unit_price": "50.00"},
    {"description": "Lab panel", "quantity": "2", "unit_price": "15.00"},
]


def _ctx(tenant, facility, user):
    return {"tenant_id": tenant.id, "facility_id": facility.id, "actor_user_id": user.id}


@pytest.fixture
def invoice(tenant, facility, user, patient):
    return InvoiceService.create(**_ctx(tenant, facility, user), patient_id=patient.id, items=ITEMS, tax_rate="10")


def test_create_computes_totals_and_number(invoice):
    year = timezone.now().year
    assert invoice.invoice_number == f"INV-{year}-00001"
    assert invoice.subtotal == Decimal("80.00")
    assert invoice.tax_amount == Decimal("8.00")
    assert invoice.grand_total == Decimal("88.00")
    assert invoice.balance_due == Decimal("88.00")
    assert invoice.status == InvoiceStatus.UNPAID
    assert list(invoice.lines.values_list("line_total", flat=True)) == [Decimal("50.00"), Decimal("30.00")]


def test_invoice_numbers_increment(tenant, facility, user, patient, invoice):
    second = InvoiceService.create(**_ctx(tenant, facility, user), patient_id=patient.id, items=ITEMS)
    assert second.invoice_number.endswith("-00002")


def test_percentage_discount_with_tax(tenant, facility, user, patient):
    inv = InvoiceService.create(
        **_ctx(tenant, facility, user),
        patient_id=patient.id,
        items=ITEMS,
        discount_percent="10",
        discount_reason="Staff",
        tax_rate="10",
    )
    assert inv.discount_total == Decimal("8.00")
    assert inv.tax_amount == Decimal("7.20")
    assert inv.grand_total == Decimal("79.20")


def test_discount_requires_reason(tenant, facility, user, patient):
    with pytest.raises(ValidationError) as exc:
        InvoiceService.create(**_ctx(tenant, facility, user), patient_id=patient.id, items=ITEMS, discount_amount="5")
    assert "discount_reason" in exc.value.detail


def test_one_invoice_per_visit(tenant, facility, user, patient, visit):
    InvoiceService.create(**_ctx(tenant, facility, user), patient_id=patient.id, visit_id=visit.id, items=ITEMS)

    with pytest.raises(ConflictError):
        InvoiceService.create(**_ctx(tenant, facility, user), patient_id=patient.id, visit_id=visit.id, items=ITEMS)


def test_visit_must_belong_to_invoice_patient(tenant, facility, user, visit):
    other = PatientService.register(
        **_ctx(tenant, facility, user), data=dict(PATIENT_PAYLOAD, phone="0766666666", email="")
    )
    with pytest.raises(ValidationError):
        InvoiceService.create(**_ctx(tenant, facility, user), patient_id=other.id, visit_id=visit.id, items=ITEMS)


def test_payments_drive_status(tenant, facility, user, invoice):
    PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="50.00")
    invoice.refresh_from_db()
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert invoice.amount_paid == Decimal("50.00")
    assert invoice.balance_due == Decimal("38.00")

    pay = PaymentService.record_payment(
        **_ctx(tenant, facility, user), invoice_id=invoice.id, amount="38.00", method="CARD"
    )
    assert pay.receipt_no.startswith("RCP-")
    invoice.refresh_from_db()
    assert invoice.status == InvoiceStatus.PAID
    assert invoice.paid_at is not None

    with pytest.raises(BusinessRuleError):
        PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="1.00")


def test_payment_amount_rules(tenant, facility, user, invoice):
    with pytest.raises(ValidationError):
        PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="0")
    with pytest.raises(ValidationError):
        PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="88.01")
    with pytest.raises(ValidationError):
        PaymentService.record_payment(
            **_ctx(tenant, facility, user), invoice_id=invoice.id, amount="1.00", method="BITCOIN"
        )


def test_refund_rules_and_status_rollback(tenant, facility, user, invoice):
    with pytest.raises(ValidationError) as exc:
        PaymentService.record_refund(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="5.00", reason="")
    assert "reason" in exc.value.detail

    PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="88.00")

    with pytest.raises(ValidationError):
        PaymentService.record_refund(
            **_ctx(tenant, facility, user), invoice_id=invoice.id, amount="88.01", reason="Overcharge"
        )

    refund = PaymentService.record_refund(
        **_ctx(tenant, facility, user), invoice_id=invoice.id, amount="20.00", reason="Lab not done"
    )
    assert refund.reference.startswith("REF-")

    invoice.refresh_from_db()
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert invoice.amount_paid == Decimal("68.00")
    assert invoice.balance_due == Decimal("20.00")
    assert invoice.paid_at is None


def test_update_replaces_lines_and_discount(tenant, facility, user, invoice):
    updated = InvoiceService.update(
        **_ctx(tenant, facility, user),
        invoice_id=invoice.id,
        data={
            "items": [{"description": "Consultation", "quantity": "1", "unit_price": "100.00"}],
            "discount_amount": "10.00",
            "discount_reason": "Loyalty",
        },
    )
    assert updated.subtotal == Decimal("100.00")
    assert updated.discount_total == Decimal("10.00")
    assert updated.grand_total == Decimal("99.00")
    assert updated.lines.count() == 1


def test_paid_invoice_cannot_be_updated_or_discounted(tenant, facility, user, invoice):
    PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="88.00")

    with pytest.raises(BusinessRuleError):
        InvoiceService.update(**_ctx(tenant, facility, user), invoice_id=invoice.id, data={"notes": "x"})
    with pytest.raises(BusinessRuleError):
        InvoiceService.apply_discount(
            **_ctx(tenant, facility, user), invoice_id=invoice.id, reason="Goodwill", discount_amount="5"
        )


def test_apply_discount_rederives_balance(tenant, facility, user, invoice):
    PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="70.00")

    inv = InvoiceService.apply_discount(
        **_ctx(tenant, facility, user), invoice_id=invoice.id, reason="Hardship", discount_percent="25"
    )
    # (80 - 20) * 1.10 = 66.00, already covered by the 70.00 paid
    assert inv.grand_total == Decimal("66.00")
    assert inv.balance_due == Decimal("-4.00")
    assert inv.status == InvoiceStatus.PAID


def test_api_create_and_retrieve(api_client, tenant, facility, patient, visit):
    res = api_client.post(
        URL,
        {"patient": str(patient.id), "visit": str(visit.id), "items": ITEMS, "tax_rate": "10"},
        format="json",
        **scoped(tenant, facility),
    )
    assert res.status_code == 201, res.data
    assert res.data["grand_total"] == "88.00"
    assert [line["line_total"] for line in res.data["lines"]] == ["50.00", "30.00"]

    again = api_client.post(
        URL,
        {"patient": str(patient.id), "visit": str(visit.id), "items": ITEMS},
        format="json",
        **scoped(tenant, facility),
    )
    assert again.status_code == 409
    assert again.data["error"]["code"] == "conflict"


def test_api_mismatched_line_total_is_400(api_client, tenant, facility, patient):
    items = [dict(ITEMS[0], total="49.00")]
    res = api_client.post(URL, {"patient": str(patient.id), "items": items}, format="json", **scoped(tenant, facility))
    assert res.status_code == 400
    assert "items[0].total" in res.data["error"]["details"]


def test_api_payments_and_refunds(api_client, tenant, facility, invoice):
    bad = api_client.post(
        f"{URL}{invoice.id}/payments/", {"amount": "0", "method": "CASH"}, format="json", **scoped(tenant, facility)
    )
    assert bad.status_code == 400

    res = api_client.post(
        f"{URL}{invoice.id}/payments/", {"amount": "88.00", "method": "CASH"}, format="json", **scoped(tenant, facility)
    )
    assert res.status_code == 201, res.data

    paid_again = api_client.post(
        f"{URL}{invoice.id}/payments/", {"amount": "1.00", "method": "CASH"}, format="json", **scoped(tenant, facility)
    )
    assert paid_again.status_code == 422

    listing = api_client.get(f"{URL}{invoice.id}/payments/", **scoped(tenant, facility))
    assert listing.status_code == 200
    assert len(listing.data) == 1

    no_reason = api_client.post(f"{URL}{invoice.id}/refunds/", {"amount": "5.00"}, format="json", **scoped(tenant, facility))
    assert no_reason.status_code == 400

    refund = api_client.post(
        f"{URL}{invoice.id}/refunds/", {"amount": "8.00", "reason": "Overcharge"}, format="json", **scoped(tenant, facility)
    )
    assert refund.status_code == 201

    detail = api_client.get(f"{URL}{invoice.id}/", **scoped(tenant, facility))
    assert detail.data["status"] == "PARTIALLY_PAID"
    assert detail.data["balance_due"] == "8.00"
    assert len(detail.data["refunds"]) == 1


def test_api_apply_discount_requires_reason(api_client, tenant, facility, invoice):
    res = api_client.post(
        f"{URL}{invoice.id}/apply-discount/", {"discount_amount": "5.00"}, format="json", **scoped(tenant, facility)
    )
    assert res.status_code == 400
    assert "discount_reason" in res.data["error"]["details"]

    res = api_client.post(
        f"{URL}{invoice.id}/apply-discount/",
        {"discount_amount": "5.00", "discount_reason": "Goodwill"},
        format="json",
        **scoped(tenant, facility),
    )
    assert res.status_code == 200
    assert res.data["grand_total"] == "82.50"


def test_api_list_filters_and_stats(api_client, tenant, facility, user, patient, invoice):
    InvoiceService.create(**_ctx(tenant, facility, user), patient_id=patient.id, items=ITEMS)
    PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="88.00")

    res = api_client.get(URL, {"status": "PAID"}, **scoped(tenant, facility))
    assert res.data["meta"]["total"] == 1
    assert res.data["data"][0]["invoice_number"] == invoice.invoice_number

    by_code = api_client.get(URL, {"q": patient.patient_code}, **scoped(tenant, facility))
    assert by_code.data["meta"]["total"] == 2

    stats = api_client.get(f"{URL}stats/", **scoped(tenant, facility))
    assert stats.status_code == 200
    assert stats.data["total_invoices"] == 2
    assert stats.data["total_revenue"] == "88.00"
    assert stats.data["unpaid_count"] == 1
    assert stats.data["outstanding_balance"] == "80.00"
    assert stats.data["by_status"] == {"UNPAID": 1, "PARTIALLY_PAID": 0, "PAID": 1}


def test_api_stats_honour_date_range(api_client, tenant, facility, user, patient, invoice):
    older = InvoiceService.create(**_ctx(tenant, facility, user), patient_id=patient.id, items=ITEMS)
    PaymentService.record_payment(**_ctx(tenant, facility, user), invoice_id=invoice.id, amount="88.00")
    Invoice.objects.filter(id=older.id).update(created_at=timezone.now() - timedelta(days=40))
    today = timezone.localdate()

    recent = api_client.get(
        f"{URL}stats/", {"start_date": (today - timedelta(days=10)).isoformat()}, **scoped(tenant, facility)
    )
    assert recent.status_code == 200
    assert recent.data["total_invoices"] == 1
    assert recent.data["total_revenue"] == "88.00"
    assert recent.data["unpaid_count"] == 0

    window = {
        "start_date": (today - timedelta(days=60)).isoformat(),
        "end_date": (today - timedelta(days=30)).isoformat(),
    }
    past = api_client.get(f"{URL}stats/", window, **scoped(tenant, facility))
    assert past.data["total_invoices"] == 1
    assert past.data["total_revenue"] == "0.00"
    assert past.data["outstanding_balance"] == "80.00"
    assert past.data["by_status"]["UNPAID"] == 1


def test_api_stats_reject_bad_dates(api_client, tenant, facility):
    bad = api_client.get(f"{URL}stats/", {"start_date": "yesterday"}, **scoped(tenant, facility))
    assert bad.status_code == 400
    assert "start_date" in bad.data["error"]["details"]

    inverted = api_client.get(
        f"{URL}stats/", {"start_date": "2025-02-01", "end_date": "2025-01-01"}, **scoped(tenant, facility)
    )
    assert inverted.status_code == 400
    assert "end_date" in inverted.data["error"]["details"]
