# emr_core/billing/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone

from emr_core.common.models import ScopedModel
from emr_core.patients.models import Patient
from emr_core.visits.models import Visit

ZERO = Decimal("0.00")


class InvoiceStatus(models.TextChoices):
    UNPAID = "UNPAID", "Unpaid"
    PARTIALLY_PAID = "PARTIALLY_PAID", "Partially Paid"
    PAID = "PAID", "Paid"


class Invoice(ScopedModel):
    """
    Patient bill. Totals and status are derived in services from the lines,
    the discount/tax inputs and the payment/refund ledger; never set them directly.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="invoices")
    visit = models.ForeignKey(
        Visit,
        on_delete=models.PROTECT,
        related_name="invoices",
        null=True,
        blank=True,
    )

    invoice_number = models.CharField(max_length=32)
    status = models.CharField(max_length=32, choices=InvoiceStatus.choices, default=InvoiceStatus.UNPAID, db_index=True)

    # Discount inputs: a fixed amount or a percentage of the subtotal, never both.
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    discount_reason = models.CharField(max_length=255, blank=True, default="")
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    discount_total = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    balance_due = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    paid_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "billing_invoice"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "invoice_number"],
                name="uq_invoice_scope_number",
            ),
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "visit"],
                condition=Q(visit__isnull=False),
                name="uq_invoice_scope_visit",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "status", "created_at"], name="invoice_scope_status_idx"),
            models.Index(fields=["tenant_id", "facility_id", "patient", "created_at"], name="invoice_scope_patient_idx"),
        ]

    def __str__(self) -> str:
        return self.invoice_number


class InvoiceLine(ScopedModel):
    """
    Snapshot line item. line_total is always quantity * unit_price, computed server-side.
    """
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="lines")
    position = models.PositiveIntegerField(default=0)

    description = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("1.00"))
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    class Meta:
        db_table = "billing_invoice_line"
        ordering = ["position"]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "invoice"], name="invoice_line_scope_idx"),
        ]


class PaymentMethod(models.TextChoices):
    CASH = "CASH", "Cash"
    CARD = "CARD", "Card"
    MOBILE = "MOBILE", "Mobile Money"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
    CHECK = "CHECK", "Check"
    INSURANCE = "INSURANCE", "Insurance"


class Payment(ScopedModel):
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=32, choices=PaymentMethod.choices, default=PaymentMethod.CASH)

    receipt_no = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    received_at = models.DateTimeField(default=timezone.now)
    recorded_by_user_id = models.IntegerField(null=True, blank=True)

    class Meta:
        db_table = "billing_payment"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "invoice", "received_at"], name="payment_scope_invoice_idx"),
        ]


class Refund(ScopedModel):
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="refunds")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.CharField(max_length=500)

    reference = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    refunded_at = models.DateTimeField(default=timezone.now)
    recorded_by_user_id = models.IntegerField(null=True, blank=True)

    class Meta:
        db_table = "billing_refund"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "invoice", "refunded_at"], name="refund_scope_invoice_idx"),
        ]
