# emr_core/billing/services.py
from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Iterable, Mapping
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from emr_core.audit.services import AuditService
from emr_core.billing.calculations import ZERO, compute_totals, derive_status, money, price_lines, to_decimal
from emr_core.billing.models import Invoice, InvoiceLine, InvoiceStatus, Payment, PaymentMethod, Refund
from emr_core.common.api.exceptions import BusinessRuleError, ConflictError
from emr_core.patients.selectors import get_patient
from emr_core.visits.models import Visit

logger = logging.getLogger(__name__)

INVOICE_NOT_FOUND_MSG = "Invoice not found."
PAID_INVOICE_MSG = "Invoice is already fully paid."


def _has_discount(discount_amount, discount_percent) -> bool:
    return money(discount_amount, "discount_amount") > 0 or to_decimal(discount_percent, "discount_percent") > 0


def _assert_discount_reason(discount_amount, discount_percent, reason: str) -> None:
    if _has_discount(discount_amount, discount_percent) and not (reason or "").strip():
        raise ValidationError({"discount_reason": ["A reason is required when a discount is applied."]})


def _paid_total(invoice: Invoice) -> Decimal:
    paid = invoice.payments.aggregate(s=Sum("amount"))["s"] or ZERO
    refunded = invoice.refunds.aggregate(s=Sum("amount"))["s"] or ZERO
    return money(paid - refunded)


class InvoiceService:
    @staticmethod
    def _get_locked(*, tenant_id: UUID, facility_id: UUID, invoice_id: UUID) -> Invoice:
        invoice = (
            Invoice.objects.select_for_update()
            .filter(id=invoice_id, tenant_id=tenant_id, facility_id=facility_id)
            .first()
        )
        if invoice is None:
            raise NotFound(INVOICE_NOT_FOUND_MSG)
        return invoice

    @staticmethod
    def _next_invoice_number_locked(*, tenant_id: UUID, facility_id: UUID, year: int | None = None) -> str:
        """
        INV-<year>-<5 digit sequence>, restarting every year within the scope.
        """
        year = year or timezone.now().year
        prefix = f"INV-{year}-"

        latest = (
            Invoice.objects.select_for_update()
            .filter(tenant_id=tenant_id, facility_id=facility_id, invoice_number__startswith=prefix)
            .order_by("-invoice_number")
            .first()
        )
        if latest is None:
            return f"{prefix}00001"

        m = re.match(rf"{re.escape(prefix)}(\d+)$", latest.invoice_number.strip())
        n = int(m.group(1)) + 1 if m else Invoice.objects.filter(
            tenant_id=tenant_id, facility_id=facility_id, invoice_number__startswith=prefix
        ).count() + 1
        return f"{prefix}{n:05d}"

    @staticmethod
    def _replace_lines(invoice: Invoice, items: Iterable[Mapping]) -> list[Decimal]:
        priced = price_lines(items)
        invoice.lines.all().delete()
        InvoiceLine.objects.bulk_create(
            [
                InvoiceLine(
                    tenant_id=invoice.tenant_id,
                    facility_id=invoice.facility_id,
                    invoice=invoice,
                    position=p.position,
                    description=p.description,
                    quantity=p.quantity,
                    unit_price=p.unit_price,
                    line_total=p.line_total,
                )
                for p in priced
            ]
        )
        return [p.line_total for p in priced]

    @staticmethod
    def _recalc(invoice: Invoice, line_totals: Iterable[Decimal] | None = None) -> None:
        """
        Re-derive totals, paid amount, balance and status. Caller saves.
        """
        if line_totals is None:
            line_totals = list(invoice.lines.values_list("line_total", flat=True))

        totals = compute_totals(
            line_totals,
            discount_amount=invoice.discount_amount,
            discount_percent=invoice.discount_percent,
            tax_rate=invoice.tax_rate,
        )
        invoice.subtotal = totals.subtotal
        invoice.discount_total = totals.discount_total
        invoice.tax_amount = totals.tax_amount
        invoice.grand_total = totals.grand_total

        paid_total = ZERO if invoice._state.adding else _paid_total(invoice)
        status, balance = derive_status(grand_total=invoice.grand_total, paid_total=paid_total)

        invoice.amount_paid = paid_total
        invoice.balance_due = balance
        if status == InvoiceStatus.PAID and invoice.status != InvoiceStatus.PAID:
            invoice.paid_at = timezone.now()
        elif status != InvoiceStatus.PAID:
            invoice.paid_at = None
        invoice.status = status

    @staticmethod
    @transaction.atomic
    def create(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        patient_id: UUID,
        items: list[dict],
        visit_id: UUID | None = None,
        discount_amount=ZERO,
        discount_percent=ZERO,
        discount_reason: str = "",
        tax_rate=ZERO,
        notes: str = "",
        request=None,
    ) -> Invoice:
        patient = get_patient(tenant_id=tenant_id, facility_id=facility_id, patient_id=patient_id)

        visit = None
        if visit_id is not None:
            visit = Visit.objects.filter(tenant_id=tenant_id, facility_id=facility_id, id=visit_id).first()
            if visit is None:
                raise NotFound("Visit not found.")
            if visit.patient_id != patient.id:
                raise ValidationError({"visit": ["Visit does not belong to this patient."]})
            if Invoice.objects.filter(tenant_id=tenant_id, facility_id=facility_id, visit=visit).exists():
                raise ConflictError("Invoice already exists for this visit.")

        _assert_discount_reason(discount_amount, discount_percent, discount_reason)
        # Validate everything before any row is written
        priced = price_lines(items)
        compute_totals(
            [p.line_total for p in priced],
            discount_amount=discount_amount,
            discount_percent=discount_percent,
            tax_rate=tax_rate,
        )

        invoice = Invoice(
            tenant_id=tenant_id,
            facility_id=facility_id,
            patient=patient,
            visit=visit,
            invoice_number=InvoiceService._next_invoice_number_locked(tenant_id=tenant_id, facility_id=facility_id),
            discount_amount=money(discount_amount, "discount_amount"),
            discount_percent=to_decimal(discount_percent, "discount_percent"),
            discount_reason=(discount_reason or "").strip(),
            tax_rate=to_decimal(tax_rate, "tax_rate"),
            notes=notes or "",
        )
        InvoiceService._recalc(invoice, [p.line_total for p in priced])

        try:
            with transaction.atomic():
                invoice.save()
        except IntegrityError:
            raise ConflictError("Invoice number or visit already invoiced; retry.")

        InvoiceService._replace_lines(invoice, items)

        AuditService.log(
            event_code="invoice.created",
            entity_type="Invoice",
            entity_id=invoice.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={
                "patient_id": patient.id,
                "visit_id": visit.id if visit else None,
                "items": [dict(i) for i in items],
                "discount_amount": invoice.discount_amount,
                "discount_percent": invoice.discount_percent,
                "tax_rate": invoice.tax_rate,
                "grand_total": invoice.grand_total,
            },
            metadata={"invoice_number": invoice.invoice_number},
            request=request,
        )
        logger.info("invoice created id=%s number=%s", invoice.id, invoice.invoice_number)
        return invoice

    @staticmethod
    @transaction.atomic
    def update(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        invoice_id: UUID,
        data: dict,
        request=None,
    ) -> Invoice:
        """
        Amend items, discount, tax rate or notes. Supplying either discount field
        replaces both (the omitted one becomes zero).
        """
        invoice = InvoiceService._get_locked(tenant_id=tenant_id, facility_id=facility_id, invoice_id=invoice_id)
        if invoice.status == InvoiceStatus.PAID:
            raise BusinessRuleError("Cannot update a paid invoice.")

        data = data or {}
        if "discount_amount" in data or "discount_percent" in data:
            invoice.discount_amount = money(data.get("discount_amount"), "discount_amount")
            invoice.discount_percent = to_decimal(data.get("discount_percent"), "discount_percent")
        if "discount_reason" in data:
            invoice.discount_reason = (data["discount_reason"] or "").strip()
        if "tax_rate" in data:
            invoice.tax_rate = to_decimal(data["tax_rate"], "tax_rate")
        if "notes" in data:
            invoice.notes = data["notes"] or ""

        _assert_discount_reason(invoice.discount_amount, invoice.discount_percent, invoice.discount_reason)

        line_totals = None
        if "items" in data:
            line_totals = InvoiceService._replace_lines(invoice, data["items"])

        InvoiceService._recalc(invoice, line_totals)
        invoice.save()

        changes = {k: v for k, v in data.items() if k != "items"}
        if "items" in data:
            changes["items"] = [dict(i) for i in data["items"]]
        changes["grand_total"] = invoice.grand_total

        AuditService.log(
            event_code="invoice.updated",
            entity_type="Invoice",
            entity_id=invoice.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes=changes,
            request=request,
        )
        return invoice

    @staticmethod
    @transaction.atomic
    def apply_discount(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        invoice_id: UUID,
        reason: str,
        discount_amount=ZERO,
        discount_percent=ZERO,
        request=None,
    ) -> Invoice:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError({"discount_reason": ["A reason is required when a discount is applied."]})

        invoice = InvoiceService._get_locked(tenant_id=tenant_id, facility_id=facility_id, invoice_id=invoice_id)
        if invoice.status == InvoiceStatus.PAID:
            raise BusinessRuleError("Cannot apply discount to a paid invoice.")

        invoice.discount_amount = money(discount_amount, "discount_amount")
        invoice.discount_percent = to_decimal(discount_percent, "discount_percent")
        invoice.discount_reason = reason

        InvoiceService._recalc(invoice)
        invoice.save()

        AuditService.log(
            event_code="invoice.discount_applied",
            entity_type="Invoice",
            entity_id=invoice.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={
                "discount_amount": invoice.discount_amount,
                "discount_percent": invoice.discount_percent,
                "discount_reason": reason,
                "discount_total": invoice.discount_total,
                "grand_total": invoice.grand_total,
            },
            request=request,
        )
        logger.info("invoice discount applied id=%s", invoice.id)
        return invoice


class PaymentService:
    @staticmethod
    @transaction.atomic
    def record_payment(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        invoice_id: UUID,
        amount,
        method: str = PaymentMethod.CASH,
        receipt_no: str = "",
        notes: str = "",
        request=None,
    ) -> Payment:
        amount = money(amount)
        if amount <= 0:
            raise ValidationError({"amount": ["Payment amount must be > 0."]})
        if method not in PaymentMethod.values:
            raise ValidationError({"method": [f"Must be one of: {', '.join(PaymentMethod.values)}."]})

        invoice = InvoiceService._get_locked(tenant_id=tenant_id, facility_id=facility_id, invoice_id=invoice_id)
        if invoice.status == InvoiceStatus.PAID:
            logger.warning("payment rejected invoice_id=%s reason=paid", invoice.id)
            raise BusinessRuleError(PAID_INVOICE_MSG)
        if amount > invoice.balance_due:
            raise ValidationError({"amount": [f"Payment amount exceeds balance due ({invoice.balance_due})."]})

        now = timezone.now()
        pay = Payment.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            invoice=invoice,
            amount=amount,
            method=method,
            receipt_no=(receipt_no or "").strip() or f"RCP-{now:%Y%m%d%H%M%S%f}",
            notes=notes or "",
            received_at=now,
            recorded_by_user_id=actor_user_id,
        )

        InvoiceService._recalc(invoice)
        invoice.save()

        AuditService.log(
            event_code="invoice.payment_recorded",
            entity_type="Invoice",
            entity_id=invoice.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"amount": amount, "method": method, "receipt_no": pay.receipt_no},
            metadata={"payment_id": pay.id, "status": invoice.status, "balance_due": invoice.balance_due},
            request=request,
        )
        logger.info("payment recorded invoice_id=%s payment_id=%s status=%s", invoice.id, pay.id, invoice.status)
        return pay

    @staticmethod
    @transaction.atomic
    def record_refund(
        *,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        invoice_id: UUID,
        amount,
        reason: str,
        notes: str = "",
        request=None,
    ) -> Refund:
        amount = money(amount)
        reason = (reason or "").strip()
        errors = {}
        if amount <= 0:
            errors["amount"] = ["Refund amount must be > 0."]
        if not reason:
            errors["reason"] = ["A refund reason is required."]
        if errors:
            raise ValidationError(errors)

        invoice = InvoiceService._get_locked(tenant_id=tenant_id, facility_id=facility_id, invoice_id=invoice_id)
        paid_total = _paid_total(invoice)
        if amount > paid_total:
            raise ValidationError({"amount": [f"Refund amount exceeds the net amount paid ({paid_total})."]})

        now = timezone.now()
        refund = Refund.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            invoice=invoice,
            amount=amount,
            reason=reason,
            reference=f"REF-{now:%Y%m%d%H%M%S%f}",
            notes=notes or "",
            refunded_at=now,
            recorded_by_user_id=actor_user_id,
        )

        InvoiceService._recalc(invoice)
        invoice.save()

        AuditService.log(
            event_code="invoice.refund_recorded",
            entity_type="Invoice",
            entity_id=invoice.id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes={"amount": amount, "reason": reason},
            metadata={"refund_id": refund.id, "status": invoice.status, "balance_due": invoice.balance_due},
            request=request,
        )
        logger.info("refund recorded invoice_id=%s refund_id=%s status=%s", invoice.id, refund.id, invoice.status)
        return refund
