# emr_core/billing/calculations.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Mapping

from rest_framework.exceptions import ValidationError

from emr_core.billing.models import InvoiceStatus

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value, field: str = "amount") -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError({field: ["A valid number is required."]})


def money(value, field: str = "amount") -> Decimal:
    """Coerce to Decimal and round to cents, half-up."""
    return to_decimal(value, field).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity, unit_price) -> Decimal:
    return money(to_decimal(quantity, "quantity") * to_decimal(unit_price, "unit_price"))


@dataclass(frozen=True)
class PricedLine:
    position: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount_total: Decimal
    tax_amount: Decimal
    grand_total: Decimal


def price_lines(items: Iterable[Mapping]) -> list[PricedLine]:
    """
    Validate raw line items and compute their totals.

    A caller-supplied "total" is only checked against quantity * unit_price;
    the stored value is always the computed one.
    """
    items = list(items or [])
    if not items:
        raise ValidationError({"items": ["At least one line item is required."]})

    priced: list[PricedLine] = []
    errors: dict[str, list[str]] = {}

    for i, item in enumerate(items):
        description = str(item.get("description") or "").strip()
        quantity = to_decimal(item.get("quantity", 0), f"items[{i}].quantity")
        unit_price = money(item.get("unit_price", 0), f"items[{i}].unit_price")

        if not description:
            errors[f"items[{i}].description"] = ["This field is required."]
        if quantity < 0:
            errors[f"items[{i}].quantity"] = ["Quantity must be >= 0."]
        if unit_price < 0:
            errors[f"items[{i}].unit_price"] = ["Unit price must be >= 0."]

        computed = line_total(quantity, unit_price)
        supplied = item.get("total")
        if supplied is not None and money(supplied, f"items[{i}].total") != computed:
            errors[f"items[{i}].total"] = [f"Line total must equal quantity x unit price ({computed})."]

        priced.append(PricedLine(i, description, quantity, unit_price, computed))

    if errors:
        raise ValidationError(errors)
    return priced


def validate_adjustments(*, discount_amount, discount_percent, tax_rate) -> None:
    errors: dict[str, list[str]] = {}
    if money(discount_amount, "discount_amount") < 0:
        errors["discount_amount"] = ["Discount must be >= 0."]
    if not (ZERO <= to_decimal(discount_percent, "discount_percent") <= HUNDRED):
        errors["discount_percent"] = ["Discount percentage must be between 0 and 100."]
    if not (ZERO <= to_decimal(tax_rate, "tax_rate") <= HUNDRED):
        errors["tax_rate"] = ["Tax rate must be between 0 and 100."]
    if money(discount_amount, "discount_amount") > 0 and to_decimal(discount_percent, "discount_percent") > 0:
        errors["discount"] = ["Provide either a fixed discount or a percentage, not both."]
    if errors:
        raise ValidationError(errors)


def compute_totals(
    line_totals: Iterable[Decimal],
    *,
    discount_amount=ZERO,
    discount_percent=ZERO,
    tax_rate=ZERO,
) -> InvoiceTotals:
    """
    grand_total = (subtotal - discount) * (1 + tax_rate / 100)

    The discount is clamped to [0, subtotal]; tax applies to the discounted amount.
    """
    validate_adjustments(discount_amount=discount_amount, discount_percent=discount_percent, tax_rate=tax_rate)

    subtotal = money(sum(line_totals, ZERO))
    percent = to_decimal(discount_percent, "discount_percent")

    if percent > 0:
        discount = money(subtotal * percent / HUNDRED)
    else:
        discount = money(discount_amount, "discount_amount")
    discount = min(max(discount, ZERO), subtotal)

    taxable = subtotal - discount
    tax = money(taxable * to_decimal(tax_rate, "tax_rate") / HUNDRED)

    return InvoiceTotals(
        subtotal=subtotal,
        discount_total=discount,
        tax_amount=tax,
        grand_total=money(taxable + tax),
    )


def derive_status(*, grand_total: Decimal, paid_total: Decimal) -> tuple[str, Decimal]:
    """
    Status and balance from the net amount paid (payments minus refunds).
    """
    balance = money(grand_total - paid_total)
    if paid_total > 0 and balance <= 0:
        return InvoiceStatus.PAID, balance
    if paid_total > 0:
        return InvoiceStatus.PARTIALLY_PAID, balance
    return InvoiceStatus.UNPAID, balance
