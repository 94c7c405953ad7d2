# emr_core/billing/admin.py
from __future__ import annotations

from django.contrib import admin

from emr_core.billing.models import Invoice, InvoiceLine, Payment, Refund


class InvoiceLineInline(admin.TabularInline):
    model = InvoiceLine
    extra = 0
    readonly_fields = ("position", "description", "quantity", "unit_price", "line_total")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "patient", "status", "grand_total", "amount_paid", "balance_due", "created_at")
    list_filter = ("status", "tenant_id", "facility_id")
    search_fields = ("invoice_number", "patient__patient_code", "patient__last_name")
    readonly_fields = (
        "invoice_number",
        "subtotal",
        "discount_total",
        "tax_amount",
        "grand_total",
        "amount_paid",
        "balance_due",
        "paid_at",
    )
    inlines = [InvoiceLineInline]
    ordering = ("-created_at",)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "invoice", "amount", "method", "receipt_no", "received_at")
    list_filter = ("method",)
    search_fields = ("receipt_no", "invoice__invoice_number")


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ("id", "invoice", "amount", "reference", "refunded_at")
    search_fields = ("reference", "invoice__invoice_number")
