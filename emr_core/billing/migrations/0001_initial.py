import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("patients", "0001_initial"),
        ("visits", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("facility_id", models.UUIDField(db_index=True)),
                ("invoice_number", models.CharField(max_length=32)),
                ("status", models.CharField(choices=[("UNPAID", "Unpaid"), ("PARTIALLY_PAID", "Partially Paid"), ("PAID", "Paid")], db_index=True, default="UNPAID", max_length=32)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("discount_percent", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("discount_reason", models.CharField(blank=True, default="", max_length=255)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("discount_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("grand_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("amount_paid", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("balance_due", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("patient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="patients.patient")),
                ("visit", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="visits.visit")),
            ],
            options={
                "db_table": "billing_invoice",
                "indexes": [
                    models.Index(fields=["tenant_id", "facility_id", "status", "created_at"], name="invoice_scope_status_idx"),
                    models.Index(fields=["tenant_id", "facility_id", "patient", "created_at"], name="invoice_scope_patient_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant_id", "facility_id", "invoice_number"), name="uq_invoice_scope_number"),
                    models.UniqueConstraint(
                        condition=models.Q(("visit__isnull", False)),
                        fields=("tenant_id", "facility_id", "visit"),
                        name="uq_invoice_scope_visit",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("facility_id", models.UUIDField(db_index=True)),
                ("position", models.PositiveIntegerField(default=0)),
                ("description", models.CharField(max_length=255)),
                ("quantity", models.DecimalField(decimal_places=2, default=Decimal("1.00"), max_digits=10)),
                ("unit_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("line_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="billing.invoice")),
            ],
            options={
                "db_table": "billing_invoice_line",
                "ordering": ["position"],
                "indexes": [
                    models.Index(fields=["tenant_id", "facility_id", "invoice"], name="invoice_line_scope_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("facility_id", models.UUIDField(db_index=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("method", models.CharField(choices=[("CASH", "Cash"), ("CARD", "Card"), ("MOBILE", "Mobile Money"), ("BANK_TRANSFER", "Bank Transfer"), ("CHECK", "Check"), ("INSURANCE", "Insurance")], default="CASH", max_length=32)),
                ("receipt_no", models.CharField(blank=True, default="", max_length=64)),
                ("notes", models.TextField(blank=True, default="")),
                ("received_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("recorded_by_user_id", models.IntegerField(blank=True, null=True)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="billing.invoice")),
            ],
            options={
                "db_table": "billing_payment",
                "indexes": [
                    models.Index(fields=["tenant_id", "facility_id", "invoice", "received_at"], name="payment_scope_invoice_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("facility_id", models.UUIDField(db_index=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("reason", models.CharField(max_length=500)),
                ("reference", models.CharField(blank=True, default="", max_length=64)),
                ("notes", models.TextField(blank=True, default="")),
                ("refunded_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("recorded_by_user_id", models.IntegerField(blank=True, null=True)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="refunds", to="billing.invoice")),
            ],
            options={
                "db_table": "billing_refund",
                "indexes": [
                    models.Index(fields=["tenant_id", "facility_id", "invoice", "refunded_at"], name="refund_scope_invoice_idx"),
                ],
            },
        ),
    ]
