import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("patients", "0001_initial"),
        ("visits", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Prescription",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("facility_id", models.UUIDField(db_index=True)),
                ("medication_name", models.CharField(max_length=200)),
                ("generic_name", models.CharField(blank=True, default="", max_length=200)),
                ("brand_name", models.CharField(blank=True, default="", max_length=200)),
                ("dosage", models.CharField(max_length=100)),
                ("frequency", models.CharField(max_length=100)),
                ("route", models.CharField(max_length=50)),
                ("duration", models.CharField(max_length=100)),
                ("quantity", models.CharField(max_length=50)),
                ("refills", models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(12)])),
                ("instructions", models.TextField(blank=True, default="")),
                ("notes", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("DISCONTINUED", "Discontinued"), ("COMPLETED", "Completed")], db_index=True, default="ACTIVE", max_length=16)),
                ("discontinue_reason", models.CharField(blank=True, default="", max_length=500)),
                ("discontinued_at", models.DateTimeField(blank=True, null=True)),
                ("discontinued_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="prescriptions_discontinued", to=settings.AUTH_USER_MODEL)),
                ("patient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="prescriptions", to="patients.patient")),
                ("prescriber", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="prescriptions_written", to=settings.AUTH_USER_MODEL)),
                ("visit", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="prescriptions", to="visits.visit")),
            ],
            options={
                "db_table": "prescriptions_prescription",
                "indexes": [
                    models.Index(fields=["tenant_id", "facility_id", "patient", "status"], name="rx_scope_patient_status_idx"),
                    models.Index(fields=["tenant_id", "facility_id", "created_at"], name="rx_scope_created_idx"),
                ],
            },
        ),
    ]
