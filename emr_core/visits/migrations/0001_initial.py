import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("patients", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Visit",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("facility_id", models.UUIDField(db_index=True)),
                ("visit_type", models.CharField(max_length=50)),
                ("visit_date", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("status", models.CharField(choices=[("IN_PROGRESS", "In Progress"), ("COMPLETED", "Completed"), ("CANCELLED", "Cancelled")], db_index=True, default="IN_PROGRESS", max_length=16)),
                ("chief_complaint", models.TextField(blank=True, default="")),
                ("bp_systolic", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("bp_diastolic", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("heart_rate", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("respiratory_rate", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("temperature", models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True)),
                ("spo2", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("weight", models.DecimalField(blank=True, decimal_places=1, max_digits=5, null=True)),
                ("height", models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True)),
                ("bmi", models.DecimalField(blank=True, decimal_places=1, max_digits=5, null=True)),
                ("pain_scale", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("subjective", models.TextField(blank=True, default="")),
                ("objective", models.TextField(blank=True, default="")),
                ("assessment", models.TextField(blank=True, default="")),
                ("plan", models.TextField(blank=True, default="")),
                ("primary_diagnosis", models.CharField(blank=True, default="", max_length=255)),
                ("secondary_diagnoses", models.JSONField(blank=True, default=list)),
                ("icd_codes", models.JSONField(blank=True, default=list)),
                ("follow_up_date", models.DateField(blank=True, null=True)),
                ("follow_up_reason", models.CharField(blank=True, default="", max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("is_locked", models.BooleanField(default=False)),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
                ("locked_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="locked_visits", to=settings.AUTH_USER_MODEL)),
                ("patient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="visits", to="patients.patient")),
                ("provider", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="provided_visits", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "visits_visit",
                "indexes": [
                    models.Index(fields=["tenant_id", "facility_id", "visit_date"], name="visit_scope_date_idx"),
                    models.Index(fields=["tenant_id", "facility_id", "patient"], name="visit_scope_patient_idx"),
                ],
            },
        ),
    ]
