import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Patient",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("facility_id", models.UUIDField(db_index=True)),
                ("patient_code", models.CharField(editable=False, max_length=16)),
                ("first_name", models.CharField(max_length=50)),
                ("middle_name", models.CharField(blank=True, default="", max_length=50)),
                ("last_name", models.CharField(max_length=50)),
                ("date_of_birth", models.DateField()),
                ("gender", models.CharField(choices=[("MALE", "Male"), ("FEMALE", "Female"), ("OTHER", "Other")], max_length=8)),
                ("phone", models.CharField(max_length=20)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.CharField(blank=True, default="", max_length=200)),
                ("emergency_contact_name", models.CharField(blank=True, default="", max_length=100)),
                ("emergency_contact_phone", models.CharField(blank=True, default="", max_length=20)),
                ("emergency_contact_relation", models.CharField(blank=True, default="", max_length=50)),
                ("blood_type", models.CharField(blank=True, default="", max_length=10)),
                ("allergies", models.JSONField(blank=True, default=list)),
                ("chronic_conditions", models.JSONField(blank=True, default=list)),
                ("current_medications", models.JSONField(blank=True, default=list)),
                ("family_history", models.TextField(blank=True, default="")),
                ("insurance_provider", models.CharField(blank=True, default="", max_length=100)),
                ("insurance_number", models.CharField(blank=True, default="", max_length=50)),
                ("insurance_expiry", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive")], db_index=True, default="ACTIVE", max_length=16)),
                ("deleted_at", models.DateTimeField(blank=True, db_index=True, null=True)),
            ],
            options={
                "db_table": "patients_patient",
                "indexes": [
                    models.Index(fields=["tenant_id", "facility_id", "created_at"], name="patient_scope_created_idx"),
                    models.Index(fields=["tenant_id", "facility_id", "last_name"], name="patient_scope_last_name_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant_id", "facility_id", "patient_code"), name="uq_patient_scope_code"),
                    models.UniqueConstraint(
                        condition=models.Q(("deleted_at__isnull", True)),
                        fields=("tenant_id", "facility_id", "phone"),
                        name="uq_patient_scope_phone_live",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(models.Q(("deleted_at__isnull", True)), models.Q(("email", ""), _negated=True)),
                        fields=("tenant_id", "facility_id", "email"),
                        name="uq_patient_scope_email_live",
                    ),
                ],
            },
        ),
    ]
