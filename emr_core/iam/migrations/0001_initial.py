import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("tenants", "0001_initial"),
        ("facilities", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="FacilityMembership",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("role", models.CharField(choices=[("ADMIN", "Administrator"), ("DOCTOR", "Doctor"), ("NURSE", "Nurse"), ("RECEPTIONIST", "Receptionist")], max_length=32)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("facility", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="memberships", to="facilities.facility")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="facility_memberships", to="tenants.tenant")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="facility_memberships", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "iam_facility_membership",
                "indexes": [
                    models.Index(fields=["tenant", "facility"], name="membership_tenant_fac_idx"),
                    models.Index(fields=["tenant", "is_active"], name="membership_tenant_active_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("facility", "user"), name="uq_facility_user_membership"),
                ],
            },
        ),
    ]
