# emr_core/patients/models.py
from django.db import models
from django.db.models import Q

from emr_core.common.models import ScopedModel


class Gender(models.TextChoices):
    MALE = "MALE", "Male"
    FEMALE = "FEMALE", "Female"
    OTHER = "OTHER", "Other"


class PatientStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"


class PatientQuerySet(models.QuerySet):
    def not_deleted(self):
        return self.filter(deleted_at__isnull=True)

    def in_scope(self, *, tenant_id, facility_id):
        return self.filter(tenant_id=tenant_id, facility_id=facility_id)


class Patient(ScopedModel):
    """
    Patient registry entry.

    - patient_code is generated on registration (P<year>-<seq>) and never changes.
    - phone/email are unique only among rows that are not soft-deleted.
    """
    patient_code = models.CharField(max_length=16, editable=False)

    first_name = models.CharField(max_length=50)
    middle_name = models.CharField(max_length=50, blank=True, default="")
    last_name = models.CharField(max_length=50)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=8, choices=Gender.choices)

    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True, default="")
    address = models.CharField(max_length=200, blank=True, default="")

    emergency_contact_name = models.CharField(max_length=100, blank=True, default="")
    emergency_contact_phone = models.CharField(max_length=20, blank=True, default="")
    emergency_contact_relation = models.CharField(max_length=50, blank=True, default="")

    blood_type = models.CharField(max_length=10, blank=True, default="")
    allergies = models.JSONField(default=list, blank=True)
    chronic_conditions = models.JSONField(default=list, blank=True)
    current_medications = models.JSONField(default=list, blank=True)
    family_history = models.TextField(blank=True, default="")

    insurance_provider = models.CharField(max_length=100, blank=True, default="")
    insurance_number = models.CharField(max_length=50, blank=True, default="")
    insurance_expiry = models.DateField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=PatientStatus.choices,
        default=PatientStatus.ACTIVE,
        db_index=True,
    )
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = PatientQuerySet.as_manager()

    class Meta:
        db_table = "patients_patient"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "patient_code"],
                name="uq_patient_scope_code",
            ),
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "phone"],
                condition=Q(deleted_at__isnull=True),
                name="uq_patient_scope_phone_live",
            ),
            models.UniqueConstraint(
                fields=["tenant_id", "facility_id", "email"],
                condition=Q(deleted_at__isnull=True) & ~Q(email=""),
                name="uq_patient_scope_email_live",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "created_at"], name="patient_scope_created_idx"),
            models.Index(fields=["tenant_id", "facility_id", "last_name"], name="patient_scope_last_name_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_code})"

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.middle_name, self.last_name) if p)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
