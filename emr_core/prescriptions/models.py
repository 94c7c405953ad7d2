# emr_core/prescriptions/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from emr_core.common.models import ScopedModel
from emr_core.patients.models import Patient
from emr_core.visits.models import Visit


class PrescriptionStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    DISCONTINUED = "DISCONTINUED", "Discontinued"
    COMPLETED = "COMPLETED", "Completed"


class Prescription(ScopedModel):
    """
    Medication order. Only ACTIVE prescriptions change; DISCONTINUED and COMPLETED are terminal.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="prescriptions")
    visit = models.ForeignKey(
        Visit,
        on_delete=models.PROTECT,
        related_name="prescriptions",
        null=True,
        blank=True,
    )
    prescriber = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="prescriptions_written",
    )

    medication_name = models.CharField(max_length=200)
    generic_name = models.CharField(max_length=200, blank=True, default="")
    brand_name = models.CharField(max_length=200, blank=True, default="")

    dosage = models.CharField(max_length=100)
    frequency = models.CharField(max_length=100)
    route = models.CharField(max_length=50)
    duration = models.CharField(max_length=100)
    quantity = models.CharField(max_length=50)
    refills = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(12)],
    )

    instructions = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=PrescriptionStatus.choices,
        default=PrescriptionStatus.ACTIVE,
        db_index=True,
    )
    discontinue_reason = models.CharField(max_length=500, blank=True, default="")
    discontinued_at = models.DateTimeField(null=True, blank=True)
    discontinued_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="prescriptions_discontinued",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "prescriptions_prescription"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "patient", "status"], name="rx_scope_patient_status_idx"),
            models.Index(fields=["tenant_id", "facility_id", "created_at"], name="rx_scope_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Prescription({self.medication_name}, {self.status})"
