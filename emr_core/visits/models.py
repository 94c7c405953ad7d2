# emr_core/visits/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone

from emr_core.common.models import ScopedModel
from emr_core.patients.models import Patient


class VisitType(models.TextChoices):
    """
    Suggested visit types. Visit.visit_type is a free string and also accepts
    facility-specific values outside this list.
    """
    ROUTINE = "ROUTINE", "Routine"
    FOLLOW_UP = "FOLLOW_UP", "Follow-up"
    EMERGENCY = "EMERGENCY", "Emergency"
    CONSULTATION = "CONSULTATION", "Consultation"
    PROCEDURE = "PROCEDURE", "Procedure"
    TELEMEDICINE = "TELEMEDICINE", "Telemedicine"


class VisitStatus(models.TextChoices):
    IN_PROGRESS = "IN_PROGRESS", "In Progress"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


class Visit(ScopedModel):
    """
    One clinical encounter: intake vitals, SOAP documentation and diagnosis.

    Locking is one-way. A locked visit is a signed record and no longer accepts writes.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="visits")
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="provided_visits",
    )

    visit_type = models.CharField(max_length=50)
    visit_date = models.DateTimeField(default=timezone.now, db_index=True)
    status = models.CharField(
        max_length=16,
        choices=VisitStatus.choices,
        default=VisitStatus.IN_PROGRESS,
        db_index=True,
    )

    chief_complaint = models.TextField(blank=True, default="")

    # Vitals
    bp_systolic = models.PositiveSmallIntegerField(null=True, blank=True)
    bp_diastolic = models.PositiveSmallIntegerField(null=True, blank=True)
    heart_rate = models.PositiveSmallIntegerField(null=True, blank=True)
    respiratory_rate = models.PositiveSmallIntegerField(null=True, blank=True)
    temperature = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    spo2 = models.PositiveSmallIntegerField(null=True, blank=True)
    weight = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True)
    height = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    bmi = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True)
    pain_scale = models.PositiveSmallIntegerField(null=True, blank=True)

    # SOAP
    subjective = models.TextField(blank=True, default="")
    objective = models.TextField(blank=True, default="")
    assessment = models.TextField(blank=True, default="")
    plan = models.TextField(blank=True, default="")

    primary_diagnosis = models.CharField(max_length=255, blank=True, default="")
    secondary_diagnoses = models.JSONField(default=list, blank=True)
    icd_codes = models.JSONField(default=list, blank=True)

    follow_up_date = models.DateField(null=True, blank=True)
    follow_up_reason = models.CharField(max_length=255, blank=True, default="")

    notes = models.TextField(blank=True, default="")

    is_locked = models.BooleanField(default=False)
    locked_at = models.DateTimeField(null=True, blank=True)
    locked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="locked_visits",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "visits_visit"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "visit_date"], name="visit_scope_date_idx"),
            models.Index(fields=["tenant_id", "facility_id", "patient"], name="visit_scope_patient_idx"),
        ]

    def __str__(self) -> str:
        return f"Visit({self.patient_id}, {self.visit_type}, {self.status})"
