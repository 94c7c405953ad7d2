# emr_core/audit/models.py
from django.conf import settings
from django.db import models

from emr_core.common.models import ScopedModel


class AuditEvent(ScopedModel):
    """
    Immutable audit record. One row per mutating domain operation.
    """
    event_code = models.CharField(max_length=128, db_index=True)  # e.g. "patient.deleted"
    entity_type = models.CharField(max_length=128, db_index=True)  # e.g. "Patient"
    entity_id = models.UUIDField(db_index=True)

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_events",
        null=True,
        blank=True,
    )

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)

    # redacted snapshot of the fields the operation changed
    changes = models.JSONField(default=dict, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["tenant_id", "facility_id", "occurred_at"], name="audit_scope_occurred_idx"),
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
            models.Index(fields=["tenant_id", "facility_id", "event_code"], name="audit_scope_code_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_code} {self.entity_type}:{self.entity_id}"
