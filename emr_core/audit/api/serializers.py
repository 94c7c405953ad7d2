# emr_core/audit/api/serializers.py
from rest_framework import serializers

from emr_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    # API field name "timestamp" maps to occurred_at
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)
    actor_user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "entity_type",
            "entity_id",
            "event_code",
            "actor_user_id",
            "timestamp",
            "changes",
            "metadata",
            "ip_address",
            "user_agent",
        ]
        read_only_fields = fields
