# emr_core/audit/api/filters.py
import django_filters

from emr_core.audit.models import AuditEvent
from emr_core.common.api.filters import DateRangeFilter, IntegerFilter


class AuditEventFilter(DateRangeFilter):
    entity_type = django_filters.CharFilter()
    entity_id = django_filters.UUIDFilter()
    event_code = django_filters.CharFilter()
    actor_user_id = IntegerFilter()

    class Meta:
        model = AuditEvent
        fields: list[str] = []
