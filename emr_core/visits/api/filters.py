# emr_core/visits/api/filters.py
import django_filters

from emr_core.common.api.filters import DateRangeFilter, IntegerFilter
from emr_core.visits.models import Visit, VisitStatus


class VisitFilter(DateRangeFilter):
    patient = django_filters.UUIDFilter()
    provider = IntegerFilter()
    status = django_filters.ChoiceFilter(choices=VisitStatus.choices)
    visit_type = django_filters.CharFilter()

    class Meta:
        model = Visit
        fields: list[str] = []


class VisitStatsFilter(DateRangeFilter):
    class Meta:
        model = Visit
        fields: list[str] = []
