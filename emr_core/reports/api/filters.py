# emr_core/reports/api/filters.py
import django_filters

from emr_core.billing.models import Invoice
from emr_core.common.api.filters import DateRangeFilter, IntegerFilter
from emr_core.reports.selectors import PERIODS
from emr_core.visits.models import Visit


class BillingReportFilter(DateRangeFilter):
    class Meta:
        model = Invoice
        fields: list[str] = []


class RevenueReportFilter(BillingReportFilter):
    period = django_filters.ChoiceFilter(choices=[(p, p) for p in PERIODS])


class AgingReportFilter(django_filters.FilterSet):
    as_of = django_filters.DateFilter()

    class Meta:
        model = Invoice
        fields: list[str] = []


class ClinicalReportFilter(DateRangeFilter):
    limit = IntegerFilter(min_value=1, max_value=50)

    class Meta:
        model = Visit
        fields: list[str] = []
