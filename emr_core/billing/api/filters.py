# emr_core/billing/api/filters.py
import django_filters

from emr_core.billing.models import Invoice, InvoiceStatus
from emr_core.common.api.filters import DateRangeFilter


class InvoiceFilter(DateRangeFilter):
    q = django_filters.CharFilter()
    status = django_filters.ChoiceFilter(choices=InvoiceStatus.choices)
    patient = django_filters.UUIDFilter()
    visit = django_filters.UUIDFilter()

    class Meta:
        model = Invoice
        fields: list[str] = []


class InvoiceStatsFilter(DateRangeFilter):
    class Meta:
        model = Invoice
        fields: list[str] = []
