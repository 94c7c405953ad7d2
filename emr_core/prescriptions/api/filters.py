# emr_core/prescriptions/api/filters.py
import django_filters

from emr_core.prescriptions.models import Prescription, PrescriptionStatus


class PrescriptionFilter(django_filters.FilterSet):
    q = django_filters.CharFilter()
    status = django_filters.ChoiceFilter(choices=PrescriptionStatus.choices)
    patient = django_filters.UUIDFilter()
    visit = django_filters.UUIDFilter()

    class Meta:
        model = Prescription
        fields: list[str] = []


class ActivePrescriptionFilter(django_filters.FilterSet):
    patient = django_filters.UUIDFilter(required=True)

    class Meta:
        model = Prescription
        fields: list[str] = []
