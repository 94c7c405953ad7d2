# emr_core/patients/api/filters.py
import django_filters

from emr_core.patients.models import Patient, PatientStatus


class PatientFilter(django_filters.FilterSet):
    q = django_filters.CharFilter()
    search = django_filters.CharFilter()
    status = django_filters.ChoiceFilter(choices=PatientStatus.choices)

    class Meta:
        model = Patient
        fields: list[str] = []
