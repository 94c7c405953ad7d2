# emr_core/common/api/filters.py
from __future__ import annotations

from typing import Any

import django_filters
from django import forms
from rest_framework.exceptions import ValidationError


class IntegerFilter(django_filters.NumberFilter):
    """NumberFilter that rejects fractional input instead of truncating it."""
    field_class = forms.IntegerField


class DateRangeFilter(django_filters.FilterSet):
    """
    start_date/end_date (inclusive, YYYY-MM-DD). Base for stats and report queries.
    """
    start_date = django_filters.DateFilter()
    end_date = django_filters.DateFilter()


def parse_query(filterset_class: type[django_filters.FilterSet], request) -> dict[str, Any]:
    """
    Coerce and validate list query params (UUIDs, dates, enum values) through a
    FilterSet and return the cleaned, non-empty values. Selectors own the query logic.
    """
    fs = filterset_class(data=request.query_params, queryset=filterset_class._meta.model.objects.none())
    if not fs.is_valid():
        raise ValidationError(fs.errors)

    params = {k: v for k, v in fs.form.cleaned_data.items() if v not in (None, "")}

    start, end = params.get("start_date"), params.get("end_date")
    if start and end and start > end:
        raise ValidationError({"end_date": ["end_date must be on or after start_date."]})
    return params
