# emr_core/reports/apps.py
from __future__ import annotations

from django.apps import AppConfig


class ReportsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "emr_core.reports"
    label = "reports"
