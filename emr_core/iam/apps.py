from django.apps import AppConfig


class IamConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "emr_core.iam"
    label = "iam"

    def ready(self) -> None:
        # registers the drf-spectacular auth extension
        from emr_core.iam import openapi  # noqa: F401
