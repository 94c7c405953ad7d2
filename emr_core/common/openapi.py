# emr_core/common/openapi.py
from __future__ import annotations

from drf_spectacular.openapi import AutoSchema
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter

from emr_core.common.scope import HDR_FACILITY, HDR_TENANT

UNSCOPED_MODULE_PREFIX = "emr_core.iam.api."


class EMRAutoSchema(AutoSchema):
    """
    Adds the scope headers (X-Tenant-Id, X-Facility-Id) to every domain endpoint.
    Auth endpoints and /me/ live under emr_core.iam.api and are documented without them.
    """

    SCOPE_HEADERS = [
        OpenApiParameter(
            name=HDR_TENANT,
            type=OpenApiTypes.UUID,
            location=OpenApiParameter.HEADER,
            required=True,
            description="Tenant scope UUID.",
        ),
        OpenApiParameter(
            name=HDR_FACILITY,
            type=OpenApiTypes.UUID,
            location=OpenApiParameter.HEADER,
            required=True,
            description="Facility scope UUID. The caller needs an active membership here.",
        ),
    ]

    def _is_unscoped_endpoint(self) -> bool:
        view = getattr(self, "view", None)
        if view is None:
            return False
        module = view.__class__.__module__ or ""
        return module.startswith(UNSCOPED_MODULE_PREFIX)

    def get_override_parameters(self):
        params = list(super().get_override_parameters() or [])

        if not self._is_unscoped_endpoint():
            existing = {p.name.lower() for p in params}
            params.extend(p for p in self.SCOPE_HEADERS if p.name.lower() not in existing)

        return params
