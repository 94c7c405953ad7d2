# emr_core/common/api/params.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter

# Detail routes only match canonical UUIDs; anything else is a routing 404.
UUID_LOOKUP_REGEX = "[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

DATE_RANGE_PARAMS = [
    OpenApiParameter(name="start_date", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False,
                     description="Inclusive lower bound (YYYY-MM-DD)."),
    OpenApiParameter(name="end_date", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False,
                     description="Inclusive upper bound (YYYY-MM-DD)."),
]
