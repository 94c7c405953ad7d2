# emr_core/common/api/pagination.py
from __future__ import annotations

import math
from typing import Any

from django.conf import settings
from rest_framework import serializers
from rest_framework.pagination import BasePagination
from rest_framework.response import Response


def _default_limit() -> int:
    return int(getattr(settings, "EMR_PAGE_SIZE_DEFAULT", 20))


def _max_limit() -> int:
    return int(getattr(settings, "EMR_PAGE_SIZE_MAX", 100))


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1)

    def validate_limit(self, value: int) -> int:
        if value > _max_limit():
            raise serializers.ValidationError(f"Ensure this value is less than or equal to {_max_limit()}.")
        return value


def page_meta(*, total: int, page: int, limit: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


class PageLimitPagination(BasePagination):
    """
    page/limit pagination rendering the shared list envelope:
      { data: [...], meta: { page, limit, total, totalPages } }

    Pages past the end yield an empty data list.
    """

    def paginate_queryset(self, queryset, request, view=None):
        ser = PageQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)

        self.page = ser.validated_data.get("page", 1)
        self.limit = ser.validated_data.get("limit") or _default_limit()
        self.total = queryset.count()

        offset = (self.page - 1) * self.limit
        return list(queryset[offset: offset + self.limit])

    def get_paginated_response(self, data) -> Response:
        return Response(
            {
                "data": data,
                "meta": page_meta(total=self.total, page=self.page, limit=self.limit),
            }
        )

    def get_paginated_response_schema(self, schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "object",
            "required": ["data", "meta"],
            "properties": {
                "data": schema,
                "meta": {
                    "type": "object",
                    "properties": {
                        "page": {"type": "integer", "example": 1},
                        "limit": {"type": "integer", "example": 20},
                        "total": {"type": "integer", "example": 45},
                        "totalPages": {"type": "integer", "example": 3},
                    },
                },
            },
        }

    def get_schema_operation_parameters(self, view):
        return [
            {
                "name": "page",
                "required": False,
                "in": "query",
                "description": "1-based page number.",
                "schema": {"type": "integer", "minimum": 1},
            },
            {
                "name": "limit",
                "required": False,
                "in": "query",
                "description": "Page size.",
                "schema": {"type": "integer", "minimum": 1, "maximum": _max_limit()},
            },
        ]


def paginate(request, queryset, serializer_class, *, paginator: BasePagination | None = None, context=None) -> Response:
    """
    Shared pagination helper so every list endpoint returns the same envelope.
    """
    p = paginator or PageLimitPagination()
    page = p.paginate_queryset(queryset, request)
    ser = serializer_class(page, many=True, context=context or {"request": request})
    return p.get_paginated_response(ser.data)
