# emr_core/common/api/exceptions.py

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.core.exceptions import ObjectDoesNotExist
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Honors an inbound X-Request-Id header when the client sends one.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid and request is not None:
        rid = request.META.get("HTTP_X_REQUEST_ID")
    if not rid:
        rid = uuid.uuid4().hex
    if request is not None:
        setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope for the EMR API.
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


class ConflictError(APIException):
    """
    409 Conflict: the request collides with existing data
    (duplicate phone/email, second invoice for a visit, ...).
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class BusinessRuleError(APIException):
    """
    422: the input is well-formed but the entity's current state forbids the action
    (delete-with-visits, restore-when-not-deleted, mutate a locked visit, ...).
    """
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "The requested action is not allowed in the current state."
    default_code = "business_rule_violation"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


def _translate(exc: Exception) -> Exception:
    """
    Map Django-native errors onto DRF exceptions so they get a proper status.
    """
    if isinstance(exc, ObjectDoesNotExist):
        return NotFound("Resource not found.")
    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, "message_dict"):
            return ValidationError(exc.message_dict)
        return ValidationError(exc.messages)
    return exc


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, (Http404, NotFound)):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")
    exc = _translate(exc)
    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.exception(
            "unhandled error request_id=%s path=%s",
            ensure_request_id(request),
            getattr(request, "path", ""),
            exc_info=exc,
        )
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    # DRF standardizes errors into response.data
    data = response.data

    # Message + details rules:
    # 1) {"detail": "..."} -> message=detail, details=None
    # 2) {"detail": "...", ...} -> message=detail, details={...without detail}
    # 3) [..] -> message=first item, details=None
    # 4) otherwise -> message="Request failed.", details=data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = str(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None
    elif isinstance(data, list) and data:
        message = str(data[0])
        details = None

    if http_status >= 500:
        logger.error("api error status=%s code=%s message=%s", http_status, code, message)

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=dict(response.headers),
    )
