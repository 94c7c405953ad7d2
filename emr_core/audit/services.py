# emr_core/audit/services.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import validate_ipv46_address
from django.db import transaction

from emr_core.audit.models import AuditEvent

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

DEFAULT_REDACTED_FIELDS = ("password", "token", "access", "refresh", "insurance_number")


@dataclass(frozen=True)
class AuditRecord:
    id: UUID
    event_code: str
    entity_type: str
    entity_id: UUID
    tenant_id: UUID
    facility_id: UUID
    actor_user_id: int | None
    changes: Dict[str, Any]


def _redacted_fields() -> frozenset[str]:
    fields: Iterable[str] = getattr(settings, "EMR_AUDIT_REDACTED_FIELDS", DEFAULT_REDACTED_FIELDS)
    return frozenset(f.lower() for f in fields)


def redact(value: Any, *, fields: frozenset[str] | None = None) -> Any:
    """
    Return a JSON-safe copy of value with sensitive keys masked at any depth.
    """
    fields = _redacted_fields() if fields is None else fields

    if isinstance(value, dict):
        return {
            k: (REDACTED if str(k).lower() in fields else redact(v, fields=fields))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v, fields=fields) for v in value]

    # dates, Decimals, UUIDs -> their JSON string form
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def _valid_ip(value: str | None) -> str | None:
    value = (value or "").strip()
    if not value:
        return None
    try:
        validate_ipv46_address(value)
    except DjangoValidationError:
        logger.warning("audit ignoring malformed client ip")
        return None
    return value


def _client_ip(request) -> str | None:
    """
    REMOTE_ADDR, or the first X-Forwarded-For hop when EMR_TRUST_X_FORWARDED_FOR
    is on. Anything that is not an IPv4/IPv6 address is stored as None.
    """
    if request is None:
        return None
    if getattr(settings, "EMR_TRUST_X_FORWARDED_FOR", False):
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
        if forwarded:
            return _valid_ip(forwarded.split(",")[0])
    return _valid_ip(request.META.get("REMOTE_ADDR"))


class AuditService:
    """
    Central audit writer. Runs inside the caller's transaction so the event
    and the mutation commit (or roll back) together.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        event_code: str,
        entity_type: str,
        entity_id: UUID,
        tenant_id: UUID,
        facility_id: UUID,
        actor_user_id: int | None,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        request=None,
    ) -> AuditRecord:
        safe_changes = redact(changes or {})
        safe_metadata = redact(metadata or {})

        user_agent = ""
        if request is not None:
            user_agent = (request.META.get("HTTP_USER_AGENT") or "")[:255]

        event = AuditEvent.objects.create(
            tenant_id=tenant_id,
            facility_id=facility_id,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            changes=safe_changes,
            metadata=safe_metadata,
            ip_address=_client_ip(request),
            user_agent=user_agent,
        )

        logger.debug("audit event=%s entity=%s:%s actor=%s", event_code, entity_type, entity_id, actor_user_id)

        return AuditRecord(
            id=event.id,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            tenant_id=tenant_id,
            facility_id=facility_id,
            actor_user_id=actor_user_id,
            changes=safe_changes,
        )
