"""Append-only audit log service. Never update or delete - immutable audit trail."""
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from marketplace.models.audit_log import AuditLog

CATEGORY_STATUS_CHANGE = "status_change"
CATEGORY_FAILED_ATTEMPT = "failed_attempt"

# Column limits (match model)
_CATEGORY_LEN = 32
_TITLE_LEN = 255
_IDENTIFIER_LEN = 255
_IP_LEN = 64
_USER_AGENT_LEN = 500
_MESSAGE_LEN = 100_000


def _sanitize_meta_value(v: Any) -> Any:
    """Convert to JSON-serializable value so meta never raises on INSERT."""
    if v is None:
        return None
    if isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, enum.Enum):
        return getattr(v, "value", str(v))
    if isinstance(v, dict):
        return {str(k): _sanitize_meta_value(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_sanitize_meta_value(x) for x in v]
    return str(v)


def _sanitize_meta(meta: dict[str, Any] | None) -> dict[str, Any] | None:
    if meta is None:
        return None
    return {str(k): _sanitize_meta_value(v) for k, v in meta.items()}


def request_origin(request: Request | None) -> tuple[str | None, str | None]:
    """(client ip, user agent) for the audit record."""
    if request is None:
        return None, None
    ip = request.client.host if request.client else None
    ua = (request.headers.get("user-agent") or "").strip() or None
    return ip, ua


def create_log(
    db: Session,
    category: str,
    title: str,
    message: str,
    *,
    account_uuid: str | None = None,
    actor_identifier: str | None = None,
    request: Request | None = None,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """Append one immutable audit log record. String fields are truncated to column limits;
    meta is sanitized for JSON. Commit remains with the caller."""
    ip, ua = request_origin(request)
    entry = AuditLog(
        category=(category or "")[:_CATEGORY_LEN].strip() or CATEGORY_STATUS_CHANGE,
        title=(title or "")[:_TITLE_LEN].strip() or "-",
        message=(message or "")[:_MESSAGE_LEN].strip() or "-",
        account_uuid=account_uuid,
        actor_identifier=(actor_identifier[:_IDENTIFIER_LEN] if actor_identifier else None),
        ip_address=(ip[:_IP_LEN] if ip else None),
        user_agent=(ua[:_USER_AGENT_LEN] if ua else None),
        meta=_sanitize_meta(meta),
    )
    db.add(entry)
    db.flush()
    return entry
