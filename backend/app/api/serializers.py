"""Response shaping shared by the routers: Result → HTTP, domain objects → JSON dicts."""
from __future__ import annotations
from typing import Any

from fastapi import HTTPException, status

from app.domain.audit.models import TimelineEntry
from app.domain.common.errors import ErrorKind
from app.domain.common.result import Result
from app.domain.entity.models import VersionedEntity, payload_to_dict

_HTTP_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERMISSION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


def unwrap(result: Result[Any]) -> Any:
    """Return the value of a successful result or raise the matching HTTPException."""
    if result.is_success:
        return result.value
    kind = result.kind or ErrorKind.VALIDATION
    raise HTTPException(
        status_code=_HTTP_STATUS[kind],
        detail={"error": kind.value, "message": result.error, **result.details},
    )


def serialize_entity(e: VersionedEntity) -> dict:
    return {
        "id": e.id,
        "kind": e.kind.value,
        "code": e.code,
        "version": e.version,
        "status": e.status,
        "department_id": e.department_id,
        "parent_entity_id": e.parent_entity_id,
        "is_latest_version": e.is_latest_version,
        "has_new_pending_version": e.has_new_pending_version,
        "creator_id": e.creator_id,
        "approver_id": e.approver_id,
        "updater_id": e.updater_id,
        "rejection_reason": e.rejection_reason,
        "created_at": e.created_at,
        "submitted_at": e.submitted_at,
        "approved_at": e.approved_at,
        "updated_at": e.updated_at,
        **payload_to_dict(e.payload),
    }


def serialize_timeline_entry(t: TimelineEntry) -> dict:
    entry = {
        "type": t.type,
        "id": t.id,
        "entity_id": t.entity_id,
        "actor_id": t.actor_id,
        "timestamp": t.timestamp,
    }
    if t.type == "audit":
        entry["action"] = t.action
        entry["description"] = t.description
    else:
        entry["message"] = t.message
    return entry
