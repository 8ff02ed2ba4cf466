"""Business rules for curriculum entities: the lifecycle transition table, guards and payload validation."""
from __future__ import annotations
import re
from typing import Any, Dict, Iterable, Optional

from app.domain.common.errors import ErrorKind
from app.domain.common.result import Result
from app.domain.entity.models import (
    Actor,
    CoursePayload,
    EntityKind,
    Payload,
    VersionedEntity,
    payload_field_names,
)

# ------------------------------------------------------------------
# Statuses
# ------------------------------------------------------------------
DRAFT = "draft"
PENDING_APPROVAL = "pending_approval"
APPROVED = "approved"
ACTIVE = "active"
ARCHIVED = "archived"

VALID_STATUSES = (DRAFT, PENDING_APPROVAL, APPROVED, ACTIVE, ARCHIVED)

# Not yet active or archived; a family holds at most one of these
IN_FLIGHT_STATUSES = frozenset({DRAFT, PENDING_APPROVAL, APPROVED})

# Statuses a delete may start from
DELETABLE_STATUSES = frozenset({DRAFT, PENDING_APPROVAL, APPROVED})

# Statuses a new version may be branched from
BRANCHABLE_STATUSES = frozenset({APPROVED, ACTIVE})

# ------------------------------------------------------------------
# Transition table: (current status, action) -> next status
# ------------------------------------------------------------------
SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
WITHDRAW = "withdraw"
PUBLISH = "publish"
ARCHIVE = "archive"

TRANSITIONS: dict[tuple[str, str], str] = {
    (DRAFT, SUBMIT): PENDING_APPROVAL,
    (PENDING_APPROVAL, APPROVE): APPROVED,
    (PENDING_APPROVAL, REJECT): DRAFT,
    (APPROVED, WITHDRAW): DRAFT,
    (APPROVED, PUBLISH): ACTIVE,
    (ACTIVE, ARCHIVE): ARCHIVED,
    (APPROVED, ARCHIVE): ARCHIVED,
    (DRAFT, ARCHIVE): ARCHIVED,
    (PENDING_APPROVAL, ARCHIVE): ARCHIVED,
}

# Why an action is refused from a given status, for messages callers can show as-is
_REFUSAL_HINTS: dict[tuple[str, str], str] = {
    (APPROVED, APPROVE): "has already been approved",
    (DRAFT, APPROVE): "has not been submitted for approval yet",
    (ACTIVE, APPROVE): "is already active",
    (DRAFT, PUBLISH): "must be submitted and approved before publishing",
    (PENDING_APPROVAL, PUBLISH): "is still pending approval and cannot be published yet",
    (ACTIVE, PUBLISH): "is already active",
    (PENDING_APPROVAL, SUBMIT): "is already pending approval",
    (APPROVED, SUBMIT): "is already approved",
    (ACTIVE, SUBMIT): "is active; create a new version to change it",
    (DRAFT, REJECT): "is not pending approval",
    (ACTIVE, WITHDRAW): "is active; create a new version to change it",
}

# ------------------------------------------------------------------
# Roles
# ------------------------------------------------------------------
FACULTY = "faculty"
HOD = "hod"
ADMIN = "admin"
STUDENT = "student"

VALID_ROLES = (FACULTY, HOD, ADMIN, STUDENT)
AUTHOR_ROLES = frozenset({FACULTY, HOD})

# ------------------------------------------------------------------
# Payload limits
# ------------------------------------------------------------------
REJECTION_REASON_MIN = 10
REJECTION_REASON_MAX = 500
MESSAGE_MAX = 2000

CODE_LENGTH = {
    EntityKind.COURSE: (3, 15),
    EntityKind.DEGREE: (2, 10),
}
_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]+$")

NAME_LENGTH = {
    EntityKind.COURSE: (2, 150),
    EntityKind.DEGREE: (2, 100),
}
DESCRIPTION_LENGTH = {
    EntityKind.COURSE: (10, 2000),
    EntityKind.DEGREE: (0, 1000),
}

# Fields that are identity, not payload; a patch may never carry them
IMMUTABLE_FIELDS = frozenset({
    "id", "kind", "code", "version", "parent_entity_id", "status", "department_id",
    "creator_id", "approver_id", "is_latest_version", "created_at",
})


def _label(entity: VersionedEntity) -> str:
    return f"{entity.kind.value.capitalize()} {entity.code} v{entity.version}"


# ------------------------------------------------------------------
# Transitions
# ------------------------------------------------------------------
def validate_transition(entity: VersionedEntity, action: str) -> Result[str]:
    """Returns Result.ok(next_status) or an InvalidTransition failure naming the current status."""
    next_status = TRANSITIONS.get((entity.status, action))
    if next_status is not None:
        return Result.ok(next_status)

    hint = _REFUSAL_HINTS.get((entity.status, action))
    if hint:
        message = f"{_label(entity)} {hint}."
    else:
        message = f"Invalid transition: cannot {action} a {entity.kind.value} in '{entity.status}' status."
    return Result.fail(
        message,
        kind=ErrorKind.INVALID_TRANSITION,
        details={"current_status": entity.status, "action": action},
    )


def validate_deletable(entity: VersionedEntity) -> Result[VersionedEntity]:
    if entity.status not in DELETABLE_STATUSES:
        return Result.fail(
            f"{_label(entity)} is {entity.status} and cannot be deleted.",
            kind=ErrorKind.INVALID_TRANSITION,
            details={"current_status": entity.status, "action": "delete"},
        )
    return Result.ok(entity)


def validate_branchable(entity: VersionedEntity) -> Result[VersionedEntity]:
    if entity.status not in BRANCHABLE_STATUSES:
        return Result.fail(
            f"Can only create versions from approved or active {entity.kind.value}s; "
            f"{_label(entity)} is {entity.status}.",
            kind=ErrorKind.INVALID_TRANSITION,
            details={"current_status": entity.status, "action": "create_version"},
        )
    return Result.ok(entity)


# ------------------------------------------------------------------
# Permissions
# ------------------------------------------------------------------
def _deny(message: str) -> Result[Actor]:
    return Result.fail(message, kind=ErrorKind.PERMISSION)


def can_create(actor: Actor, department_id: Optional[str]) -> Result[str]:
    """Returns the department the new family belongs to."""
    if actor.is_admin:
        if not department_id:
            return Result.fail("Admins must name the department_id of a new entity.")
        return Result.ok(department_id)
    if actor.role not in AUTHOR_ROLES:
        return Result.propagate(_deny(f"Role '{actor.role}' cannot author curriculum entities."))
    if not actor.department_id:
        return Result.propagate(_deny("Caller has no department."))
    if department_id and department_id != actor.department_id:
        return Result.propagate(_deny("Can only create entities in your own department."))
    return Result.ok(actor.department_id)


def can_author(actor: Actor, entity: VersionedEntity, collaborator_ids: Iterable[str]) -> Result[Actor]:
    """Creator or collaborator of this version, in its department; or admin."""
    if actor.is_admin:
        return Result.ok(actor)
    if actor.role not in AUTHOR_ROLES or actor.department_id != entity.department_id:
        return _deny(f"Only faculty of department '{entity.department_id}' can change {_label(entity)}.")
    if actor.id != entity.creator_id and actor.id not in set(collaborator_ids):
        return _deny(f"Only the creator or a collaborator can change {_label(entity)}.")
    return Result.ok(actor)


def can_review(actor: Actor, entity: VersionedEntity) -> Result[Actor]:
    """HOD of the entity's department, or admin."""
    if actor.is_admin:
        return Result.ok(actor)
    if actor.role != HOD or actor.department_id != entity.department_id:
        return _deny(f"Only the Head of Department of '{entity.department_id}' or an admin can review {_label(entity)}.")
    return Result.ok(actor)


def can_delete(actor: Actor, entity: VersionedEntity) -> Result[Actor]:
    """Creator, HOD of the entity's department, or admin."""
    if actor.is_admin:
        return Result.ok(actor)
    if actor.department_id != entity.department_id:
        return _deny("Can only delete entities in your own department.")
    if actor.id == entity.creator_id or actor.role == HOD:
        return Result.ok(actor)
    return _deny(f"Only the creator, the Head of Department or an admin can delete {_label(entity)}.")


def can_manage_collaborators(actor: Actor, entity: VersionedEntity) -> Result[Actor]:
    if actor.is_admin:
        return Result.ok(actor)
    if actor.department_id != entity.department_id:
        return _deny("Can only manage collaborators in your own department.")
    if actor.id == entity.creator_id or actor.role == HOD:
        return Result.ok(actor)
    return _deny("Only the creator, the Head of Department or an admin can manage collaborators.")


def can_read(actor: Actor, entity: VersionedEntity) -> Result[Actor]:
    if actor.is_admin:
        return Result.ok(actor)
    if actor.role == STUDENT:
        if entity.status == ACTIVE:
            return Result.ok(actor)
        return _deny("Students can only view active entities.")
    if actor.department_id != entity.department_id:
        return _deny("Can only view entities of your own department.")
    return Result.ok(actor)


def can_inspect(actor: Actor, entity: VersionedEntity) -> Result[Actor]:
    """History, versions, edit state and collaborators are staff views; students only see the active entity."""
    if actor.role == STUDENT:
        return _deny("Students cannot view the history of curriculum entities.")
    return can_read(actor, entity)


# ------------------------------------------------------------------
# Payload validation
# ------------------------------------------------------------------
def normalize_code(kind: EntityKind, code: Optional[str]) -> Result[str]:
    code = (code or "").strip().upper()
    low, high = CODE_LENGTH[kind]
    if not low <= len(code) <= high:
        return Result.fail(f"{kind.value.capitalize()} code must be {low}-{high} characters.", details={"field": "code"})
    if not _CODE_PATTERN.match(code):
        return Result.fail(
            f"{kind.value.capitalize()} code may only contain letters, digits, '_' and '-'.",
            details={"field": "code"},
        )
    return Result.ok(code)


def _field_error(field: str, message: str) -> Result[Payload]:
    return Result.fail(message, details={"field": field})


def _check_int(value: Any, field: str, low: int, high: int) -> Optional[Result[Payload]]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        return _field_error(field, f"'{field}' must be an integer between {low} and {high}.")
    return None


def _check_text(value: Any, field: str, low: int, high: int) -> Optional[Result[Payload]]:
    if value is None:
        return None
    if not isinstance(value, str) or not low <= len(value.strip()) <= high:
        return _field_error(field, f"'{field}' must be {low}-{high} characters.")
    return None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_payload(kind: EntityKind, payload: Payload, complete: bool = False) -> Result[Payload]:
    """
    Shape and range checks on whatever is present; `name` is always required.
    With complete=True also requires every field a reviewer needs (used by submit),
    and only then holds the description to its minimum length.
    """
    name = (payload.name or "").strip()
    if not name:
        return _field_error("name", f"{kind.value.capitalize()} 'name' is required and cannot be empty.")
    low, high = NAME_LENGTH[kind]
    error = _check_text(payload.name, "name", low, high)
    if error:
        return error
    description_min, description_max = DESCRIPTION_LENGTH[kind]
    error = _check_text(payload.description, "description", 0, description_max)
    if error:
        return error

    if isinstance(payload, CoursePayload):
        for check in (
            _check_int(payload.credits, "credits", 1, 10),
            _check_int(payload.semester, "semester", 1, 10),
            _check_int(payload.max_students, "max_students", 1, 500),
        ):
            if check:
                return check
        if not isinstance(payload.prerequisites, list) or not all(isinstance(p, str) for p in payload.prerequisites):
            return _field_error("prerequisites", "'prerequisites' must be a list of course codes.")
        required = ("description", "credits", "semester", "degree_code")
    else:
        check = _check_int(payload.duration_years, "duration_years", 1, 10)
        if check:
            return check
        for field in ("courses_per_semester", "elective_options", "graduation_requirements", "enrollment_config"):
            if not isinstance(getattr(payload, field), dict):
                return _field_error(field, f"'{field}' must be an object.")
        required = ("duration_years",)

    if complete:
        missing = [f for f in required if _blank(getattr(payload, f))]
        if missing:
            return Result.fail(
                f"{kind.value.capitalize()} is incomplete; missing: {', '.join(missing)}.",
                details={"missing": missing},
            )
        error = _check_text(payload.description, "description", description_min, description_max)
        if error:
            return error
    return Result.ok(payload)


def validate_patch(kind: EntityKind, patch: Dict[str, Any]) -> Result[Dict[str, Any]]:
    """Only payload fields may be patched; identity fields and unknown keys are refused."""
    frozen = sorted(k for k in patch if k in IMMUTABLE_FIELDS)
    if frozen:
        return Result.fail(f"Fields cannot be edited: {', '.join(frozen)}.", details={"fields": frozen})
    unknown = sorted(set(patch) - payload_field_names(kind))
    if unknown:
        return Result.fail(
            f"Unknown {kind.value} fields: {', '.join(unknown)}.",
            details={"fields": unknown},
        )
    if not patch:
        return Result.fail("Nothing to update.")
    return Result.ok(patch)


def validate_rejection_reason(reason: Optional[str]) -> Result[str]:
    reason = (reason or "").strip()
    if not REJECTION_REASON_MIN <= len(reason) <= REJECTION_REASON_MAX:
        return Result.fail(
            f"Rejection reason is required ({REJECTION_REASON_MIN}-{REJECTION_REASON_MAX} characters).",
            details={"field": "reason"},
        )
    return Result.ok(reason)


def validate_message(message: Optional[str]) -> Result[Optional[str]]:
    message = (message or "").strip()
    if len(message) > MESSAGE_MAX:
        return Result.fail(f"Message must be at most {MESSAGE_MAX} characters.", details={"field": "message"})
    return Result.ok(message or None)

