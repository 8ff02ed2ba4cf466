"""Domain service: pure business logic for the curriculum entity lifecycle."""
from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.domain.common.errors import ErrorKind
from app.domain.common.result import Result
from app.domain.entity import rules, versioning
from app.domain.entity.models import (
    Actor,
    EntityKind,
    VersionedEntity,
    patch_payload,
    payload_from_dict,
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class PublishPlan:
    activated: VersionedEntity
    archived: Optional[VersionedEntity] = None
    # Other members whose is_latest_version flag changed
    relabelled: List[VersionedEntity] = field(default_factory=list)


@dataclass
class DeletePlan:
    entity: VersionedEntity
    hard_delete: bool
    relabelled: List[VersionedEntity] = field(default_factory=list)


class LifecycleDomainService:
    """
    Pure domain operations, no I/O. All methods return Result[T].
    Guards are checked before anything is mutated, so a failed result leaves the
    passed-in entities untouched. The application layer persists what succeeds.
    """

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------
    def create_entity(
        self,
        kind: EntityKind,
        actor: Actor,
        code: Optional[str],
        data: Dict[str, Any],
        department_id: Optional[str] = None,
    ) -> Result[VersionedEntity]:
        """Version 1 of a new family, in draft."""
        department = rules.can_create(actor, department_id)
        if not department.is_success:
            return Result.propagate(department)

        normalized = rules.normalize_code(kind, code)
        if not normalized.is_success:
            return Result.propagate(normalized)

        payload = payload_from_dict(kind, data)
        validation = rules.validate_payload(kind, payload)
        if not validation.is_success:
            return Result.propagate(validation)

        now = _now_iso()
        entity = VersionedEntity(
            id=_new_id(),
            kind=kind,
            code=normalized.value,
            version=1,
            status=rules.DRAFT,
            department_id=department.value,
            creator_id=actor.id,
            payload=payload,
            created_at=now,
            updated_at=now,
        )
        return Result.ok(entity)

    def edit_draft(
        self,
        entity: VersionedEntity,
        patch: Dict[str, Any],
        actor: Actor,
        collaborator_ids: Iterable[str] = (),
    ) -> Result[VersionedEntity]:
        """Payload edits are only possible while the version is a draft."""
        permission = rules.can_author(actor, entity, collaborator_ids)
        if not permission.is_success:
            return Result.propagate(permission)

        if entity.status != rules.DRAFT:
            hint = "reject or withdraw it first" if entity.status in rules.IN_FLIGHT_STATUSES else "create a new version instead"
            return Result.fail(
                f"Only drafts can be edited; {entity.kind.value} {entity.code} v{entity.version} "
                f"is {entity.status} ({hint}).",
                kind=ErrorKind.INVALID_TRANSITION,
                details={"current_status": entity.status, "action": "edit"},
            )

        checked = rules.validate_patch(entity.kind, patch)
        if not checked.is_success:
            return Result.propagate(checked)

        payload = patch_payload(entity.payload, checked.value)
        validation = rules.validate_payload(entity.kind, payload)
        if not validation.is_success:
            return Result.propagate(validation)

        entity.payload = payload
        entity.updater_id = actor.id
        entity.updated_at = _now_iso()
        return Result.ok(entity)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------
    def _apply(self, entity: VersionedEntity, next_status: str, actor: Actor) -> VersionedEntity:
        entity.status = next_status
        entity.updater_id = actor.id
        entity.updated_at = _now_iso()
        return entity

    def submit(
        self,
        entity: VersionedEntity,
        actor: Actor,
        collaborator_ids: Iterable[str] = (),
    ) -> Result[VersionedEntity]:
        permission = rules.can_author(actor, entity, collaborator_ids)
        if not permission.is_success:
            return Result.propagate(permission)

        transition = rules.validate_transition(entity, rules.SUBMIT)
        if not transition.is_success:
            return Result.propagate(transition)

        validation = rules.validate_payload(entity.kind, entity.payload, complete=True)
        if not validation.is_success:
            return Result.propagate(validation)

        self._apply(entity, transition.value, actor)
        # First submission only; a resubmission after rejection keeps the original stamp
        entity.submitted_at = entity.submitted_at or entity.updated_at
        return Result.ok(entity)

    def approve(self, entity: VersionedEntity, actor: Actor) -> Result[VersionedEntity]:
        permission = rules.can_review(actor, entity)
        if not permission.is_success:
            return Result.propagate(permission)

        transition = rules.validate_transition(entity, rules.APPROVE)
        if not transition.is_success:
            return Result.propagate(transition)

        self._apply(entity, transition.value, actor)
        entity.approver_id = actor.id
        entity.approved_at = entity.approved_at or entity.updated_at
        entity.rejection_reason = None
        return Result.ok(entity)

    def reject(self, entity: VersionedEntity, reason: Optional[str], actor: Actor) -> Result[VersionedEntity]:
        permission = rules.can_review(actor, entity)
        if not permission.is_success:
            return Result.propagate(permission)

        transition = rules.validate_transition(entity, rules.REJECT)
        if not transition.is_success:
            return Result.propagate(transition)

        checked = rules.validate_rejection_reason(reason)
        if not checked.is_success:
            return Result.propagate(checked)

        self._apply(entity, transition.value, actor)
        entity.rejection_reason = checked.value
        return Result.ok(entity)

    def withdraw(
        self,
        entity: VersionedEntity,
        actor: Actor,
        collaborator_ids: Iterable[str] = (),
    ) -> Result[VersionedEntity]:
        """Recall an approved, unpublished version to draft. Authors and reviewers may do this."""
        permission = rules.can_author(actor, entity, collaborator_ids)
        if not permission.is_success:
            permission = rules.can_review(actor, entity)
        if not permission.is_success:
            return Result.fail(
                "Only an author, the Head of Department or an admin can withdraw an approval.",
                kind=ErrorKind.PERMISSION,
            )

        transition = rules.validate_transition(entity, rules.WITHDRAW)
        if not transition.is_success:
            return Result.propagate(transition)

        self._apply(entity, transition.value, actor)
        return Result.ok(entity)

    def publish(
        self,
        entity: VersionedEntity,
        family: Sequence[VersionedEntity],
        actor: Actor,
    ) -> Result[PublishPlan]:
        """
        Make an approved version the family's active one. The currently active sibling,
        if any, is archived in the same plan; the caller must persist both or neither,
        archive first.
        """
        permission = rules.can_review(actor, entity)
        if not permission.is_success:
            return Result.propagate(permission)

        transition = rules.validate_transition(entity, rules.PUBLISH)
        if not transition.is_success:
            return Result.propagate(transition)

        previous = next(
            (m for m in family if m.id != entity.id and m.status == rules.ACTIVE),
            None,
        )
        if previous is not None:
            self._apply(previous, rules.TRANSITIONS[(rules.ACTIVE, rules.ARCHIVE)], actor)

        self._apply(entity, transition.value, actor)
        relabelled = [m for m in versioning.reassign_latest(family) if m.id != entity.id and m is not previous]
        return Result.ok(PublishPlan(activated=entity, archived=previous, relabelled=relabelled))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    def plan_delete(
        self,
        entity: VersionedEntity,
        family: Sequence[VersionedEntity],
        actor: Actor,
    ) -> Result[DeletePlan]:
        """
        Never-approved versions that nothing was branched from are removed outright;
        anything that was ever approved, or is some version's parent, is archived.
        """
        permission = rules.can_delete(actor, entity)
        if not permission.is_success:
            return Result.propagate(permission)

        deletable = rules.validate_deletable(entity)
        if not deletable.is_success:
            return Result.propagate(deletable)

        referenced = any(m.parent_entity_id == entity.id for m in family)
        hard_delete = entity.approved_at is None and not referenced

        if hard_delete:
            remaining = [m for m in family if m.id != entity.id]
        else:
            self._apply(entity, rules.TRANSITIONS[(entity.status, rules.ARCHIVE)], actor)
            remaining = list(family)

        relabelled = [m for m in versioning.reassign_latest(remaining) if m.id != entity.id]
        return Result.ok(DeletePlan(entity=entity, hard_delete=hard_delete, relabelled=relabelled))
