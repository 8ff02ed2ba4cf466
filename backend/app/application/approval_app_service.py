"""Application service: the review workflow: submit, approve, reject, withdraw, publish, delete."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from app.application.base import EntityAppServiceBase, describe
from app.domain.audit import models as audit
from app.domain.common.errors import StoreConflict
from app.domain.common.result import Result
from app.domain.entity import rules
from app.domain.entity.models import Actor, EntityKind, VersionedEntity

logger = logging.getLogger(__name__)


class ApprovalAppService(EntityAppServiceBase):

    def submit(
        self,
        kind: EntityKind,
        entity_id: str,
        actor: Actor,
        message: Optional[str] = None,
    ) -> Result[VersionedEntity]:
        checked = rules.validate_message(message)
        if not checked.is_success:
            return Result.propagate(checked)

        try:
            with self._repo.transaction():
                loaded = self._load(kind, entity_id)
                if not loaded.is_success:
                    return loaded
                entity = loaded.value
                result = self._domain.submit(entity, actor, self._repo.get_collaborator_ids(entity.id))
                if not result.is_success:
                    return self._refused(result, rules.SUBMIT, entity_id, actor)
                self._repo.update(entity)
                self._audit.record(entity, audit.SUBMIT, actor, f"{describe(entity)} submitted for approval")
                if checked.value:
                    self._audit.note(entity, actor, checked.value)
        except StoreConflict as exc:
            return self._conflict(exc, rules.SUBMIT, entity_id, actor)

        logger.info("Submitted %s (%s) by %s", describe(entity), entity.id, actor.id)
        return Result.ok(entity)

    def approve(
        self,
        kind: EntityKind,
        entity_id: str,
        actor: Actor,
        message: Optional[str] = None,
    ) -> Result[VersionedEntity]:
        checked = rules.validate_message(message)
        if not checked.is_success:
            return Result.propagate(checked)

        try:
            with self._repo.transaction():
                loaded = self._load(kind, entity_id)
                if not loaded.is_success:
                    return loaded
                entity = loaded.value
                result = self._domain.approve(entity, actor)
                if not result.is_success:
                    return self._refused(result, rules.APPROVE, entity_id, actor)
                self._repo.update(entity)
                self._audit.record(entity, audit.APPROVE, actor, f"{describe(entity)} approved")
                note = f"{describe(entity)} approved by HOD"
                if checked.value:
                    note = f"{note}: {checked.value}"
                self._audit.note(entity, actor, note)
        except StoreConflict as exc:
            return self._conflict(exc, rules.APPROVE, entity_id, actor)

        logger.info("Approved %s (%s) by %s", describe(entity), entity.id, actor.id)
        return Result.ok(entity)

    def reject(
        self,
        kind: EntityKind,
        entity_id: str,
        actor: Actor,
        reason: Optional[str],
    ) -> Result[VersionedEntity]:
        try:
            with self._repo.transaction():
                loaded = self._load(kind, entity_id)
                if not loaded.is_success:
                    return loaded
                entity = loaded.value
                result = self._domain.reject(entity, reason, actor)
                if not result.is_success:
                    return self._refused(result, rules.REJECT, entity_id, actor)
                self._repo.update(entity)
                self._audit.record(
                    entity, audit.REJECT, actor,
                    f"{describe(entity)} returned to draft: {entity.rejection_reason}",
                )
                self._audit.note(entity, actor, f"{describe(entity)} change requested: {entity.rejection_reason}")
        except StoreConflict as exc:
            return self._conflict(exc, rules.REJECT, entity_id, actor)

        logger.info("Rejected %s (%s) by %s", describe(entity), entity.id, actor.id)
        return Result.ok(entity)

    def withdraw(
        self,
        kind: EntityKind,
        entity_id: str,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Result[VersionedEntity]:
        checked = rules.validate_message(reason)
        if not checked.is_success:
            return Result.propagate(checked)

        try:
            with self._repo.transaction():
                loaded = self._load(kind, entity_id)
                if not loaded.is_success:
                    return loaded
                entity = loaded.value
                result = self._domain.withdraw(entity, actor, self._repo.get_collaborator_ids(entity.id))
                if not result.is_success:
                    return self._refused(result, rules.WITHDRAW, entity_id, actor)
                self._repo.update(entity)
                self._audit.record(entity, audit.WITHDRAW, actor, f"{describe(entity)} withdrawn to draft")
                if checked.value:
                    self._audit.note(entity, actor, f"{describe(entity)} withdrawn: {checked.value}")
        except StoreConflict as exc:
            return self._conflict(exc, rules.WITHDRAW, entity_id, actor)

        logger.info("Withdrew %s (%s) by %s", describe(entity), entity.id, actor.id)
        return Result.ok(entity)

    def publish(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[VersionedEntity]:
        """
        Archive the family's active version and activate this one in a single transaction.
        Any failure between the two writes rolls both back, so the family never ends up
        with zero or two active versions.
        """
        try:
            with self._repo.transaction():
                loaded = self._load_in_family(kind, entity_id)
                if not loaded.is_success:
                    return Result.propagate(loaded)
                entity, family = loaded.value
                result = self._domain.publish(entity, family, actor)
                if not result.is_success:
                    return self._refused(result, rules.PUBLISH, entity_id, actor)
                plan = result.value

                # The active-per-family index only admits the new row once the old one is gone
                if plan.archived is not None:
                    self._repo.update(plan.archived)
                self._repo.update(plan.activated)
                for member in plan.relabelled:
                    self._repo.update(member)

                if plan.archived is not None:
                    self._audit.record(
                        plan.archived, audit.ARCHIVE, actor,
                        f"{describe(plan.archived)} archived; superseded by v{entity.version}",
                    )
                self._audit.record(entity, audit.PUBLISH, actor, f"{describe(entity)} published")
        except StoreConflict as exc:
            return self._conflict(exc, rules.PUBLISH, entity_id, actor)

        logger.info(
            "Published %s (%s) by %s; archived %s",
            describe(entity), entity.id, actor.id,
            plan.archived.id if plan.archived else "nothing",
        )
        return Result.ok(entity)

    def delete(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[Dict[str, Any]]:
        try:
            with self._repo.transaction():
                loaded = self._load_in_family(kind, entity_id)
                if not loaded.is_success:
                    return Result.propagate(loaded)
                entity, family = loaded.value
                result = self._domain.plan_delete(entity, family, actor)
                if not result.is_success:
                    return self._refused(result, "delete", entity_id, actor)
                plan = result.value

                if plan.hard_delete:
                    self._repo.delete(entity.id)
                else:
                    self._repo.update(entity)
                for member in plan.relabelled:
                    self._repo.update(member)
                self._audit.record(
                    entity, audit.DELETE, actor,
                    f"{describe(entity)} {'deleted' if plan.hard_delete else 'archived on delete'}",
                )
        except StoreConflict as exc:
            return self._conflict(exc, "delete", entity_id, actor)

        logger.info(
            "%s %s (%s) by %s",
            "Deleted" if plan.hard_delete else "Archived", describe(entity), entity.id, actor.id,
        )
        return Result.ok({
            "id": entity.id,
            "deleted": plan.hard_delete,
            "archived": not plan.hard_delete,
            "status": None if plan.hard_delete else entity.status,
        })
