"""Application service: authoring and version branching (validate → domain op → persist → audit)."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.application.base import EntityAppServiceBase, describe
from app.domain.audit import models as audit
from app.domain.common.errors import ErrorKind, StoreConflict
from app.domain.common.result import Result
from app.domain.entity import rules, versioning
from app.domain.entity.models import Actor, EntityKind, VersionedEntity

logger = logging.getLogger(__name__)


class VersionAppService(EntityAppServiceBase):

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------
    def create_entity(
        self,
        kind: EntityKind,
        actor: Actor,
        code: Optional[str],
        data: Dict[str, Any],
        department_id: Optional[str] = None,
    ) -> Result[VersionedEntity]:
        result = self._domain.create_entity(kind, actor, code, data, department_id)
        if not result.is_success:
            return self._refused(result, "create", code or "?", actor)
        entity = result.value

        try:
            with self._repo.transaction():
                if self._repo.code_exists(kind, entity.code):
                    return self._refused(
                        Result.fail(
                            f"{kind.value.capitalize()} code {entity.code} already exists.",
                            kind=ErrorKind.CONFLICT,
                            details={"code": entity.code},
                        ),
                        "create", entity.code, actor,
                    )
                self._repo.insert(entity)
                self._audit.record(entity, audit.CREATE, actor, f"{describe(entity)} created")
        except StoreConflict as exc:
            return self._conflict(exc, "create", entity.code, actor)

        logger.info("Created %s (%s) in department %s by %s", describe(entity), entity.id, entity.department_id, actor.id)
        return Result.ok(entity)

    # ------------------------------------------------------------------
    # EDIT
    # ------------------------------------------------------------------
    def edit_draft(
        self,
        kind: EntityKind,
        entity_id: str,
        patch: Dict[str, Any],
        actor: Actor,
    ) -> Result[VersionedEntity]:
        try:
            with self._repo.transaction():
                loaded = self._load(kind, entity_id)
                if not loaded.is_success:
                    return loaded
                entity = loaded.value
                collaborators = self._repo.get_collaborator_ids(entity.id)
                result = self._domain.edit_draft(entity, patch, actor, collaborators)
                if not result.is_success:
                    return self._refused(result, "edit", entity_id, actor)
                self._repo.update(entity)
                self._audit.record(
                    entity, audit.UPDATE, actor,
                    f"{describe(entity)} updated: {', '.join(sorted(patch))}",
                )
        except StoreConflict as exc:
            return self._conflict(exc, "edit", entity_id, actor)

        logger.info("Edited %s (%s) by %s", describe(entity), entity.id, actor.id)
        return Result.ok(entity)

    # ------------------------------------------------------------------
    # BRANCH
    # ------------------------------------------------------------------
    def create_version(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[VersionedEntity]:
        """
        Branch a new draft from a published version. The family check and the insert share
        one serialised transaction, and the in-flight unique index backs it up, so of several
        concurrent calls on one family only the first can succeed.
        """
        try:
            with self._repo.transaction():
                loaded = self._load_in_family(kind, entity_id)
                if not loaded.is_success:
                    return Result.propagate(loaded)
                source, family = loaded.value

                collaborators = self._repo.get_collaborator_ids(source.id)
                permission = rules.can_author(actor, source, collaborators)
                if not permission.is_success:
                    return self._refused(permission, "create_version", entity_id, actor)

                now = datetime.now(timezone.utc).isoformat()
                result = versioning.branch(source, family, actor, now)
                if not result.is_success:
                    return self._refused(result, "create_version", entity_id, actor)
                plan = result.value

                for member in plan.demoted:
                    self._repo.update(member)
                self._repo.insert(plan.new_draft)
                self._repo.copy_collaborators(source.id, plan.new_draft.id)
                self._audit.record(
                    plan.new_draft, audit.CREATE_VERSION, actor,
                    f"{describe(plan.new_draft)} created from v{source.version}",
                )
        except StoreConflict as exc:
            return self._conflict(exc, "create_version", entity_id, actor)

        logger.info(
            "Branched %s (%s) from %s by %s",
            describe(plan.new_draft), plan.new_draft.id, source.id, actor.id,
        )
        return Result.ok(plan.new_draft)

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def get_entity(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[VersionedEntity]:
        loaded = self._load_visible(kind, entity_id, actor)
        if not loaded.is_success:
            return loaded
        entity = loaded.value
        family = self._repo.get_family(kind, entity.code)
        entity.has_new_pending_version = versioning.has_new_pending_version(entity, family)
        return Result.ok(entity)

    def get_versions(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[List[VersionedEntity]]:
        loaded = self._load_inspectable(kind, entity_id, actor)
        if not loaded.is_success:
            return Result.propagate(loaded)
        return Result.ok(list(versioning.annotate(self._repo.get_family(kind, loaded.value.code))))

    def list_entities(
        self,
        kind: EntityKind,
        actor: Actor,
        status: Optional[str] = None,
        latest_only: bool = False,
        code: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Result[Dict[str, Any]]:
        if status is not None and status not in rules.VALID_STATUSES:
            return Result.fail(
                f"'{status}' is not a valid status. Must be one of {list(rules.VALID_STATUSES)}.",
                details={"field": "status"},
            )
        if page < 1 or limit < 1:
            return Result.fail("'page' and 'limit' must be positive.")

        department_id: Optional[str] = None
        statuses = [status] if status else None
        if actor.role == rules.STUDENT:
            if status and status != rules.ACTIVE:
                return Result.fail("Students can only list active entities.", kind=ErrorKind.PERMISSION)
            # one active row per family, whichever version is latest
            statuses = [rules.ACTIVE]
            latest_only = False
        elif not actor.is_admin:
            department_id = actor.department_id

        items, total = self._repo.list_entities(
            kind,
            department_id=department_id,
            statuses=statuses,
            latest_only=latest_only,
            code=code,
            limit=limit,
            offset=(page - 1) * limit,
        )
        in_flight = self._repo.families_with_in_flight(kind, [e.code for e in items])
        for entity in items:
            holder = in_flight.get(entity.code)
            entity.has_new_pending_version = holder is not None and holder != entity.id

        return Result.ok({
            "items": items,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": (total + limit - 1) // limit,
            },
        })

    def can_edit(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[Dict[str, Any]]:
        """
        Whether the caller can change this version, and how: edit the draft in place,
        or branch a new version from a published one.
        """
        loaded = self._load_inspectable(kind, entity_id, actor)
        if not loaded.is_success:
            return Result.propagate(loaded)
        entity = loaded.value
        family = self._repo.get_family(kind, entity.code)
        newer = [m for m in family if m.version > entity.version]
        other_in_flight = versioning.in_flight(family, exclude_id=entity.id)

        mode: Optional[str] = None
        reason = ""
        permission = rules.can_author(actor, entity, self._repo.get_collaborator_ids(entity.id))
        if not permission.is_success:
            reason = permission.error
        elif entity.status == rules.DRAFT:
            mode = "edit"
        elif entity.status == rules.PENDING_APPROVAL:
            reason = f"{describe(entity)} is pending approval; it must be rejected before it can be edited."
        elif entity.status == rules.ARCHIVED:
            reason = f"{describe(entity)} is archived."
        elif other_in_flight is not None:
            reason = (
                f"Cannot edit {describe(entity)} because version {other_in_flight.version} "
                f"is {other_in_flight.status}. Work with that version instead."
            )
        elif entity.status == rules.APPROVED:
            reason = f"{describe(entity)} is approved; publish it or withdraw it to draft first."
        else:
            mode = "create_version"

        return Result.ok({
            "can_edit": mode is not None,
            "mode": mode,
            "reason": reason,
            "status": entity.status,
            "version": entity.version,
            "is_latest_version": entity.is_latest_version,
            "has_new_pending_version": other_in_flight is not None,
            "newer_versions": [
                {"id": m.id, "version": m.version, "status": m.status, "created_at": m.created_at}
                for m in sorted(newer, key=lambda m: m.version, reverse=True)
            ],
        })
