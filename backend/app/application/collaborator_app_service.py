"""Application service: per-version co-authors."""
from __future__ import annotations
import logging
from typing import List

from app.application.base import EntityAppServiceBase, describe
from app.application.audit_recorder import AuditRecorder
from app.domain.audit import models as audit
from app.domain.common.errors import ErrorKind, StoreConflict
from app.domain.common.result import Result
from app.domain.entity import rules
from app.domain.entity.models import Actor, EntityKind
from app.persistence.interfaces.entity_repository import EntityRepository
from app.persistence.interfaces.user_repository import UserRepository

logger = logging.getLogger(__name__)


def _public(user: dict) -> dict:
    return {
        "id": user["id"],
        "username": user["username"],
        "display_name": user.get("display_name"),
        "role": user["role"],
        "department_id": user.get("department_id"),
    }


class CollaboratorAppService(EntityAppServiceBase):
    def __init__(self, repo: EntityRepository, audit_recorder: AuditRecorder, users: UserRepository):
        super().__init__(repo, audit_recorder)
        self._users = users

    def list_collaborators(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[List[dict]]:
        loaded = self._load_inspectable(kind, entity_id, actor)
        if not loaded.is_success:
            return Result.propagate(loaded)
        users = [self._users.get_by_id(uid) for uid in self._repo.get_collaborator_ids(entity_id)]
        return Result.ok([_public(u) for u in users if u is not None])

    def add_collaborator(self, kind: EntityKind, entity_id: str, user_id: str, actor: Actor) -> Result[List[dict]]:
        try:
            with self._repo.transaction():
                loaded = self._load(kind, entity_id)
                if not loaded.is_success:
                    return Result.propagate(loaded)
                entity = loaded.value
                permission = rules.can_manage_collaborators(actor, entity)
                if not permission.is_success:
                    return self._refused(permission, audit.ADD_COLLABORATOR, entity_id, actor)

                user = self._users.get_by_id(user_id)
                if user is None:
                    return Result.fail(f"User '{user_id}' not found.", kind=ErrorKind.NOT_FOUND)
                if user["role"] not in rules.AUTHOR_ROLES or user["department_id"] != entity.department_id:
                    return self._refused(
                        Result.fail(
                            f"Collaborators must be faculty of department '{entity.department_id}'.",
                            details={"field": "user_id"},
                        ),
                        audit.ADD_COLLABORATOR, entity_id, actor,
                    )
                if user_id == entity.creator_id:
                    return Result.fail("The creator is already an author of this version.", details={"field": "user_id"})

                if self._repo.add_collaborator(entity.id, user_id):
                    self._audit.record(
                        entity, audit.ADD_COLLABORATOR, actor,
                        f"{user['username']} added as collaborator on {describe(entity)}",
                    )
                    logger.info("Added collaborator %s to %s by %s", user_id, entity.id, actor.id)
        except StoreConflict as exc:
            return self._conflict(exc, audit.ADD_COLLABORATOR, entity_id, actor)

        return self.list_collaborators(kind, entity_id, actor)

    def remove_collaborator(self, kind: EntityKind, entity_id: str, user_id: str, actor: Actor) -> Result[List[dict]]:
        try:
            with self._repo.transaction():
                loaded = self._load(kind, entity_id)
                if not loaded.is_success:
                    return Result.propagate(loaded)
                entity = loaded.value
                permission = rules.can_manage_collaborators(actor, entity)
                if not permission.is_success:
                    return self._refused(permission, audit.REMOVE_COLLABORATOR, entity_id, actor)
                if not self._repo.remove_collaborator(entity.id, user_id):
                    return Result.fail(
                        f"User '{user_id}' is not a collaborator on {describe(entity)}.",
                        kind=ErrorKind.NOT_FOUND,
                    )
                self._audit.record(
                    entity, audit.REMOVE_COLLABORATOR, actor,
                    f"{user_id} removed as collaborator from {describe(entity)}",
                )
        except StoreConflict as exc:
            return self._conflict(exc, audit.REMOVE_COLLABORATOR, entity_id, actor)
        logger.info("Removed collaborator %s from %s by %s", user_id, entity.id, actor.id)
        return self.list_collaborators(kind, entity_id, actor)
