"""Shared plumbing for the entity application services."""
from __future__ import annotations
import logging
from typing import Any

from app.domain.common.errors import ErrorKind, StoreConflict
from app.domain.common.result import Result
from app.domain.entity import rules
from app.domain.entity.models import Actor, EntityKind, VersionedEntity
from app.domain.entity.service import LifecycleDomainService
from app.application.audit_recorder import AuditRecorder
from app.persistence.interfaces.entity_repository import EntityRepository

logger = logging.getLogger(__name__)


def describe(entity: VersionedEntity) -> str:
    return f"{entity.kind.value.capitalize()} {entity.code} v{entity.version}"


class EntityAppServiceBase:
    def __init__(self, repo: EntityRepository, audit: AuditRecorder):
        self._repo = repo
        self._audit = audit
        self._domain = LifecycleDomainService()

    def _load(self, kind: EntityKind, entity_id: str) -> Result[VersionedEntity]:
        entity = self._repo.get_by_id(entity_id)
        if entity is None or entity.kind != kind:
            return Result.fail(f"{kind.value.capitalize()} '{entity_id}' not found.", kind=ErrorKind.NOT_FOUND)
        return Result.ok(entity)

    def _load_visible(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[VersionedEntity]:
        loaded = self._load(kind, entity_id)
        if not loaded.is_success:
            return loaded
        permission = rules.can_read(actor, loaded.value)
        if not permission.is_success:
            return Result.propagate(permission)
        return loaded

    def _load_inspectable(self, kind: EntityKind, entity_id: str, actor: Actor) -> Result[VersionedEntity]:
        loaded = self._load(kind, entity_id)
        if not loaded.is_success:
            return loaded
        permission = rules.can_inspect(actor, loaded.value)
        if not permission.is_success:
            return Result.propagate(permission)
        return loaded

    def _load_in_family(self, kind: EntityKind, entity_id: str) -> Result[tuple[VersionedEntity, list[VersionedEntity]]]:
        """The entity plus its whole family, with the entity being the same object as its family member."""
        loaded = self._load(kind, entity_id)
        if not loaded.is_success:
            return Result.propagate(loaded)
        family = self._repo.get_family(kind, loaded.value.code)
        entity = next(m for m in family if m.id == entity_id)
        return Result.ok((entity, family))

    def _refused(self, result: Result[Any], action: str, entity_id: str, actor: Actor) -> Result[Any]:
        logger.warning(
            "%s refused for %s by %s (%s): %s",
            action, entity_id, actor.id, result.kind.value if result.kind else "?", result.error,
        )
        return Result.propagate(result)

    def _conflict(self, exc: StoreConflict, action: str, entity_id: str, actor: Actor) -> Result[Any]:
        return self._refused(
            Result.fail(exc.message, kind=ErrorKind.CONFLICT, details=exc.details),
            action, entity_id, actor,
        )
