"""Application service: read side of the audit trail."""
from __future__ import annotations
from typing import List

from app.domain.audit.models import TimelineEntry
from app.domain.audit.timeline import merge_timeline
from app.domain.common.errors import ErrorKind
from app.domain.common.result import Result
from app.domain.entity import rules
from app.domain.entity.models import Actor, EntityKind
from app.persistence.interfaces.audit_repository import AuditRepository
from app.persistence.interfaces.entity_repository import EntityRepository


class TimelineAppService:
    def __init__(self, entities: EntityRepository, audit: AuditRepository):
        self._entities = entities
        self._audit = audit

    def get_timeline(
        self,
        kind: EntityKind,
        entity_id: str,
        actor: Actor,
        newest_first: bool = True,
    ) -> Result[List[TimelineEntry]]:
        """
        Audit events and messages of one version, merged. Once a draft has been hard-deleted
        its log rows remain, and only an admin can still read them.
        """
        not_found = Result.fail(f"{kind.value.capitalize()} '{entity_id}' not found.", kind=ErrorKind.NOT_FOUND)
        entity = self._entities.get_by_id(entity_id)
        if entity is not None and entity.kind != kind:
            return not_found
        if entity is None and not actor.is_admin:
            return not_found
        if entity is not None:
            permission = rules.can_inspect(actor, entity)
            if not permission.is_success:
                return Result.propagate(permission)

        events = self._audit.list_events(kind.value, entity_id)
        messages = self._audit.list_messages(kind.value, entity_id)
        if entity is None and not events and not messages:
            return not_found
        return Result.ok(merge_timeline(events, messages, newest_first=newest_first))
