"""Write side of the audit trail: one event per applied operation, plus free-text notes."""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional

from app.domain.audit.models import AuditEvent, Message
from app.domain.entity.models import Actor, VersionedEntity
from app.persistence.interfaces.audit_repository import AuditRepository


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditRecorder:
    """Called inside the same transaction as the change it records."""

    def __init__(self, repo: AuditRepository):
        self._repo = repo

    def record(
        self,
        entity: VersionedEntity,
        action: str,
        actor: Actor,
        description: Optional[str] = None,
    ) -> AuditEvent:
        return self._repo.append_event(
            AuditEvent(
                id=str(uuid.uuid4()),
                entity_kind=entity.kind.value,
                entity_id=entity.id,
                action=action,
                actor_id=actor.id,
                description=description,
                timestamp=_now_iso(),
            )
        )

    def note(self, entity: VersionedEntity, actor: Actor, text: str) -> Message:
        return self._repo.append_message(
            Message(
                id=str(uuid.uuid4()),
                entity_kind=entity.kind.value,
                entity_id=entity.id,
                author_id=actor.id,
                message=text,
                timestamp=_now_iso(),
            )
        )
