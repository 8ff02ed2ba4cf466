"""Abstract repository interface for the audit trail and message log."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List

from app.domain.audit.models import AuditEvent, Message


class AuditRepository(ABC):
    """Append-only: there is no update or delete."""

    @abstractmethod
    def append_event(self, event: AuditEvent) -> AuditEvent:
        """Store an audit row; returns it with its insertion sequence number."""
        ...

    @abstractmethod
    def append_message(self, message: Message) -> Message:
        ...

    @abstractmethod
    def list_events(self, entity_kind: str, entity_id: str) -> List[AuditEvent]:
        """Oldest first."""
        ...

    @abstractmethod
    def list_messages(self, entity_kind: str, entity_id: str) -> List[Message]:
        """Oldest first."""
        ...
