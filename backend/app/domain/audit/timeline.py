"""Merges the audit trail and message log of one entity into a single timeline."""
from __future__ import annotations
from typing import Iterable, List

from app.domain.audit.models import AuditEvent, Message, TimelineEntry


def merge_timeline(
    events: Iterable[AuditEvent],
    messages: Iterable[Message],
    newest_first: bool = True,
) -> List[TimelineEntry]:
    """Sorted by timestamp; entries with equal timestamps keep insertion order (seq)."""
    entries = [
        TimelineEntry(
            type="audit",
            id=e.id,
            entity_id=e.entity_id,
            actor_id=e.actor_id,
            timestamp=e.timestamp,
            seq=e.seq,
            action=e.action,
            description=e.description,
        )
        for e in events
    ]
    entries.extend(
        TimelineEntry(
            type="message",
            id=m.id,
            entity_id=m.entity_id,
            actor_id=m.author_id,
            timestamp=m.timestamp,
            seq=m.seq,
            message=m.message,
        )
        for m in messages
    )
    entries.sort(key=lambda t: (t.timestamp, t.seq), reverse=newest_first)
    return entries
