"""SQLite implementation of AuditRepository."""
from __future__ import annotations
import dataclasses
from typing import List

from app.domain.audit.models import AuditEvent, Message
from app.persistence.db import connection
from app.persistence.interfaces.audit_repository import AuditRepository


def _next_seq(conn) -> int:
    # One counter shared by both logs, so timeline ties resolve in insertion order
    return conn.execute("INSERT INTO log_sequence DEFAULT VALUES").lastrowid


def _row_to_event(row) -> AuditEvent:
    return AuditEvent(
        id=row["id"],
        entity_kind=row["entity_kind"],
        entity_id=row["entity_id"],
        action=row["action"],
        actor_id=row["actor_id"],
        description=row["description"],
        timestamp=row["created_at"],
        seq=row["seq"],
    )


def _row_to_message(row) -> Message:
    return Message(
        id=row["id"],
        entity_kind=row["entity_kind"],
        entity_id=row["entity_id"],
        author_id=row["author_id"],
        message=row["message"],
        timestamp=row["created_at"],
        seq=row["seq"],
    )


class SqliteAuditRepository(AuditRepository):

    def append_event(self, event: AuditEvent) -> AuditEvent:
        with connection() as conn:
            seq = _next_seq(conn)
            conn.execute(
                """
                INSERT INTO audit_events (id, seq, entity_kind, entity_id, action, actor_id, description, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    seq,
                    event.entity_kind,
                    event.entity_id,
                    event.action,
                    event.actor_id,
                    event.description,
                    event.timestamp,
                ),
            )
        return dataclasses.replace(event, seq=seq)

    def append_message(self, message: Message) -> Message:
        with connection() as conn:
            seq = _next_seq(conn)
            conn.execute(
                """
                INSERT INTO messages (id, seq, entity_kind, entity_id, author_id, message, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    seq,
                    message.entity_kind,
                    message.entity_id,
                    message.author_id,
                    message.message,
                    message.timestamp,
                ),
            )
        return dataclasses.replace(message, seq=seq)

    def list_events(self, entity_kind: str, entity_id: str) -> List[AuditEvent]:
        with connection() as conn:
            rows = conn.execute(
                "SELECT * FROM audit_events WHERE entity_kind = ? AND entity_id = ? ORDER BY seq ASC",
                (entity_kind, entity_id),
            ).fetchall()
        return [_row_to_event(r) for r in rows]

    def list_messages(self, entity_kind: str, entity_id: str) -> List[Message]:
        with connection() as conn:
            rows = conn.execute(
                "SELECT * FROM messages WHERE entity_kind = ? AND entity_id = ? ORDER BY seq ASC",
                (entity_kind, entity_id),
            ).fetchall()
        return [_row_to_message(r) for r in rows]
