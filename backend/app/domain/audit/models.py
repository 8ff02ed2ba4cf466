"""Audit trail and message log records: append-only, never updated."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

# Audit actions
CREATE = "create"
UPDATE = "update"
SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
WITHDRAW = "withdraw"
PUBLISH = "publish"
ARCHIVE = "archive"
CREATE_VERSION = "create_version"
DELETE = "delete"
ADD_COLLABORATOR = "add_collaborator"
REMOVE_COLLABORATOR = "remove_collaborator"


@dataclass(frozen=True)
class AuditEvent:
    id: str
    entity_kind: str
    entity_id: str
    action: str
    actor_id: str
    description: Optional[str]
    timestamp: str
    seq: int = 0  # assigned by the store on insert


@dataclass(frozen=True)
class Message:
    id: str
    entity_kind: str
    entity_id: str
    author_id: str
    message: str
    timestamp: str
    seq: int = 0


@dataclass(frozen=True)
class TimelineEntry:
    type: str  # audit | message
    id: str
    entity_id: str
    actor_id: str
    timestamp: str
    seq: int
    action: Optional[str] = None
    description: Optional[str] = None
    message: Optional[str] = None
