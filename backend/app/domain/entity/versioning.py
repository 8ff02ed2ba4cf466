"""Version branching and family bookkeeping: pure functions over the rows of one family."""
from __future__ import annotations
import copy
import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from app.domain.common.errors import ErrorKind
from app.domain.common.result import Result
from app.domain.entity import rules
from app.domain.entity.models import Actor, VersionedEntity

# How a conflicting in-flight version is described to the caller
_IN_FLIGHT_LABELS = {
    rules.DRAFT: "a draft version",
    rules.PENDING_APPROVAL: "a version pending approval",
    rules.APPROVED: "an approved version",
}


@dataclass
class BranchPlan:
    new_draft: VersionedEntity
    # Existing rows whose is_latest_version flag was cleared
    demoted: List[VersionedEntity] = field(default_factory=list)


def in_flight(family: Iterable[VersionedEntity], exclude_id: Optional[str] = None) -> Optional[VersionedEntity]:
    """The family's in-flight version (draft / pending_approval / approved), if any."""
    for member in family:
        if member.id != exclude_id and member.status in rules.IN_FLIGHT_STATUSES:
            return member
    return None


def has_new_pending_version(entity: VersionedEntity, family: Iterable[VersionedEntity]) -> bool:
    """True if some *other* version of the family is in flight."""
    return in_flight(family, exclude_id=entity.id) is not None


def annotate(family: Sequence[VersionedEntity]) -> Sequence[VersionedEntity]:
    """Fill the derived has_new_pending_version flag on every member."""
    for member in family:
        member.has_new_pending_version = has_new_pending_version(member, family)
    return family


def next_version_number(family: Iterable[VersionedEntity]) -> int:
    return max((m.version for m in family), default=0) + 1


def latest_of(family: Sequence[VersionedEntity]) -> Optional[VersionedEntity]:
    """Highest non-archived version; if everything is archived, the highest version."""
    live = [m for m in family if m.status != rules.ARCHIVED]
    pool = live or list(family)
    if not pool:
        return None
    return max(pool, key=lambda m: m.version)


def reassign_latest(family: Sequence[VersionedEntity]) -> List[VersionedEntity]:
    """Move is_latest_version onto latest_of(family). Returns the members whose flag changed."""
    winner = latest_of(family)
    changed = []
    for member in family:
        flag = winner is not None and member.id == winner.id
        if member.is_latest_version != flag:
            member.is_latest_version = flag
            changed.append(member)
    return changed


def conflict_for(existing: VersionedEntity) -> Result[BranchPlan]:
    label = _IN_FLIGHT_LABELS.get(existing.status, f"a {existing.status} version")
    return Result.fail(
        f"Cannot create a new version: {label} (v{existing.version}) already exists for "
        f"{existing.kind.value} {existing.code}.",
        kind=ErrorKind.CONFLICT,
        details={
            "existing_version": {
                "id": existing.id,
                "version": existing.version,
                "status": existing.status,
            }
        },
    )


def branch(
    source: VersionedEntity,
    family: Sequence[VersionedEntity],
    actor: Actor,
    now: str,
) -> Result[BranchPlan]:
    """
    Produce a new draft from a published version. The source row is left as-is
    apart from losing is_latest_version; the payload is copied verbatim.
    """
    check = rules.validate_branchable(source)
    if not check.is_success:
        return Result.propagate(check)

    # An approved source is itself the family's in-flight version
    existing = in_flight(family)
    if existing is not None:
        return conflict_for(existing)

    new_draft = VersionedEntity(
        id=str(uuid.uuid4()),
        kind=source.kind,
        code=source.code,
        version=next_version_number(family),
        status=rules.DRAFT,
        department_id=source.department_id,
        creator_id=actor.id,
        payload=copy.deepcopy(source.payload),
        created_at=now,
        updated_at=now,
        parent_entity_id=source.id,
        is_latest_version=True,
    )

    demoted = []
    for member in family:
        if member.is_latest_version:
            member.is_latest_version = False
            demoted.append(member)
    return Result.ok(BranchPlan(new_draft=new_draft, demoted=demoted))
