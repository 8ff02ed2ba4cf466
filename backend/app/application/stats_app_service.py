"""Application service: per-status counts for dashboards, computed on every read."""
from __future__ import annotations
from typing import Dict

from app.domain.common.errors import ErrorKind
from app.domain.common.result import Result
from app.domain.entity import rules
from app.domain.entity.models import Actor, EntityKind
from app.persistence.interfaces.entity_repository import EntityRepository

# Statuses reported on the dashboard; archived rows are history, not workload
REPORTED_STATUSES = (rules.DRAFT, rules.PENDING_APPROVAL, rules.APPROVED, rules.ACTIVE)

_SECTION = {
    EntityKind.COURSE: "courses",
    EntityKind.DEGREE: "degrees",
}


class StatsAppService:
    def __init__(self, repo: EntityRepository):
        self._repo = repo

    def get_stats(self, actor: Actor) -> Result[Dict[str, Dict[str, int]]]:
        if actor.role == rules.STUDENT:
            return Result.fail("Students cannot view curriculum statistics.", kind=ErrorKind.PERMISSION)
        department_id = None if actor.is_admin else actor.department_id
        if not actor.is_admin and not department_id:
            return Result.fail("Caller has no department.", kind=ErrorKind.PERMISSION)

        stats: Dict[str, Dict[str, int]] = {}
        for kind, section in _SECTION.items():
            counts = self._repo.count_by_status(kind, department_id=department_id)
            stats[section] = {status: counts.get(status, 0) for status in REPORTED_STATUSES}
        return Result.ok(stats)
