"""Store-level guarantees: serialised branching and the all-or-nothing publish swap."""
import sqlite3
import threading

import pytest

from app import container
from app.domain.common.errors import ErrorKind, StoreConflict
from app.domain.entity.models import EntityKind
from app.core import config
from app.persistence.db import connection, get_connection

COURSE = EntityKind.COURSE
DATA = {
    "name": "Operating Systems",
    "description": "Processes, memory management and file systems.",
    "credits": 4,
    "semester": 5,
    "degree_code": "BTECH",
}


@pytest.fixture
def active_course(actors):
    versions = container.get_version_app_service()
    approvals = container.get_approval_app_service()
    entity = versions.create_entity(COURSE, actors["faculty_a"], "CS301", DATA).value
    assert approvals.submit(COURSE, entity.id, actors["faculty_a"]).is_success
    assert approvals.approve(COURSE, entity.id, actors["hod_a"]).is_success
    assert approvals.publish(COURSE, entity.id, actors["hod_a"]).is_success
    return entity


def _family_statuses(code):
    with connection() as conn:
        rows = conn.execute(
            "SELECT version, status FROM entities WHERE code = ? ORDER BY version", (code,)
        ).fetchall()
    return [(r["version"], r["status"]) for r in rows]


def test_only_one_concurrent_create_version_succeeds(active_course, actors):
    svc = container.get_version_app_service()
    callers = [actors["faculty_a"], actors["admin"]] * 4
    barrier = threading.Barrier(len(callers))
    results = []
    lock = threading.Lock()

    def branch(actor):
        barrier.wait()
        result = svc.create_version(COURSE, active_course.id, actor)
        with lock:
            results.append(result)

    threads = [threading.Thread(target=branch, args=(a,)) for a in callers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    succeeded = [r for r in results if r.is_success]
    assert len(succeeded) == 1
    assert all(r.kind == ErrorKind.CONFLICT for r in results if not r.is_success)
    assert _family_statuses("CS301") == [(1, "active"), (2, "draft")]


def test_failed_publish_leaves_old_version_active(active_course, actors, monkeypatch):
    versions = container.get_version_app_service()
    approvals = container.get_approval_app_service()
    v2 = versions.create_version(COURSE, active_course.id, actors["faculty_a"]).value
    approvals.submit(COURSE, v2.id, actors["faculty_a"])
    approvals.approve(COURSE, v2.id, actors["hod_a"])

    repo = container.get_entity_repo()
    real_update = repo.update

    def crash_on_activate(entity):
        if entity.id == v2.id and entity.status == "active":
            raise RuntimeError("store went away")
        real_update(entity)

    with monkeypatch.context() as m:
        m.setattr(repo, "update", crash_on_activate)
        with pytest.raises(RuntimeError):
            approvals.publish(COURSE, v2.id, actors["hod_a"])

    assert _family_statuses("CS301") == [(1, "active"), (2, "approved")]
    actions = [e.action for e in container.get_audit_repo().list_events("course", active_course.id)]
    assert "archive" not in actions

    # The same publish goes through once the store is healthy again
    result = approvals.publish(COURSE, v2.id, actors["hod_a"])
    assert result.is_success
    assert _family_statuses("CS301") == [(1, "archived"), (2, "active")]


def test_stale_row_version_is_reported_as_conflict(active_course, actors):
    repo = container.get_entity_repo()
    first = repo.get_by_id(active_course.id)
    second = repo.get_by_id(active_course.id)
    first.payload.credits = 3
    repo.update(first)

    second.payload.credits = 2
    svc = container.get_version_app_service()
    with pytest.raises(StoreConflict):
        repo.update(second)
    assert svc.get_entity(COURSE, active_course.id, actors["admin"]).value.payload.credits == 3


def test_store_indexes_refuse_second_in_flight_row(active_course, actors):
    svc = container.get_version_app_service()
    v2 = svc.create_version(COURSE, active_course.id, actors["faculty_a"]).value
    with connection() as conn:
        with pytest.raises(sqlite3.IntegrityError) as info:
            conn.execute(
                "UPDATE entities SET status = 'draft' WHERE id = ?", (active_course.id,)
            )
    assert "UNIQUE" in str(info.value)
    assert v2.version == 2


def test_held_write_lock_is_a_retryable_conflict(actors, monkeypatch):
    versions = container.get_version_app_service()
    approvals = container.get_approval_app_service()
    draft = versions.create_entity(COURSE, actors["faculty_a"], "CS302", DATA).value
    monkeypatch.setattr(config, "DB_BUSY_TIMEOUT_SECONDS", 0.1)

    holder = get_connection()
    holder.execute("BEGIN IMMEDIATE")
    try:
        result = approvals.submit(COURSE, draft.id, actors["faculty_a"])
    finally:
        holder.rollback()
        holder.close()

    assert result.kind == ErrorKind.CONFLICT
    assert result.details["retryable"] is True
    assert _family_statuses("CS302") == [(1, "draft")]
    assert approvals.submit(COURSE, draft.id, actors["faculty_a"]).is_success
