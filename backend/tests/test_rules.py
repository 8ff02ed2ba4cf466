"""Domain tests: transition table, permission guards and payload validation (no I/O)."""
import pytest

from app.domain.common.errors import ErrorKind
from app.domain.entity import rules
from app.domain.entity.models import Actor, CoursePayload, DegreePayload, EntityKind, VersionedEntity
from app.domain.entity.service import LifecycleDomainService

FACULTY = Actor(id="f1", role="faculty", department_id="CSE")
COLLAB = Actor(id="f2", role="faculty", department_id="CSE")
HOD = Actor(id="h1", role="hod", department_id="CSE")
OTHER_HOD = Actor(id="h2", role="hod", department_id="ECE")
ADMIN = Actor(id="a1", role="admin")
STUDENT = Actor(id="s1", role="student")


def course(status="draft", version=1, **payload):
    data = {
        "name": "Data Structures",
        "description": "Lists, trees, graphs and their algorithms.",
        "credits": 4,
        "semester": 3,
        "degree_code": "BTECH",
    }
    data.update(payload)
    return VersionedEntity(
        id=f"c{version}",
        kind=EntityKind.COURSE,
        code="CS201",
        version=version,
        status=status,
        department_id="CSE",
        creator_id=FACULTY.id,
        payload=CoursePayload(**data),
        created_at="2024-01-01T00:00:00+00:00",
        updated_at="2024-01-01T00:00:00+00:00",
    )


# ------------------------------------------------------------------
# Transition table
# ------------------------------------------------------------------
@pytest.mark.parametrize("status,action,expected", [
    ("draft", "submit", "pending_approval"),
    ("pending_approval", "approve", "approved"),
    ("pending_approval", "reject", "draft"),
    ("approved", "publish", "active"),
    ("approved", "withdraw", "draft"),
    ("active", "archive", "archived"),
])
def test_allowed_transitions(status, action, expected):
    result = rules.validate_transition(course(status), action)
    assert result.is_success
    assert result.value == expected


@pytest.mark.parametrize("status,action", [
    ("draft", "approve"),
    ("draft", "publish"),
    ("pending_approval", "publish"),
    ("approved", "approve"),
    ("active", "submit"),
    ("active", "withdraw"),
    ("archived", "publish"),
    ("archived", "submit"),
])
def test_refused_transitions_name_current_status(status, action):
    result = rules.validate_transition(course(status), action)
    assert not result.is_success
    assert result.kind == ErrorKind.INVALID_TRANSITION
    assert result.details == {"current_status": status, "action": action}


def test_archived_is_terminal():
    archived = course("archived")
    for action in (rules.SUBMIT, rules.APPROVE, rules.REJECT, rules.WITHDRAW, rules.PUBLISH, rules.ARCHIVE):
        assert not rules.validate_transition(archived, action).is_success


# ------------------------------------------------------------------
# Permissions
# ------------------------------------------------------------------
def test_author_is_creator_or_collaborator():
    entity = course()
    assert rules.can_author(FACULTY, entity, []).is_success
    assert not rules.can_author(COLLAB, entity, []).is_success
    assert rules.can_author(COLLAB, entity, [COLLAB.id]).is_success
    assert rules.can_author(ADMIN, entity, []).is_success


def test_other_department_cannot_author_even_as_collaborator():
    outsider = Actor(id="x", role="faculty", department_id="ECE")
    result = rules.can_author(outsider, course(), [outsider.id])
    assert result.kind == ErrorKind.PERMISSION


def test_review_needs_hod_of_department():
    entity = course("pending_approval")
    assert rules.can_review(HOD, entity).is_success
    assert rules.can_review(ADMIN, entity).is_success
    assert rules.can_review(FACULTY, entity).kind == ErrorKind.PERMISSION
    assert rules.can_review(OTHER_HOD, entity).kind == ErrorKind.PERMISSION


def test_students_read_only_active():
    assert not rules.can_read(STUDENT, course("draft")).is_success
    assert rules.can_read(STUDENT, course("active")).is_success
    assert rules.can_inspect(STUDENT, course("active")).kind == ErrorKind.PERMISSION
    assert rules.can_inspect(FACULTY, course("active")).is_success


def test_admin_must_name_department():
    assert not rules.can_create(ADMIN, None).is_success
    assert rules.can_create(ADMIN, "ECE").value == "ECE"
    assert rules.can_create(FACULTY, None).value == "CSE"
    assert rules.can_create(FACULTY, "ECE").kind == ErrorKind.PERMISSION
    assert rules.can_create(STUDENT, None).kind == ErrorKind.PERMISSION


# ------------------------------------------------------------------
# Payload validation
# ------------------------------------------------------------------
def test_codes_are_upper_cased_and_checked():
    assert rules.normalize_code(EntityKind.COURSE, " cs101 ").value == "CS101"
    assert not rules.normalize_code(EntityKind.COURSE, "CS").is_success
    assert not rules.normalize_code(EntityKind.COURSE, "CS 101").is_success
    assert rules.normalize_code(EntityKind.DEGREE, "BE").is_success


def test_credit_range():
    result = rules.validate_payload(EntityKind.COURSE, course(credits=11).payload)
    assert result.kind == ErrorKind.VALIDATION
    assert result.details == {"field": "credits"}


def test_completeness_only_checked_on_submit():
    payload = CoursePayload(name="Draft Only")
    assert rules.validate_payload(EntityKind.COURSE, payload).is_success
    result = rules.validate_payload(EntityKind.COURSE, payload, complete=True)
    assert not result.is_success
    assert result.details["missing"] == ["description", "credits", "semester", "degree_code"]


def test_blank_text_counts_as_missing_on_submit():
    payload = course(degree_code="   ").payload
    assert rules.validate_payload(EntityKind.COURSE, payload).is_success
    result = rules.validate_payload(EntityKind.COURSE, payload, complete=True)
    assert result.details["missing"] == ["degree_code"]


def test_description_minimum_applies_only_when_complete():
    payload = course(description="Too short").payload
    assert rules.validate_payload(EntityKind.COURSE, payload).is_success
    result = rules.validate_payload(EntityKind.COURSE, payload, complete=True)
    assert result.details == {"field": "description"}


def test_degree_requires_duration_on_submit():
    payload = DegreePayload(name="Bachelor of Science")
    result = rules.validate_payload(EntityKind.DEGREE, payload, complete=True)
    assert result.details["missing"] == ["duration_years"]


def test_patch_refuses_identity_fields():
    result = rules.validate_patch(EntityKind.COURSE, {"status": "active", "name": "x"})
    assert not result.is_success
    assert result.details["fields"] == ["status"]


@pytest.mark.parametrize("reason,ok", [
    ("too short", False),
    ("Needs clearer outcomes", True),
    ("x" * 500, True),
    ("x" * 501, False),
    (None, False),
])
def test_rejection_reason_length(reason, ok):
    assert rules.validate_rejection_reason(reason).is_success is ok


# ------------------------------------------------------------------
# Domain service
# ------------------------------------------------------------------
def test_failed_guard_leaves_entity_untouched():
    svc = LifecycleDomainService()
    entity = course("pending_approval")
    before = entity.updated_at
    result = svc.reject(entity, "short", HOD)
    assert not result.is_success
    assert entity.status == "pending_approval"
    assert entity.rejection_reason is None
    assert entity.updated_at == before


def test_submit_then_approve_sets_stamps_once():
    svc = LifecycleDomainService()
    entity = course()
    svc.submit(entity, FACULTY)
    first_submitted = entity.submitted_at
    assert entity.status == "pending_approval"

    svc.reject(entity, "Add assessment methods please", HOD)
    assert entity.status == "draft"
    assert entity.rejection_reason == "Add assessment methods please"

    svc.submit(entity, FACULTY)
    assert entity.submitted_at == first_submitted
    assert entity.rejection_reason == "Add assessment methods please"

    result = svc.approve(entity, HOD)
    assert result.is_success
    assert entity.approver_id == HOD.id
    assert entity.approved_at is not None
    assert entity.rejection_reason is None


def test_edit_only_in_draft():
    svc = LifecycleDomainService()
    result = svc.edit_draft(course("approved"), {"credits": 3}, FACULTY)
    assert result.kind == ErrorKind.INVALID_TRANSITION
    assert result.details["current_status"] == "approved"


def test_publish_archives_active_sibling():
    svc = LifecycleDomainService()
    v1 = course("active", version=1)
    v2 = course("approved", version=2)
    v2.parent_entity_id = v1.id
    v1.is_latest_version = False
    plan = svc.publish(v2, [v1, v2], HOD).value
    assert plan.archived is v1
    assert v1.status == "archived"
    assert v2.status == "active"
    assert v2.is_latest_version and not v1.is_latest_version


def test_delete_never_approved_is_hard():
    svc = LifecycleDomainService()
    entity = course("draft")
    plan = svc.plan_delete(entity, [entity], FACULTY).value
    assert plan.hard_delete


def test_delete_after_approval_archives():
    svc = LifecycleDomainService()
    entity = course("approved")
    entity.approved_at = "2024-02-01T00:00:00+00:00"
    plan = svc.plan_delete(entity, [entity], HOD).value
    assert not plan.hard_delete
    assert entity.status == "archived"


def test_active_cannot_be_deleted():
    svc = LifecycleDomainService()
    result = svc.plan_delete(course("active"), [], ADMIN)
    assert result.kind == ErrorKind.INVALID_TRANSITION
