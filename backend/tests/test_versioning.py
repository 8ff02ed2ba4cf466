"""Branching algorithm and family bookkeeping, on in-memory families."""
from app.domain.common.errors import ErrorKind
from app.domain.entity import versioning
from app.domain.entity.models import Actor, CoursePayload, EntityKind, VersionedEntity

AUTHOR = Actor(id="f9", role="faculty", department_id="CSE")
NOW = "2024-06-01T10:00:00+00:00"


def member(version, status, latest=False):
    return VersionedEntity(
        id=f"v{version}",
        kind=EntityKind.COURSE,
        code="MA110",
        version=version,
        status=status,
        department_id="CSE",
        creator_id="f1",
        payload=CoursePayload(name="Calculus", prerequisites=["MA100"]),
        created_at=NOW,
        updated_at=NOW,
        is_latest_version=latest,
    )


def test_branch_from_active_copies_payload_and_links_parent():
    source = member(1, "active", latest=True)
    plan = versioning.branch(source, [source], AUTHOR, NOW).value

    draft = plan.new_draft
    assert draft.version == 2
    assert draft.status == "draft"
    assert draft.parent_entity_id == source.id
    assert draft.creator_id == AUTHOR.id
    assert draft.is_latest_version
    assert draft.payload == source.payload
    assert draft.payload.prerequisites is not source.payload.prerequisites
    assert plan.demoted == [source]
    assert not source.is_latest_version
    assert source.status == "active"


def test_branch_refused_while_family_has_in_flight_version():
    active = member(1, "active")
    for status, label in [
        ("draft", "a draft version"),
        ("pending_approval", "a version pending approval"),
        ("approved", "an approved version"),
    ]:
        pending = member(2, status, latest=True)
        result = versioning.branch(active, [active, pending], AUTHOR, NOW)
        assert result.kind == ErrorKind.CONFLICT
        assert label in result.error
        assert result.details["existing_version"] == {"id": "v2", "version": 2, "status": status}
        assert pending.is_latest_version


def test_branch_from_approved_source_conflicts_with_itself():
    approved = member(1, "approved", latest=True)
    result = versioning.branch(approved, [approved], AUTHOR, NOW)
    assert result.kind == ErrorKind.CONFLICT


def test_branch_from_draft_is_invalid():
    draft = member(1, "draft", latest=True)
    result = versioning.branch(draft, [draft], AUTHOR, NOW)
    assert result.kind == ErrorKind.INVALID_TRANSITION


def test_version_number_skips_past_archived_versions():
    family = [member(1, "archived"), member(2, "active", latest=True), member(3, "archived")]
    plan = versioning.branch(family[1], family, AUTHOR, NOW).value
    assert plan.new_draft.version == 4


def test_latest_prefers_highest_live_version():
    family = [member(1, "active"), member(2, "archived", latest=True)]
    changed = versioning.reassign_latest(family)
    assert family[0].is_latest_version
    assert not family[1].is_latest_version
    assert set(m.id for m in changed) == {"v1", "v2"}


def test_latest_falls_back_to_highest_when_all_archived():
    family = [member(1, "archived"), member(2, "archived")]
    versioning.reassign_latest(family)
    assert [m.is_latest_version for m in family] == [False, True]


def test_has_new_pending_version_ignores_self():
    active = member(1, "active")
    draft = member(2, "draft", latest=True)
    versioning.annotate([active, draft])
    assert active.has_new_pending_version
    assert not draft.has_new_pending_version
