"""Timeline: merged audit trail and message log, newest first."""
from app.domain.audit.models import AuditEvent, Message
from app.domain.audit.timeline import merge_timeline


def test_equal_timestamps_keep_insertion_order():
    stamp = "2024-03-01T09:00:00+00:00"
    events = [
        AuditEvent("e1", "course", "c1", "submit", "u1", "submitted", stamp, seq=1),
        AuditEvent("e2", "course", "c1", "reject", "u2", "rejected", stamp, seq=3),
    ]
    messages = [Message("m1", "course", "c1", "u1", "please review", stamp, seq=2)]

    oldest_first = merge_timeline(events, messages, newest_first=False)
    assert [t.id for t in oldest_first] == ["e1", "m1", "e2"]
    assert [t.id for t in merge_timeline(events, messages)] == ["e2", "m1", "e1"]


def test_timeline_over_http(client, headers, make_course):
    course = make_course()
    base = f"/course/{course['id']}"
    client.post(f"{base}/submit", json={"message": "First pass, please check outcomes"}, headers=headers["faculty_a"])
    client.post(f"{base}/reject", json={"reason": "Outcomes are missing entirely."}, headers=headers["hod_a"])
    client.post(f"{base}/submit", headers=headers["faculty_a"])
    client.post(f"{base}/approve", json={"message": "Looks good"}, headers=headers["hod_a"])

    resp = client.get(f"{base}/timeline", headers=headers["faculty_a"])
    assert resp.status_code == 200
    timeline = resp.json()

    audit = [t["action"] for t in timeline if t["type"] == "audit"]
    assert audit == ["approve", "submit", "reject", "submit", "create"]

    notes = [t["message"] for t in timeline if t["type"] == "message"]
    assert notes[0] == "Course CS101 v1 approved by HOD: Looks good"
    assert notes[1] == "Course CS101 v1 change requested: Outcomes are missing entirely."
    assert notes[2] == "First pass, please check outcomes"

    stamps = [t["timestamp"] for t in timeline]
    assert stamps == sorted(stamps, reverse=True)


def test_branch_and_publish_are_recorded(client, headers, make_course, walk):
    v1 = make_course()
    walk(v1)
    v2 = client.post(f"/course/{v1['id']}/create-version", headers=headers["faculty_a"]).json()
    walk(v2)

    old = [t.get("action") for t in client.get(f"/course/{v1['id']}/timeline", headers=headers["hod_a"]).json()]
    assert old[0] == "archive"
    new = [t["action"] for t in client.get(f"/course/{v2['id']}/timeline", headers=headers["hod_a"]).json()
           if t.get("action")]
    assert new == ["publish", "approve", "submit", "create_version"]


def test_refused_action_writes_nothing(client, headers, make_course):
    course = make_course()
    before = client.get(f"/course/{course['id']}/timeline", headers=headers["faculty_a"]).json()
    client.post(f"/course/{course['id']}/publish", headers=headers["hod_a"])
    client.post(f"/course/{course['id']}/approve", headers=headers["hod_b"])
    after = client.get(f"/course/{course['id']}/timeline", headers=headers["faculty_a"]).json()
    assert after == before


def test_timeline_of_unknown_entity_is_not_found(client, headers):
    resp = client.get("/course/does-not-exist/timeline", headers=headers["admin"])
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "NotFoundError"


def test_deleted_draft_history_is_admin_only(client, headers, make_course):
    course = make_course()
    resp = client.delete(f"/course/{course['id']}", headers=headers["faculty_a"])
    assert resp.json()["deleted"] is True

    resp = client.get(f"/course/{course['id']}/timeline", headers=headers["admin"])
    assert resp.status_code == 200
    assert [t["action"] for t in resp.json()] == ["delete", "create"]

    resp = client.get(f"/course/{course['id']}/timeline", headers=headers["hod_a"])
    assert resp.status_code == 404


def test_students_cannot_read_history(client, headers, make_course, walk):
    course = make_course()
    base = f"/course/{course['id']}"
    client.post(f"{base}/submit", headers=headers["faculty_a"])
    client.post(f"{base}/reject", json={"reason": "Confidential reviewer remark."}, headers=headers["hod_a"])
    walk(course)

    assert client.get(base, headers=headers["student"]).status_code == 200
    for path in ("timeline", "versions", "can-edit", "collaborators"):
        resp = client.get(f"{base}/{path}", headers=headers["student"])
        assert resp.status_code == 403, path
        assert resp.json()["detail"]["error"] == "PermissionError"
