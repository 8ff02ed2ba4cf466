"""Collaborators: who may manage them, who may be one, and branching copies them."""


def _profile_id(client, hdrs):
    return client.get("/auth/profile", headers=hdrs).json()["id"]


def test_only_same_department_faculty_can_collaborate(client, headers, make_course):
    course = make_course()
    outsider = _profile_id(client, headers["faculty_b"])
    resp = client.post(f"/course/{course['id']}/collaborators", json={"user_id": outsider}, headers=headers["faculty_a"])
    assert resp.status_code == 400

    student = _profile_id(client, headers["student"])
    resp = client.post(f"/course/{course['id']}/collaborators", json={"user_id": student}, headers=headers["faculty_a"])
    assert resp.status_code == 400


def test_non_creator_faculty_cannot_manage(client, headers, make_course):
    course = make_course()
    colleague = _profile_id(client, headers["faculty_a2"])
    resp = client.post(
        f"/course/{course['id']}/collaborators", json={"user_id": colleague}, headers=headers["faculty_a2"]
    )
    assert resp.status_code == 403

    resp = client.post(f"/course/{course['id']}/collaborators", json={"user_id": colleague}, headers=headers["hod_a"])
    assert resp.status_code == 201


def test_branch_copies_collaborators_and_removal_is_audited(client, headers, make_course, walk):
    v1 = make_course()
    colleague = _profile_id(client, headers["faculty_a2"])
    client.post(f"/course/{v1['id']}/collaborators", json={"user_id": colleague}, headers=headers["faculty_a"])
    walk(v1)

    # A collaborator on v1 may branch it, and stays a collaborator on v2
    resp = client.post(f"/course/{v1['id']}/create-version", headers=headers["faculty_a2"])
    assert resp.status_code == 201
    v2 = resp.json()
    listed = client.get(f"/course/{v2['id']}/collaborators", headers=headers["faculty_a"]).json()
    assert [c["id"] for c in listed] == [colleague]

    resp = client.delete(f"/course/{v2['id']}/collaborators/{colleague}", headers=headers["hod_a"])
    assert resp.status_code == 200
    assert resp.json() == []

    resp = client.delete(f"/course/{v2['id']}/collaborators/{colleague}", headers=headers["hod_a"])
    assert resp.status_code == 404

    actions = [t.get("action") for t in client.get(f"/course/{v2['id']}/timeline", headers=headers["hod_a"]).json()]
    assert actions[0] == "remove_collaborator"
