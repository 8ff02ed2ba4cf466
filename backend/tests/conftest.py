"""Shared fixtures: a fresh SQLite file per test, seeded users and their tokens."""
import pytest
from fastapi.testclient import TestClient

from app import container
from app.api.auth import create_token, hash_password
from app.core import config
from app.domain.entity.models import Actor
from app.persistence.db import init_db

DEPT_A = "CSE"
DEPT_B = "ECE"

COURSE = {
    "code": "CS101",
    "name": "Introduction to Programming",
    "description": "Variables, control flow and functions in Python.",
    "credits": 4,
    "semester": 1,
    "degree_code": "BTECH-CSE",
}

# username -> (role, department)
USERS = {
    "faculty_a": ("faculty", DEPT_A),
    "faculty_a2": ("faculty", DEPT_A),
    "hod_a": ("hod", DEPT_A),
    "faculty_b": ("faculty", DEPT_B),
    "hod_b": ("hod", DEPT_B),
    "student": ("student", None),
}


@pytest.fixture(scope="session")
def password_hash():
    return hash_password("secret-pass")


@pytest.fixture(autouse=True)
def db(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_PATH", str(tmp_path / "curriculum.db"))
    container.reset()
    init_db()
    yield config.DATABASE_PATH
    container.reset()


@pytest.fixture
def users(db, password_hash):
    repo = container.get_user_repo()
    created = {"admin": repo.get_by_username(config.ADMIN_USERNAME)}
    for username, (role, department) in USERS.items():
        created[username] = repo.create(username, password_hash, role, department, display_name=username)
    return created


@pytest.fixture
def actors(users):
    return {
        name: Actor(id=u["id"], role=u["role"], department_id=u["department_id"])
        for name, u in users.items()
    }


@pytest.fixture
def headers(users):
    return {name: {"Authorization": f"Bearer {create_token(u)}"} for name, u in users.items()}


@pytest.fixture
def client(db):
    from app.main import app
    return TestClient(app)


@pytest.fixture
def make_course(client, headers):
    """POST a course as faculty_a (by default) and return the response JSON."""
    def _make(as_user="faculty_a", **overrides):
        resp = client.post("/course", json={**COURSE, **overrides}, headers=headers[as_user])
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture
def walk(client, headers):
    """Drive an entity through submit → approve (→ publish) over HTTP."""
    def _walk(entity, to="active", kind="course"):
        base = f"/{kind}/{entity['id']}"
        steps = [("submit", "faculty_a"), ("approve", "hod_a")]
        if to == "active":
            steps.append(("publish", "hod_a"))
        body = None
        for action, user in steps:
            resp = client.post(f"{base}/{action}", headers=headers[user])
            assert resp.status_code == 200, resp.text
            body = resp.json()
        return body
    return _walk
