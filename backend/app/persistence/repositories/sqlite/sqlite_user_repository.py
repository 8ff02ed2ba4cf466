"""SQLite implementation of UserRepository."""
from __future__ import annotations
from typing import Optional

from app.persistence.db import connection, new_id, now_iso
from app.persistence.interfaces.user_repository import UserRepository


class SqliteUserRepository(UserRepository):

    def get_by_id(self, user_id: str) -> Optional[dict]:
        with connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def get_by_username(self, username: str) -> Optional[dict]:
        with connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        return dict(row) if row else None

    def create(
        self,
        username: str,
        password_hash: str,
        role: str,
        department_id: Optional[str] = None,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> dict:
        user = {
            "id": new_id(),
            "username": username,
            "password_hash": password_hash,
            "role": role,
            "department_id": department_id,
            "display_name": display_name,
            "email": email,
            "created_at": now_iso(),
        }
        with connection() as conn:
            conn.execute(
                """
                INSERT INTO users (id, username, password_hash, role, department_id, display_name, email, created_at)
                VALUES (:id, :username, :password_hash, :role, :department_id, :display_name, :email, :created_at)
                """,
                user,
            )
        return user
