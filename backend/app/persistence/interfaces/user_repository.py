"""Abstract repository interface for user lookups (identity is managed outside the engine)."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional


class UserRepository(ABC):

    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[dict]:
        ...

    @abstractmethod
    def create(
        self,
        username: str,
        password_hash: str,
        role: str,
        department_id: Optional[str] = None,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> dict:
        ...
