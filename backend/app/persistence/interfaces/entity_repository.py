"""Abstract repository interface for versioned curriculum entities (the Entity Store)."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import ContextManager, Dict, List, Optional, Tuple

from app.domain.entity.models import EntityKind, VersionedEntity


class EntityRepository(ABC):

    @abstractmethod
    def transaction(self) -> ContextManager[object]:
        """Serialised write scope; every repository call made inside joins it. Rolls back on error."""
        ...

    @abstractmethod
    def insert(self, entity: VersionedEntity) -> None:
        """Insert a new version row. Raises StoreConflict on a family uniqueness violation."""
        ...

    @abstractmethod
    def update(self, entity: VersionedEntity) -> None:
        """
        Write back a loaded row, guarded by its row_version stamp, and bump the stamp.
        Raises StoreConflict if the row changed since it was read or a family index is violated.
        """
        ...

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Physically remove a version row. Returns True if deleted."""
        ...

    @abstractmethod
    def get_by_id(self, entity_id: str) -> Optional[VersionedEntity]:
        ...

    @abstractmethod
    def get_family(self, kind: EntityKind, code: str) -> List[VersionedEntity]:
        """All versions sharing kind + code, ordered by version ASC."""
        ...

    @abstractmethod
    def code_exists(self, kind: EntityKind, code: str) -> bool:
        ...

    @abstractmethod
    def list_entities(
        self,
        kind: EntityKind,
        department_id: Optional[str] = None,
        statuses: Optional[List[str]] = None,
        latest_only: bool = False,
        code: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[VersionedEntity], int]:
        """One page of matching rows (newest first) plus the total match count."""
        ...

    @abstractmethod
    def count_by_status(self, kind: EntityKind, department_id: Optional[str] = None) -> Dict[str, int]:
        """Row counts grouped by status; statuses with no rows are absent."""
        ...

    @abstractmethod
    def families_with_in_flight(self, kind: EntityKind, codes: List[str]) -> Dict[str, str]:
        """For the given codes, map code -> id of that family's in-flight version."""
        ...

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    @abstractmethod
    def get_collaborator_ids(self, entity_id: str) -> List[str]:
        ...

    @abstractmethod
    def add_collaborator(self, entity_id: str, user_id: str) -> bool:
        """Returns False if the user already collaborates on this version."""
        ...

    @abstractmethod
    def remove_collaborator(self, entity_id: str, user_id: str) -> bool:
        ...

    @abstractmethod
    def copy_collaborators(self, source_entity_id: str, target_entity_id: str) -> None:
        ...
