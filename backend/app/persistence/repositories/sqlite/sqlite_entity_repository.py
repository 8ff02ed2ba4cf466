"""SQLite implementation of EntityRepository."""
from __future__ import annotations
import json
import logging
import sqlite3
from typing import ContextManager, Dict, List, Optional, Tuple

from app.domain.common.errors import StoreConflict
from app.domain.entity import rules
from app.domain.entity.models import (
    EntityKind,
    VersionedEntity,
    payload_from_dict,
    payload_to_dict,
)
from app.persistence.db import connection, now_iso, transaction
from app.persistence.interfaces.entity_repository import EntityRepository

logger = logging.getLogger(__name__)

_IN_FLIGHT_SQL = "('draft', 'pending_approval', 'approved')"


def _row_to_entity(row) -> VersionedEntity:
    kind = EntityKind(row["kind"])
    return VersionedEntity(
        id=row["id"],
        kind=kind,
        code=row["code"],
        version=row["version"],
        status=row["status"],
        department_id=row["department_id"],
        creator_id=row["creator_id"],
        payload=payload_from_dict(kind, json.loads(row["payload"] or "{}")),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        parent_entity_id=row["parent_entity_id"],
        is_latest_version=bool(row["is_latest_version"]),
        approver_id=row["approver_id"],
        updater_id=row["updater_id"],
        rejection_reason=row["rejection_reason"],
        submitted_at=row["submitted_at"],
        approved_at=row["approved_at"],
        row_version=row["row_version"],
    )


def _entity_params(entity: VersionedEntity) -> dict:
    return {
        "id": entity.id,
        "kind": entity.kind.value,
        "code": entity.code,
        "version": entity.version,
        "parent_entity_id": entity.parent_entity_id,
        "is_latest_version": int(entity.is_latest_version),
        "status": entity.status,
        "department_id": entity.department_id,
        "creator_id": entity.creator_id,
        "approver_id": entity.approver_id,
        "updater_id": entity.updater_id,
        "rejection_reason": entity.rejection_reason,
        "payload": json.dumps(payload_to_dict(entity.payload)),
        "created_at": entity.created_at,
        "submitted_at": entity.submitted_at,
        "approved_at": entity.approved_at,
        "updated_at": entity.updated_at,
        "row_version": entity.row_version,
    }


def _integrity_conflict(entity: VersionedEntity, exc: sqlite3.IntegrityError) -> StoreConflict:
    text = str(exc)
    if "entities.version" in text:
        reason = "this version number already exists in the family"
    elif "entities.kind, entities.code" in text:
        reason = "the family already has a version in that status"
    else:
        reason = "the family constraints were violated"
    logger.warning("Store rejected write for %s %s v%s: %s", entity.kind.value, entity.code, entity.version, text)
    return StoreConflict(
        f"Conflicting concurrent change to {entity.kind.value} {entity.code}: {reason}.",
        details={"code": entity.code, "version": entity.version},
    )


class SqliteEntityRepository(EntityRepository):

    def transaction(self) -> ContextManager[sqlite3.Connection]:
        return transaction()

    def insert(self, entity: VersionedEntity) -> None:
        with connection() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO entities (
                        id, kind, code, version, parent_entity_id, is_latest_version,
                        status, department_id, creator_id, approver_id, updater_id,
                        rejection_reason, payload, created_at, submitted_at, approved_at,
                        updated_at, row_version
                    ) VALUES (
                        :id, :kind, :code, :version, :parent_entity_id, :is_latest_version,
                        :status, :department_id, :creator_id, :approver_id, :updater_id,
                        :rejection_reason, :payload, :created_at, :submitted_at, :approved_at,
                        :updated_at, :row_version
                    )
                    """,
                    _entity_params(entity),
                )
            except sqlite3.IntegrityError as exc:
                raise _integrity_conflict(entity, exc) from exc

    def update(self, entity: VersionedEntity) -> None:
        with connection() as conn:
            try:
                cur = conn.execute(
                    """
                    UPDATE entities SET
                        is_latest_version = :is_latest_version,
                        status            = :status,
                        approver_id       = :approver_id,
                        updater_id        = :updater_id,
                        rejection_reason  = :rejection_reason,
                        payload           = :payload,
                        submitted_at      = :submitted_at,
                        approved_at       = :approved_at,
                        updated_at        = :updated_at,
                        row_version       = row_version + 1
                    WHERE id = :id AND row_version = :row_version
                    """,
                    _entity_params(entity),
                )
            except sqlite3.IntegrityError as exc:
                raise _integrity_conflict(entity, exc) from exc
        if cur.rowcount == 0:
            logger.warning(
                "Stale write on %s %s v%s (row_version %s)",
                entity.kind.value, entity.code, entity.version, entity.row_version,
            )
            raise StoreConflict(
                f"{entity.kind.value.capitalize()} {entity.code} v{entity.version} was modified concurrently; reload and retry.",
                details={"id": entity.id, "row_version": entity.row_version},
            )
        entity.row_version += 1

    def delete(self, entity_id: str) -> bool:
        with connection() as conn:
            cur = conn.execute("DELETE FROM entities WHERE id = ?", (entity_id,))
        return cur.rowcount > 0

    def get_by_id(self, entity_id: str) -> Optional[VersionedEntity]:
        with connection() as conn:
            row = conn.execute("SELECT * FROM entities WHERE id = ?", (entity_id,)).fetchone()
        return _row_to_entity(row) if row else None

    def get_family(self, kind: EntityKind, code: str) -> List[VersionedEntity]:
        with connection() as conn:
            rows = conn.execute(
                "SELECT * FROM entities WHERE kind = ? AND code = ? ORDER BY version ASC",
                (kind.value, code),
            ).fetchall()
        return [_row_to_entity(r) for r in rows]

    def code_exists(self, kind: EntityKind, code: str) -> bool:
        with connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM entities WHERE kind = ? AND code = ? LIMIT 1",
                (kind.value, code),
            ).fetchone()
        return row is not None

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
        clauses = ["kind = ?"]
        params: list = [kind.value]
        if department_id is not None:
            clauses.append("department_id = ?")
            params.append(department_id)
        if statuses:
            clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(statuses)
        if latest_only:
            clauses.append("is_latest_version = 1")
        if code:
            clauses.append("code = ?")
            params.append(code.upper())
        where = " AND ".join(clauses)

        with connection() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM entities WHERE {where}", params).fetchone()[0]
            rows = conn.execute(
                f"""
                SELECT * FROM entities WHERE {where}
                ORDER BY updated_at DESC, code ASC, version DESC
                LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            ).fetchall()
        return [_row_to_entity(r) for r in rows], total

    def count_by_status(self, kind: EntityKind, department_id: Optional[str] = None) -> Dict[str, int]:
        sql = "SELECT status, COUNT(*) AS n FROM entities WHERE kind = ?"
        params: list = [kind.value]
        if department_id is not None:
            sql += " AND department_id = ?"
            params.append(department_id)
        sql += " GROUP BY status"
        with connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return {r["status"]: r["n"] for r in rows if r["status"] in rules.VALID_STATUSES}

    def families_with_in_flight(self, kind: EntityKind, codes: List[str]) -> Dict[str, str]:
        if not codes:
            return {}
        unique = sorted(set(codes))
        with connection() as conn:
            rows = conn.execute(
                f"""
                SELECT code, id FROM entities
                WHERE kind = ? AND status IN {_IN_FLIGHT_SQL}
                  AND code IN ({', '.join('?' for _ in unique)})
                """,
                [kind.value, *unique],
            ).fetchall()
        return {r["code"]: r["id"] for r in rows}

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    def get_collaborator_ids(self, entity_id: str) -> List[str]:
        with connection() as conn:
            rows = conn.execute(
                "SELECT user_id FROM collaborators WHERE entity_id = ? ORDER BY created_at ASC",
                (entity_id,),
            ).fetchall()
        return [r["user_id"] for r in rows]

    def add_collaborator(self, entity_id: str, user_id: str) -> bool:
        with connection() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO collaborators (entity_id, user_id, created_at) VALUES (?, ?, ?)",
                (entity_id, user_id, now_iso()),
            )
        return cur.rowcount > 0

    def remove_collaborator(self, entity_id: str, user_id: str) -> bool:
        with connection() as conn:
            cur = conn.execute(
                "DELETE FROM collaborators WHERE entity_id = ? AND user_id = ?",
                (entity_id, user_id),
            )
        return cur.rowcount > 0

    def copy_collaborators(self, source_entity_id: str, target_entity_id: str) -> None:
        with connection() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO collaborators (entity_id, user_id, created_at)
                SELECT ?, user_id, ? FROM collaborators WHERE entity_id = ?
                """,
                (target_entity_id, now_iso(), source_entity_id),
            )
