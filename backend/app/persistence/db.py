"""SQLite connection, transaction scope + schema initialisation."""
from __future__ import annotations
import contextvars
import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

import bcrypt

from app.core import config
from app.domain.common.errors import StoreConflict

logger = logging.getLogger(__name__)

# Connection of the write transaction open in the current thread/task, if any
_active_conn: contextvars.ContextVar[Optional[sqlite3.Connection]] = contextvars.ContextVar(
    "active_conn", default=None
)


def get_connection() -> sqlite3.Connection:
    conn = sqlite3.connect(
        config.DATABASE_PATH,
        timeout=config.DB_BUSY_TIMEOUT_SECONDS,
        check_same_thread=False,
        isolation_level=None,  # autocommit; writes go through transaction()
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


@contextmanager
def connection() -> Iterator[sqlite3.Connection]:
    """Yield the open transaction's connection, or a short-lived autocommit one."""
    conn = _active_conn.get()
    if conn is not None:
        yield conn
        return
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """
    Serialised write scope. BEGIN IMMEDIATE takes the database write lock up front,
    so every read made inside sees the state the writes will be applied to.
    Commits on normal exit, rolls back on any exception. Nested calls join the outer scope.
    Raises StoreConflict when the lock is still held by another writer after the busy timeout.
    """
    outer = _active_conn.get()
    if outer is not None:
        yield outer
        return

    conn = get_connection()
    token = _active_conn.set(conn)
    try:
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.OperationalError as exc:
            if "locked" not in str(exc) and "busy" not in str(exc):
                raise
            logger.warning("Write lock not acquired within %ss: %s", config.DB_BUSY_TIMEOUT_SECONDS, exc)
            raise StoreConflict("Store busy; retry the request.", details={"retryable": True}) from exc
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        conn.commit()
    finally:
        _active_conn.reset(token)
        conn.close()


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def init_db() -> None:
    """Run all migration SQL files against the database."""
    db_dir = os.path.dirname(config.DATABASE_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    migration_files = sorted(f for f in os.listdir(config.MIGRATIONS_DIR) if f.endswith(".sql"))
    conn = get_connection()
    try:
        for name in migration_files:
            with open(os.path.join(config.MIGRATIONS_DIR, name), "r", encoding="utf-8") as f:
                conn.executescript(f.read())
    finally:
        conn.close()
    _seed_default_user()
    logger.info("Database ready at %s", config.DATABASE_PATH)


def _seed_default_user() -> None:
    """Insert the default admin user on an empty users table."""
    with transaction() as conn:
        count = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        if count:
            return
        hashed = bcrypt.hashpw(config.ADMIN_PASSWORD.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
        conn.execute(
            """
            INSERT INTO users (id, username, password_hash, role, department_id, display_name, created_at)
            VALUES (?, ?, ?, 'admin', NULL, 'Administrator', ?)
            """,
            (new_id(), config.ADMIN_USERNAME, hashed, now_iso()),
        )
    logger.info("Seeded default administrator '%s'", config.ADMIN_USERNAME)
