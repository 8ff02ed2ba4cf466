"""Dependency injection container — wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from app.application.approval_app_service import ApprovalAppService
from app.application.audit_recorder import AuditRecorder
from app.application.collaborator_app_service import CollaboratorAppService
from app.application.stats_app_service import StatsAppService
from app.application.timeline_app_service import TimelineAppService
from app.application.version_app_service import VersionAppService
from app.persistence.repositories.sqlite.sqlite_audit_repository import SqliteAuditRepository
from app.persistence.repositories.sqlite.sqlite_entity_repository import SqliteEntityRepository
from app.persistence.repositories.sqlite.sqlite_user_repository import SqliteUserRepository


@lru_cache(maxsize=1)
def get_entity_repo() -> SqliteEntityRepository:
    return SqliteEntityRepository()


@lru_cache(maxsize=1)
def get_audit_repo() -> SqliteAuditRepository:
    return SqliteAuditRepository()


@lru_cache(maxsize=1)
def get_user_repo() -> SqliteUserRepository:
    return SqliteUserRepository()


@lru_cache(maxsize=1)
def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder(repo=get_audit_repo())


@lru_cache(maxsize=1)
def get_version_app_service() -> VersionAppService:
    return VersionAppService(repo=get_entity_repo(), audit=get_audit_recorder())


@lru_cache(maxsize=1)
def get_approval_app_service() -> ApprovalAppService:
    return ApprovalAppService(repo=get_entity_repo(), audit=get_audit_recorder())


@lru_cache(maxsize=1)
def get_collaborator_app_service() -> CollaboratorAppService:
    return CollaboratorAppService(repo=get_entity_repo(), audit_recorder=get_audit_recorder(), users=get_user_repo())


@lru_cache(maxsize=1)
def get_timeline_app_service() -> TimelineAppService:
    return TimelineAppService(entities=get_entity_repo(), audit=get_audit_repo())


@lru_cache(maxsize=1)
def get_stats_app_service() -> StatsAppService:
    return StatsAppService(repo=get_entity_repo())


ALL_PROVIDERS = (
    get_entity_repo,
    get_audit_repo,
    get_user_repo,
    get_audit_recorder,
    get_version_app_service,
    get_approval_app_service,
    get_collaborator_app_service,
    get_timeline_app_service,
    get_stats_app_service,
)


def reset() -> None:
    """Drop every cached instance (tests point the store at a fresh database)."""
    for provider in ALL_PROVIDERS:
        provider.cache_clear()
