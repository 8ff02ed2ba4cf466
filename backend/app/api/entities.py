"""Course / Degree CRUD + lifecycle API endpoints."""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict

from app.api.auth import get_current_actor
from app.api.serializers import serialize_entity, serialize_timeline_entry, unwrap
from app.application.approval_app_service import ApprovalAppService
from app.application.timeline_app_service import TimelineAppService
from app.application.version_app_service import VersionAppService
from app.container import get_approval_app_service, get_timeline_app_service, get_version_app_service
from app.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.domain.entity.models import Actor, EntityKind

router = APIRouter(tags=["entities"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class CourseFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = None
    credits: Optional[int] = None
    semester: Optional[int] = None
    degree_code: Optional[str] = None
    prerequisites: Optional[List[str]] = None
    learning_objectives: Optional[str] = None
    course_outcomes: Optional[str] = None
    assessment_methods: Optional[str] = None
    textbooks: Optional[str] = None
    references: Optional[str] = None
    faculty_details: Optional[str] = None
    max_students: Optional[int] = None
    is_elective: Optional[bool] = None


class CourseCreateBody(CourseFields):
    code: str
    name: str
    department_id: Optional[str] = None


class CoursePatchBody(CourseFields):
    name: Optional[str] = None


class DegreeFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = None
    duration_years: Optional[int] = None
    courses_per_semester: Optional[Dict[str, List[str]]] = None
    elective_options: Optional[Dict[str, Any]] = None
    graduation_requirements: Optional[Dict[str, Any]] = None
    enrollment_config: Optional[Dict[str, Any]] = None
    requirements: Optional[str] = None


class DegreeCreateBody(DegreeFields):
    code: str
    name: str
    department_id: Optional[str] = None


class DegreePatchBody(DegreeFields):
    name: Optional[str] = None


class MessageBody(BaseModel):
    message: Optional[str] = None


class RejectBody(BaseModel):
    reason: Optional[str] = None


class WithdrawBody(BaseModel):
    reason: Optional[str] = None


def _create(svc: VersionAppService, kind: EntityKind, body: BaseModel, actor: Actor) -> dict:
    # None means "not provided"; let the payload defaults apply
    data = body.model_dump(exclude={"code", "department_id"}, exclude_none=True)
    return serialize_entity(unwrap(svc.create_entity(kind, actor, body.code, data, body.department_id)))


def _edit(svc: VersionAppService, kind: EntityKind, entity_id: str, body: BaseModel, actor: Actor) -> dict:
    patch = body.model_dump(exclude_unset=True)
    return serialize_entity(unwrap(svc.edit_draft(kind, entity_id, patch, actor)))


# ------------------------------------------------------------------
# Create / edit (typed per kind)
# ------------------------------------------------------------------
@router.post("/course", status_code=status.HTTP_201_CREATED)
def create_course(
    body: CourseCreateBody,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return _create(svc, EntityKind.COURSE, body, actor)


@router.post("/degree", status_code=status.HTTP_201_CREATED)
def create_degree(
    body: DegreeCreateBody,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return _create(svc, EntityKind.DEGREE, body, actor)


@router.patch("/course/{entity_id}")
def edit_course(
    entity_id: str,
    body: CoursePatchBody,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return _edit(svc, EntityKind.COURSE, entity_id, body, actor)


@router.patch("/degree/{entity_id}")
def edit_degree(
    entity_id: str,
    body: DegreePatchBody,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return _edit(svc, EntityKind.DEGREE, entity_id, body, actor)


# ------------------------------------------------------------------
# Read
# ------------------------------------------------------------------
@router.get("/{kind}")
def list_entities(
    kind: EntityKind,
    status_filter: Optional[str] = Query(None, alias="status"),
    latest_only: bool = False,
    code: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    listing = unwrap(svc.list_entities(kind, actor, status_filter, latest_only, code, page, limit))
    return {
        "items": [serialize_entity(e) for e in listing["items"]],
        "pagination": listing["pagination"],
    }


@router.get("/{kind}/{entity_id}")
def get_entity(
    kind: EntityKind,
    entity_id: str,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_entity(unwrap(svc.get_entity(kind, entity_id, actor)))


@router.get("/{kind}/{entity_id}/versions")
def get_versions(
    kind: EntityKind,
    entity_id: str,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return [serialize_entity(e) for e in unwrap(svc.get_versions(kind, entity_id, actor))]


@router.get("/{kind}/{entity_id}/can-edit")
def can_edit(
    kind: EntityKind,
    entity_id: str,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return unwrap(svc.can_edit(kind, entity_id, actor))


@router.get("/{kind}/{entity_id}/timeline")
def get_timeline(
    kind: EntityKind,
    entity_id: str,
    svc: TimelineAppService = Depends(get_timeline_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return [serialize_timeline_entry(t) for t in unwrap(svc.get_timeline(kind, entity_id, actor))]


# ------------------------------------------------------------------
# Versioning
# ------------------------------------------------------------------
@router.post("/{kind}/{entity_id}/create-version", status_code=status.HTTP_201_CREATED)
def create_version(
    kind: EntityKind,
    entity_id: str,
    svc: VersionAppService = Depends(get_version_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_entity(unwrap(svc.create_version(kind, entity_id, actor)))


# ------------------------------------------------------------------
# Review workflow
# ------------------------------------------------------------------
@router.post("/{kind}/{entity_id}/submit")
def submit(
    kind: EntityKind,
    entity_id: str,
    body: Optional[MessageBody] = None,
    svc: ApprovalAppService = Depends(get_approval_app_service),
    actor: Actor = Depends(get_current_actor),
):
    message = body.message if body else None
    return serialize_entity(unwrap(svc.submit(kind, entity_id, actor, message)))


@router.post("/{kind}/{entity_id}/approve")
def approve(
    kind: EntityKind,
    entity_id: str,
    body: Optional[MessageBody] = None,
    svc: ApprovalAppService = Depends(get_approval_app_service),
    actor: Actor = Depends(get_current_actor),
):
    message = body.message if body else None
    return serialize_entity(unwrap(svc.approve(kind, entity_id, actor, message)))


@router.post("/{kind}/{entity_id}/reject")
def reject(
    kind: EntityKind,
    entity_id: str,
    body: RejectBody,
    svc: ApprovalAppService = Depends(get_approval_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_entity(unwrap(svc.reject(kind, entity_id, actor, body.reason)))


@router.post("/{kind}/{entity_id}/withdraw")
def withdraw(
    kind: EntityKind,
    entity_id: str,
    body: Optional[WithdrawBody] = None,
    svc: ApprovalAppService = Depends(get_approval_app_service),
    actor: Actor = Depends(get_current_actor),
):
    reason = body.reason if body else None
    return serialize_entity(unwrap(svc.withdraw(kind, entity_id, actor, reason)))


@router.post("/{kind}/{entity_id}/publish")
def publish(
    kind: EntityKind,
    entity_id: str,
    svc: ApprovalAppService = Depends(get_approval_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_entity(unwrap(svc.publish(kind, entity_id, actor)))


@router.delete("/{kind}/{entity_id}")
def delete_entity(
    kind: EntityKind,
    entity_id: str,
    svc: ApprovalAppService = Depends(get_approval_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return unwrap(svc.delete(kind, entity_id, actor))
