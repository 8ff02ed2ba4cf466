"""Collaborator endpoints: co-authors of a single version."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.api.auth import get_current_actor
from app.api.serializers import unwrap
from app.application.collaborator_app_service import CollaboratorAppService
from app.container import get_collaborator_app_service
from app.domain.entity.models import Actor, EntityKind

router = APIRouter(tags=["collaborators"])


class CollaboratorBody(BaseModel):
    user_id: str


@router.get("/{kind}/{entity_id}/collaborators")
def list_collaborators(
    kind: EntityKind,
    entity_id: str,
    svc: CollaboratorAppService = Depends(get_collaborator_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return unwrap(svc.list_collaborators(kind, entity_id, actor))


@router.post("/{kind}/{entity_id}/collaborators", status_code=status.HTTP_201_CREATED)
def add_collaborator(
    kind: EntityKind,
    entity_id: str,
    body: CollaboratorBody,
    svc: CollaboratorAppService = Depends(get_collaborator_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return unwrap(svc.add_collaborator(kind, entity_id, body.user_id, actor))


@router.delete("/{kind}/{entity_id}/collaborators/{user_id}")
def remove_collaborator(
    kind: EntityKind,
    entity_id: str,
    user_id: str,
    svc: CollaboratorAppService = Depends(get_collaborator_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return unwrap(svc.remove_collaborator(kind, entity_id, user_id, actor))
