"""Health check + dashboard statistics."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.auth import get_current_actor
from app.api.serializers import unwrap
from app.application.stats_app_service import StatsAppService
from app.container import get_stats_app_service
from app.domain.entity.models import Actor

router = APIRouter(tags=["stats"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/stats")
def get_stats(
    svc: StatsAppService = Depends(get_stats_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return unwrap(svc.get_stats(actor))
