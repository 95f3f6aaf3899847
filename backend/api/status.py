"""Status publishing and the caller's aggregated status."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session, get_settings, require_owner
from backend.config import Settings
from backend.schemas.status import (
    CurrentStatusResponse,
    StatusPublishRequest,
    StatusPublishResponse,
    StatusSourceResponse,
)
from backend.services.datetime_service import now_ms
from backend.services.status_service import get_current_status, publish_status

router = APIRouter(prefix="/api/v1/status", tags=["status"])


@router.post("", response_model=StatusPublishResponse)
async def publish(
    body: StatusPublishRequest,
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> StatusPublishResponse:
    """Record one observation; it replaces the previous one from the same source."""
    snapshot = await publish_status(
        session,
        owner,
        source=body.source,
        status=body.status,
        observed_at=body.observed_at,
        expires_at=body.expires_at,
        meta=body.meta,
        default_ttl_seconds=settings.status_default_ttl_seconds,
    )
    return StatusPublishResponse(event=StatusSourceResponse.model_validate(snapshot))


@router.get("", response_model=CurrentStatusResponse)
async def current(
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CurrentStatusResponse:
    now = now_ms()
    aggregated = await get_current_status(session, owner, now)
    return CurrentStatusResponse(
        primary=StatusSourceResponse.model_validate(aggregated.primary),
        sources=[StatusSourceResponse.model_validate(s) for s in aggregated.sources],
        server_time=now,
    )
