"""Unauthenticated read endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session, get_settings
from backend.config import Settings
from backend.schemas.feed import DashboardResponse, PublicFeedResponse
from backend.services.datetime_service import now_ms
from backend.services.feed_service import build_dashboard, build_public_feed

router = APIRouter(prefix="/api/v1/public", tags=["public"])


@router.get("/feed", response_model=PublicFeedResponse)
async def public_feed(
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PublicFeedResponse:
    """Current status, live sources and recent public posts of the feed owner."""
    return await build_public_feed(session, settings, now_ms())


@router.get("/dashboard", response_model=DashboardResponse)
async def public_dashboard(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DashboardResponse:
    return await build_dashboard(session, now_ms())
