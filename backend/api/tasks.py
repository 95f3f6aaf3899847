"""Owner-scoped task views and the profile."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session, get_settings, require_owner
from backend.config import Settings
from backend.schemas.profile import MessageResponse, ProfileResponse, ProfileUpdate
from backend.schemas.task import TaskListResponse, TaskResponse, TimelineResponse
from backend.services.datetime_service import now_ms
from backend.services.profile_service import (
    compute_stats,
    get_profile,
    profile_view,
    upsert_profile,
)
from backend.services.task_service import build_timeline, list_tasks, task_to_dict

router = APIRouter(prefix="/api/v1", tags=["tasks"])


@router.get("/tasks", response_model=TaskListResponse)
async def get_tasks(
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TaskListResponse:
    tasks = await list_tasks(session, owner)
    return TaskListResponse(tasks=[TaskResponse.model_validate(task_to_dict(t)) for t in tasks])


@router.get("/timeline", response_model=TimelineResponse)
async def get_timeline(
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TimelineResponse:
    """Active tasks grouped by how soon they are due."""
    now = now_ms()
    tasks = await list_tasks(session, owner)
    return TimelineResponse(
        timeline=build_timeline(tasks, now, settings.timezone),
        server_time=now,
    )


@router.get("/profile", response_model=ProfileResponse)
async def read_profile(
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ProfileResponse:
    profile = await get_profile(session, owner)
    tasks = await list_tasks(session, owner)
    return ProfileResponse(
        profile=profile_view(profile),
        stats=compute_stats(tasks, now_ms(), settings.timezone),
    )


@router.put("/profile", response_model=MessageResponse)
async def update_profile(
    body: ProfileUpdate,
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MessageResponse:
    try:
        await upsert_profile(session, owner, body, now_ms())
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return MessageResponse(message="Profile updated")
