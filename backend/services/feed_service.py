"""Public read side: the feed owner's aggregated status and the task dashboard."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from backend.models.post import Post
from backend.models.profile import Profile
from backend.models.status import StatusSource
from backend.models.task import ClientRegistration, RemoteTask
from backend.schemas.feed import (
    DashboardResponse,
    DashboardStats,
    PublicFeedResponse,
    PublicTask,
)
from backend.schemas.post import PostResponse
from backend.schemas.status import StatusSourceResponse
from backend.services.post_service import list_public_posts
from backend.services.profile_service import get_profile, profile_view
from backend.services.status_service import OFFLINE, get_current_status
from backend.services.task_service import list_public_tasks

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

    from backend.config import Settings
    from backend.services.status_service import StatusSnapshot

# (owner column, activity column) pairs consulted by the most-active heuristic.
_ACTIVITY_COLUMNS: tuple[tuple[InstrumentedAttribute[str], InstrumentedAttribute[int]], ...] = (
    (RemoteTask.owner_token, RemoteTask.updated_at),
    (StatusSource.owner_token, StatusSource.observed_at),
    (Post.owner_token, Post.created_at),
    (Profile.owner_token, Profile.updated_at),
    (ClientRegistration.owner_token, ClientRegistration.last_sync_at),
)


async def resolve_most_active_owner(session: AsyncSession) -> str | None:
    """Owner token with the most recent write to any owner-scoped table."""
    best: tuple[int, str] | None = None
    for owner_col, activity_col in _ACTIVITY_COLUMNS:
        stmt = (
            select(owner_col, func.max(activity_col).label("last_activity"))
            .group_by(owner_col)
            .order_by(func.max(activity_col).desc(), owner_col.asc())
            .limit(1)
        )
        row = (await session.execute(stmt)).first()
        if row is None or row[1] is None:
            continue
        candidate = (int(row[1]), str(row[0]))
        if best is None or candidate[0] > best[0]:
            best = candidate
    return best[1] if best else None


async def resolve_feed_owner(session: AsyncSession, settings: Settings) -> str | None:
    """Explicit ``feed_owner_token`` setting, else the most active owner."""
    if settings.feed_owner_token:
        return settings.feed_owner_token
    return await resolve_most_active_owner(session)


def _status_response(snapshot: StatusSnapshot) -> StatusSourceResponse:
    return StatusSourceResponse.model_validate(snapshot)


async def build_public_feed(
    session: AsyncSession, settings: Settings, now: int
) -> PublicFeedResponse:
    """Feed for the resolved owner; an empty deployment yields the offline sentinel."""
    owner = await resolve_feed_owner(session, settings)
    if owner is None:
        return PublicFeedResponse(
            primary_status=_status_response(OFFLINE),
            server_time=now,
        )

    aggregated = await get_current_status(session, owner, now)
    posts = await list_public_posts(session, owner, settings.feed_post_limit)
    profile = await get_profile(session, owner)
    return PublicFeedResponse(
        profile=profile_view(profile),
        primary_status=_status_response(aggregated.primary),
        sources=[_status_response(s) for s in aggregated.sources],
        posts=[PostResponse.model_validate(p) for p in posts],
        server_time=now,
    )


async def build_dashboard(session: AsyncSession, now: int) -> DashboardResponse:
    """Every profile and every public task, with simple counters."""
    profiles = (await session.execute(select(Profile).order_by(Profile.owner_token))).scalars()
    tasks = await list_public_tasks(session)
    active = [t for t in tasks if not t.is_completed]
    overdue = [t for t in active if t.deadline is not None and t.deadline < now]
    return DashboardResponse(
        profiles=[profile_view(p) for p in profiles],
        public_tasks=[
            PublicTask(
                id=t.task_id,
                title=t.title,
                description=t.description,
                deadline=t.deadline,
                priority=t.priority,
                progress=t.progress,
                is_completed=t.is_completed,
                completed_at=t.completed_at,
                tags=t.tags,
            )
            for t in tasks
        ],
        stats=DashboardStats(
            total_public_tasks=len(tasks),
            active_tasks=len(active),
            overdue_count=len(overdue),
        ),
    )
