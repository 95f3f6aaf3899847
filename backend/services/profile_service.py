"""Profile service: per-owner display info and task statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from backend.models.profile import (
    DEFAULT_DISPLAY_NAME,
    DEFAULT_MOTTO,
    DEFAULT_PROFILE_STATUS,
    Profile,
)
from backend.schemas.profile import ProfileStats, ProfileView
from backend.services.datetime_service import start_of_day_ms
from backend.services.task_service import count_completed_since

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.models.task import RemoteTask
    from backend.schemas.profile import ProfileUpdate


def _or_default(value: str | None, default: str) -> str:
    if value is None or not value.strip():
        return default
    return value.strip()


def default_profile() -> ProfileView:
    return ProfileView(
        display_name=DEFAULT_DISPLAY_NAME,
        motto=DEFAULT_MOTTO,
        status=DEFAULT_PROFILE_STATUS,
    )


def profile_view(profile: Profile | None) -> ProfileView:
    if profile is None:
        return default_profile()
    return ProfileView(
        display_name=profile.display_name, motto=profile.motto, status=profile.status
    )


async def get_profile(session: AsyncSession, owner_token: str) -> Profile | None:
    return await session.get(Profile, owner_token, populate_existing=True)


async def upsert_profile(
    session: AsyncSession, owner_token: str, update: ProfileUpdate, now: int
) -> None:
    """Replace the owner's profile; blank fields reset to defaults.

    Does not commit: callers fold this into their own transaction.
    """
    values = {
        "owner_token": owner_token,
        "display_name": _or_default(update.display_name, DEFAULT_DISPLAY_NAME),
        "motto": _or_default(update.motto, DEFAULT_MOTTO),
        "status": _or_default(update.status, DEFAULT_PROFILE_STATUS),
        "updated_at": now,
    }
    stmt = sqlite_insert(Profile).values(values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Profile.owner_token],
        set_={
            "display_name": stmt.excluded.display_name,
            "motto": stmt.excluded.motto,
            "status": stmt.excluded.status,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await session.execute(stmt)


def compute_stats(tasks: Sequence[RemoteTask], now: int, tz: str = "UTC") -> ProfileStats:
    """Task counters shown next to the profile."""
    completed = sum(1 for t in tasks if t.is_completed)
    return ProfileStats(
        active_tasks=len(tasks) - completed,
        completed_tasks=completed,
        completed_today=count_completed_since(tasks, start_of_day_ms(now, tz)),
        total_tasks=len(tasks),
    )
