"""Remote task store: owner-scoped upserts, delta queries, timeline buckets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from backend.models.task import ClientRegistration, RemoteTask
from backend.schemas.task import Timeline, TimelineEntry
from backend.services.datetime_service import add_days_ms, start_of_day_ms

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.schemas.task import TaskPayload

# Columns replaced wholesale on every inbound push.
_OVERWRITTEN_COLUMNS = (
    "title",
    "description",
    "created_at",
    "start_time",
    "deadline",
    "is_completed",
    "completed_at",
    "progress",
    "priority",
    "is_public",
    "tags",
)


def _task_row(owner_token: str, task: TaskPayload, now: int) -> dict[str, Any]:
    return {
        "owner_token": owner_token,
        "task_id": task.id,
        "title": task.title,
        "description": task.description,
        "created_at": task.created_at if task.created_at is not None else now,
        "start_time": task.start_time,
        "deadline": task.deadline,
        "is_completed": task.is_completed,
        "completed_at": task.completed_at,
        "progress": task.progress,
        "priority": int(task.priority),
        "is_public": task.is_public,
        "tags": task.tags,
        "updated_at": now,
    }


async def upsert_task(
    session: AsyncSession, owner_token: str, task: TaskPayload, now: int
) -> None:
    """Insert or unconditionally overwrite one task.

    ``updated_at`` becomes ``max(existing, now)`` so it never moves backwards
    even if the server clock does.
    """
    stmt = sqlite_insert(RemoteTask).values(_task_row(owner_token, task, now))
    set_: dict[str, Any] = {col: stmt.excluded[col] for col in _OVERWRITTEN_COLUMNS}
    set_["updated_at"] = func.max(RemoteTask.updated_at, stmt.excluded.updated_at)
    stmt = stmt.on_conflict_do_update(
        index_elements=[RemoteTask.owner_token, RemoteTask.task_id],
        set_=set_,
    )
    await session.execute(stmt)


async def register_client(session: AsyncSession, owner_token: str, now: int) -> None:
    """Record first-seen and last-sync times for a client token."""
    stmt = sqlite_insert(ClientRegistration).values(
        owner_token=owner_token, created_at=now, last_sync_at=now
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ClientRegistration.owner_token],
        set_={"last_sync_at": stmt.excluded.last_sync_at},
    )
    await session.execute(stmt)


async def tasks_updated_since(
    session: AsyncSession, owner_token: str, cursor: int
) -> list[RemoteTask]:
    """All of the owner's tasks with ``updated_at`` strictly after ``cursor``."""
    stmt = (
        select(RemoteTask)
        .where(RemoteTask.owner_token == owner_token, RemoteTask.updated_at > cursor)
        .order_by(RemoteTask.updated_at.asc(), RemoteTask.task_id.asc())
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_tasks(session: AsyncSession, owner_token: str) -> list[RemoteTask]:
    """All tasks for an owner, newest first."""
    stmt = (
        select(RemoteTask)
        .where(RemoteTask.owner_token == owner_token)
        .order_by(RemoteTask.created_at.desc(), RemoteTask.task_id.asc())
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_public_tasks(session: AsyncSession) -> list[RemoteTask]:
    """Public tasks across every owner (dashboard view)."""
    stmt = (
        select(RemoteTask)
        .where(RemoteTask.is_public.is_(True))
        .order_by(RemoteTask.created_at.desc(), RemoteTask.task_id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


def task_to_dict(task: RemoteTask) -> dict[str, Any]:
    """Wire representation of a stored task (``task_id`` exposed as ``id``)."""
    return {
        "id": task.task_id,
        "title": task.title,
        "description": task.description,
        "created_at": task.created_at,
        "start_time": task.start_time,
        "deadline": task.deadline,
        "is_completed": task.is_completed,
        "completed_at": task.completed_at,
        "progress": task.progress,
        "priority": task.priority,
        "is_public": task.is_public,
        "tags": task.tags,
        "updated_at": task.updated_at,
    }


def build_timeline(tasks: Sequence[RemoteTask], now: int, tz: str = "UTC") -> Timeline:
    """Bucket active tasks by their deadline (or start time) relative to ``now``.

    Completed tasks are skipped. A task with neither a deadline nor a start
    time lands in ``later``.
    """
    today_start = start_of_day_ms(now, tz)
    today_end = add_days_ms(today_start, 1, tz)
    tomorrow_end = add_days_ms(today_start, 2, tz)
    week_end = add_days_ms(today_start, 7, tz)

    timeline = Timeline()
    for task in tasks:
        if task.is_completed:
            continue
        entry = TimelineEntry(
            id=task.task_id,
            title=task.title,
            deadline=task.deadline,
            start_time=task.start_time,
            priority=task.priority,
            progress=task.progress,
            tags=task.tags,
        )
        target = task.deadline if task.deadline is not None else task.start_time
        if target is None:
            timeline.later.append(entry)
        elif target < now:
            timeline.overdue.append(entry)
        elif target < today_end:
            timeline.today.append(entry)
        elif target < tomorrow_end:
            timeline.tomorrow.append(entry)
        elif target < week_end:
            timeline.this_week.append(entry)
        else:
            timeline.later.append(entry)
    return timeline


def count_completed_since(tasks: Sequence[RemoteTask], since: int) -> int:
    return sum(
        1
        for t in tasks
        if t.is_completed and t.completed_at is not None and t.completed_at >= since
    )
