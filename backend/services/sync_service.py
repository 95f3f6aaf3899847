"""Sync protocol handler: one atomic reconciliation per request.

The inbound path never compares timestamps. A pushed task overwrites the
server copy field for field, because the pushing device owns its tasks'
content. The outbound path returns every owner task whose ``updated_at`` is
strictly after the caller's cursor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from backend.services.datetime_service import now_ms
from backend.services.profile_service import upsert_profile
from backend.services.task_service import register_client, tasks_updated_since, upsert_task

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.models.task import RemoteTask
    from backend.schemas.profile import ProfileUpdate
    from backend.schemas.task import TaskPayload

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    """What one sync call produced."""

    server_time: int
    updated_tasks: list[RemoteTask] = field(default_factory=list)
    pushed_count: int = 0


async def sync_tasks(
    session: AsyncSession,
    owner_token: str,
    tasks: Sequence[TaskPayload],
    last_sync: int | None,
    *,
    profile: ProfileUpdate | None = None,
    now: int | None = None,
) -> SyncOutcome:
    """Apply a device's batch and return the delta since ``last_sync``.

    The whole batch, the client registration and the optional profile are
    written in a single transaction: either everything commits or the call
    raises and nothing is visible. A missing or zero cursor means first sync,
    which returns no delta because the device just pushed its full state.
    """
    server_time = now_ms() if now is None else now

    try:
        await register_client(session, owner_token, server_time)
        if profile is not None:
            await upsert_profile(session, owner_token, profile, server_time)
        for task in tasks:
            await upsert_task(session, owner_token, task, server_time)

        updated: list[RemoteTask] = []
        if last_sync:
            updated = await tasks_updated_since(session, owner_token, last_sync)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.error("Sync failed for %d task(s); nothing was committed", len(tasks))
        raise

    logger.info(
        "Sync: pushed=%d returned=%d cursor=%s server_time=%d",
        len(tasks),
        len(updated),
        last_sync,
        server_time,
    )
    return SyncOutcome(server_time=server_time, updated_tasks=updated, pushed_count=len(tasks))
