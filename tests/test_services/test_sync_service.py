"""Tests for the sync protocol handler against a real SQLite database."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
from sqlalchemy import select

from backend.models.task import ClientRegistration, RemoteTask
from backend.schemas.profile import ProfileUpdate
from backend.schemas.task import TaskPayload
from backend.services.profile_service import get_profile
from backend.services.sync_service import sync_tasks
from backend.services.task_service import list_tasks

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

T0 = 1_760_000_000_000
OWNER = "owner-a"


def _payload(task_id: str, title: str = "Task", **fields: object) -> TaskPayload:
    return TaskPayload.model_validate({"id": task_id, "title": title, **fields})


class TestSyncTasks:
    @pytest.mark.asyncio
    async def test_first_sync_inserts_and_returns_empty_delta(
        self, db_session: AsyncSession
    ) -> None:
        outcome = await sync_tasks(db_session, OWNER, [_payload("t1")], None, now=T0)

        assert outcome.server_time == T0
        assert outcome.updated_tasks == []
        assert outcome.pushed_count == 1
        (task,) = await list_tasks(db_session, OWNER)
        assert task.updated_at == T0
        assert task.created_at == T0

    @pytest.mark.asyncio
    async def test_zero_cursor_counts_as_first_sync(self, db_session: AsyncSession) -> None:
        outcome = await sync_tasks(db_session, OWNER, [_payload("t1")], 0, now=T0)
        assert outcome.updated_tasks == []

    @pytest.mark.parametrize(
        ("cursor", "expected"),
        [
            (T0 - 1, {"a", "b", "c"}),
            (T0, {"b", "c"}),
            (T0 + 1000, {"c"}),
            (T0 + 2000, set()),
        ],
    )
    @pytest.mark.asyncio
    async def test_delta_is_strictly_after_cursor(
        self, db_session: AsyncSession, cursor: int, expected: set[str]
    ) -> None:
        await sync_tasks(db_session, OWNER, [_payload("a")], None, now=T0)
        await sync_tasks(db_session, OWNER, [_payload("b")], None, now=T0 + 1000)
        await sync_tasks(db_session, OWNER, [_payload("c")], None, now=T0 + 2000)

        outcome = await sync_tasks(db_session, OWNER, [], cursor, now=T0 + 3000)
        assert {t.task_id for t in outcome.updated_tasks} == expected

    @pytest.mark.asyncio
    async def test_updated_at_never_moves_backwards(self, db_session: AsyncSession) -> None:
        await sync_tasks(db_session, OWNER, [_payload("t1")], None, now=T0 + 5000)
        # Server clock stepped back.
        await sync_tasks(db_session, OWNER, [_payload("t1", "New title")], None, now=T0)

        (task,) = await list_tasks(db_session, OWNER)
        assert task.title == "New title"
        assert task.updated_at == T0 + 5000

    @pytest.mark.asyncio
    async def test_overwrite_is_unconditional(self, db_session: AsyncSession) -> None:
        await sync_tasks(
            db_session,
            OWNER,
            [_payload("t1", "Original", description="keep?", tags="x", priority=3)],
            None,
            now=T0,
        )
        await sync_tasks(db_session, OWNER, [_payload("t1", "Stale device")], None, now=T0 + 1)

        (task,) = await list_tasks(db_session, OWNER)
        assert task.title == "Stale device"
        assert task.description is None
        assert task.tags is None
        assert task.priority == 1

    @pytest.mark.asyncio
    async def test_client_registration_tracks_first_and_last_sync(
        self, db_session: AsyncSession
    ) -> None:
        await sync_tasks(db_session, OWNER, [], None, now=T0)
        await sync_tasks(db_session, OWNER, [], T0, now=T0 + 7000)

        reg = (
            await db_session.execute(
                select(ClientRegistration)
                .where(ClientRegistration.owner_token == OWNER)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        assert reg.created_at == T0
        assert reg.last_sync_at == T0 + 7000

    @pytest.mark.asyncio
    async def test_profile_is_upserted_with_batch(self, db_session: AsyncSession) -> None:
        await sync_tasks(
            db_session,
            OWNER,
            [],
            None,
            profile=ProfileUpdate(display_name="Ada", motto="  ", status=None),
            now=T0,
        )
        profile = await get_profile(db_session, OWNER)
        assert profile is not None
        assert profile.display_name == "Ada"
        assert profile.motto == "Push to Start, Pop to Finish"
        assert profile.status == "Available"

    @pytest.mark.asyncio
    async def test_failure_mid_batch_rolls_back_everything(self, db_session: AsyncSession) -> None:
        from backend.services import sync_service

        real_upsert = sync_service.upsert_task
        calls = 0

        async def flaky_upsert(*args: object, **kwargs: object) -> None:
            nonlocal calls
            calls += 1
            if calls == 2:
                raise RuntimeError("disk full")
            await real_upsert(*args, **kwargs)  # type: ignore[arg-type]

        with (
            patch.object(sync_service, "upsert_task", flaky_upsert),
            pytest.raises(RuntimeError, match="disk full"),
        ):
            await sync_tasks(db_session, OWNER, [_payload("a"), _payload("b")], None, now=T0)

        rows = (await db_session.execute(select(RemoteTask))).scalars().all()
        assert rows == []
        regs = (await db_session.execute(select(ClientRegistration))).scalars().all()
        assert regs == []

    @pytest.mark.asyncio
    async def test_owners_do_not_see_each_others_tasks(self, db_session: AsyncSession) -> None:
        await sync_tasks(db_session, OWNER, [_payload("t1")], None, now=T0)
        await sync_tasks(db_session, "owner-b", [_payload("t1", "Other")], None, now=T0 + 1)

        outcome = await sync_tasks(db_session, OWNER, [], T0 - 1, now=T0 + 2)
        assert [t.title for t in outcome.updated_tasks] == ["Task"]
