"""Task sync endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session, require_owner
from backend.schemas.task import SyncRequest, SyncResponse, TaskResponse
from backend.services.sync_service import sync_tasks
from backend.services.task_service import task_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["sync"])


@router.post("/sync", response_model=SyncResponse)
async def sync(
    body: SyncRequest,
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SyncResponse:
    """Push the device's tasks and pull everything changed since ``last_sync``."""
    outcome = await sync_tasks(
        session,
        owner,
        body.tasks,
        body.last_sync,
        profile=body.profile,
    )
    return SyncResponse(
        server_time=outcome.server_time,
        updated_tasks=[TaskResponse.model_validate(task_to_dict(t)) for t in outcome.updated_tasks],
    )
