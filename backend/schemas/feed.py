"""Public (unauthenticated) read schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from backend.schemas.post import PostResponse
from backend.schemas.profile import ProfileView
from backend.schemas.status import StatusSourceResponse


class PublicFeedResponse(BaseModel):
    """Aggregated status, live sources and recent public posts of the feed owner."""

    success: bool = True
    profile: ProfileView | None = None
    primary_status: StatusSourceResponse
    sources: list[StatusSourceResponse] = Field(default_factory=list)
    posts: list[PostResponse] = Field(default_factory=list)
    server_time: int


class PublicTask(BaseModel):
    id: str
    title: str
    description: str | None = None
    deadline: int | None = None
    priority: int
    progress: float
    is_completed: bool
    completed_at: int | None = None
    tags: str | None = None


class DashboardStats(BaseModel):
    total_public_tasks: int
    active_tasks: int
    overdue_count: int


class DashboardResponse(BaseModel):
    success: bool = True
    profiles: list[ProfileView]
    public_tasks: list[PublicTask]
    stats: DashboardStats
