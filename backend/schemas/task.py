"""Task and sync protocol schemas."""

from __future__ import annotations

from enum import IntEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.schemas.common import Timestamp
from backend.schemas.profile import ProfileUpdate


class Priority(IntEnum):
    """Task priority as stored and exchanged."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3


class TaskPayload(BaseModel):
    """Full device view of one task, as pushed in a sync batch.

    Every field is sent on every push; omitted optional fields overwrite the
    server copy with null.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1, max_length=128)
    title: str = Field(min_length=1, max_length=1000)
    description: str | None = Field(default=None, max_length=20_000)
    created_at: Timestamp | None = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    start_time: Timestamp | None = Field(
        default=None, validation_alias=AliasChoices("start_time", "startTime")
    )
    deadline: Timestamp | None = None
    is_completed: bool = Field(
        default=False, validation_alias=AliasChoices("is_completed", "isCompleted")
    )
    completed_at: Timestamp | None = Field(
        default=None, validation_alias=AliasChoices("completed_at", "completedAt")
    )
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    priority: Priority = Priority.LOW
    is_public: bool = Field(default=False, validation_alias=AliasChoices("is_public", "isPublic"))
    tags: str | None = Field(default=None, max_length=2000)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def clear_completed_at(self) -> TaskPayload:
        if not self.is_completed:
            self.completed_at = None
        return self


class TaskResponse(BaseModel):
    """Server copy of a task."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    created_at: int
    start_time: int | None = None
    deadline: int | None = None
    is_completed: bool = False
    completed_at: int | None = None
    progress: float = 0.0
    priority: int = Priority.LOW
    is_public: bool = False
    tags: str | None = None
    updated_at: int


class SyncRequest(BaseModel):
    """One reconciliation round trip from a device."""

    tasks: list[TaskPayload] = Field(default_factory=list, max_length=5000)
    last_sync: Timestamp | None = None
    profile: ProfileUpdate | None = None


class SyncResponse(BaseModel):
    """Result of a sync: new cursor plus everything changed since the old one."""

    success: bool = True
    message: str = "Sync completed"
    server_time: int
    updated_tasks: list[TaskResponse] = Field(default_factory=list)


class TaskListResponse(BaseModel):
    success: bool = True
    tasks: list[TaskResponse]


class TimelineEntry(BaseModel):
    id: str
    title: str
    deadline: int | None = None
    start_time: int | None = None
    priority: int
    progress: float
    tags: str | None = None


class Timeline(BaseModel):
    overdue: list[TimelineEntry] = Field(default_factory=list)
    today: list[TimelineEntry] = Field(default_factory=list)
    tomorrow: list[TimelineEntry] = Field(default_factory=list)
    this_week: list[TimelineEntry] = Field(default_factory=list)
    later: list[TimelineEntry] = Field(default_factory=list)


class TimelineResponse(BaseModel):
    success: bool = True
    timeline: Timeline
    server_time: int
