"""Profile schemas."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ProfileUpdate(BaseModel):
    """Profile fields; blank values fall back to the defaults."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: str | None = Field(
        default=None,
        max_length=200,
        validation_alias=AliasChoices("display_name", "displayName"),
    )
    motto: str | None = Field(default=None, max_length=500)
    status: str | None = Field(default=None, max_length=200)


class ProfileView(BaseModel):
    display_name: str
    motto: str
    status: str


class ProfileStats(BaseModel):
    active_tasks: int
    completed_tasks: int
    completed_today: int
    total_tasks: int


class ProfileResponse(BaseModel):
    success: bool = True
    profile: ProfileView
    stats: ProfileStats


class MessageResponse(BaseModel):
    success: bool = True
    message: str
