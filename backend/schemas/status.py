"""Status publish and aggregation schemas."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from backend.schemas.common import Timestamp


class StatusPublishRequest(BaseModel):
    """One observation from one named source."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(min_length=1, max_length=64)
    status: str = Field(min_length=1, max_length=500)
    observed_at: Timestamp | None = Field(
        default=None, validation_alias=AliasChoices("observed_at", "observedAt")
    )
    expires_at: Timestamp | None = Field(
        default=None, validation_alias=AliasChoices("expires_at", "expiresAt")
    )
    meta: dict[str, Any] | None = None

    @field_validator("source", mode="before")
    @classmethod
    def normalize_source(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("status", mode="before")
    @classmethod
    def strip_status(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class StatusSourceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source: str
    status: str
    observed_at: int | None = None
    expires_at: int | None = None
    meta: dict[str, Any] | None = None
    offline: bool = False


class StatusPublishResponse(BaseModel):
    success: bool = True
    event: StatusSourceResponse


class CurrentStatusResponse(BaseModel):
    success: bool = True
    primary: StatusSourceResponse
    sources: list[StatusSourceResponse] = Field(default_factory=list)
    server_time: int
