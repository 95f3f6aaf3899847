"""Post schemas."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class PostCreate(BaseModel):
    """Request to publish a short post."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(min_length=1, max_length=5000)
    tags: str | None = Field(default=None, max_length=1000)
    location: str | None = Field(default=None, max_length=500)
    is_public: bool = Field(default=True, validation_alias=AliasChoices("is_public", "isPublic"))

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    content: str
    tags: str | None = None
    location: str | None = None
    is_public: bool
    created_at: int


class PostCreateResponse(BaseModel):
    success: bool = True
    post: PostResponse


class PostListResponse(BaseModel):
    success: bool = True
    posts: list[PostResponse]
