"""Post API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session, require_owner
from backend.exceptions import NotFoundError
from backend.schemas.post import (
    PostCreate,
    PostCreateResponse,
    PostListResponse,
    PostResponse,
)
from backend.schemas.profile import MessageResponse
from backend.services.post_service import create_post, delete_post, list_posts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


@router.post("", response_model=PostCreateResponse, status_code=201)
async def create_post_endpoint(
    body: PostCreate,
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PostCreateResponse:
    post = await create_post(
        session,
        owner,
        content=body.content,
        tags=body.tags,
        location=body.location,
        is_public=body.is_public,
    )
    return PostCreateResponse(post=PostResponse.model_validate(post))


@router.get("", response_model=PostListResponse)
async def list_posts_endpoint(
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PostListResponse:
    posts = await list_posts(session, owner)
    return PostListResponse(posts=[PostResponse.model_validate(p) for p in posts])


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post_endpoint(
    post_id: str,
    owner: Annotated[str, Depends(require_owner)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MessageResponse:
    """Soft delete; unknown ids and other owners' posts both give 404."""
    try:
        await delete_post(session, owner, post_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Post not found") from exc
    return MessageResponse(message="Post deleted")
