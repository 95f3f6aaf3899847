"""Post service: owner-scoped create, list, and soft delete."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select

from backend.exceptions import NotFoundError
from backend.models.post import Post
from backend.services.datetime_service import now_ms

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def create_post(
    session: AsyncSession,
    owner_token: str,
    *,
    content: str,
    tags: str | None = None,
    location: str | None = None,
    is_public: bool = True,
    now: int | None = None,
) -> Post:
    """Store a new post and return it."""
    text = content.strip()
    if not text:
        raise ValueError("content must not be empty")
    post = Post(
        id=uuid.uuid4().hex,
        owner_token=owner_token,
        content=text,
        tags=tags,
        location=location,
        is_public=is_public,
        created_at=now_ms() if now is None else now,
        deleted_at=None,
    )
    session.add(post)
    await session.commit()
    logger.info("Post %s created (public=%s)", post.id, is_public)
    return post


async def list_posts(session: AsyncSession, owner_token: str) -> list[Post]:
    """The owner's posts that are not soft-deleted, newest first."""
    stmt = (
        select(Post)
        .where(Post.owner_token == owner_token, Post.deleted_at.is_(None))
        .order_by(Post.created_at.desc(), Post.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_public_posts(session: AsyncSession, owner_token: str, limit: int) -> list[Post]:
    """Most recent public, non-deleted posts of one owner."""
    stmt = (
        select(Post)
        .where(
            Post.owner_token == owner_token,
            Post.deleted_at.is_(None),
            Post.is_public.is_(True),
        )
        .order_by(Post.created_at.desc(), Post.id.asc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_post(
    session: AsyncSession, owner_token: str, post_id: str, now: int | None = None
) -> None:
    """Soft delete a post.

    Raises :class:`NotFoundError` when the id is unknown under this owner or
    already deleted; another owner's post is indistinguishable from a missing one.
    """
    stmt = select(Post).where(
        Post.id == post_id,
        Post.owner_token == owner_token,
        Post.deleted_at.is_(None),
    )
    result = await session.execute(stmt)
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError(f"Post not found: {post_id}")
    post.deleted_at = now_ms() if now is None else now
    await session.commit()
    logger.info("Post %s soft-deleted", post_id)
