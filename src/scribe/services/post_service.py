"""Post service — CRUD over posts, scoped to their owner.

Learn: get/update/delete all start with the same ownership guard
(auth.ownership.get_owned), so a caller can only ever see or change
their own rows. Listing filters by owner_id directly.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth.dependencies import CurrentIdentity
from scribe.auth.ownership import get_owned
from scribe.db.models import Post
from scribe.errors import ValidationError

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("title", "body")


def _clean_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Please include a title field")
    return title.strip()


class PostService:
    """Business logic for posts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_posts(
        self, identity: CurrentIdentity, limit: Optional[int] = None
    ) -> list[Post]:
        q = (
            select(Post)
            .where(Post.owner_id == identity.id)
            .order_by(Post.created_at.desc(), Post.id.desc())
        )
        if limit is not None:
            q = q.limit(limit)
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def create_post(
        self, identity: CurrentIdentity, title: str, body: Optional[str] = None
    ) -> Post:
        post = Post(title=_clean_title(title), body=body, owner_id=identity.id)
        self.db.add(post)
        await self.db.commit()
        await self.db.refresh(post)
        logger.info("post.created", post_id=post.id, owner_id=identity.id)
        return post

    async def get_post(self, identity: CurrentIdentity, post_id: int) -> Post:
        return await get_owned(self.db, Post, post_id, identity)

    async def update_post(
        self, identity: CurrentIdentity, post_id: int, changes: dict
    ) -> Post:
        """Apply only the supplied fields. The title can't be cleared."""
        post = await get_owned(self.db, Post, post_id, identity)

        if "title" in changes:
            changes = {**changes, "title": _clean_title(changes["title"])}
        for field in UPDATABLE_FIELDS:
            if field in changes:
                setattr(post, field, changes[field])

        await self.db.commit()
        await self.db.refresh(post)
        logger.info("post.updated", post_id=post.id, fields=sorted(changes))
        return post

    async def delete_post(self, identity: CurrentIdentity, post_id: int) -> None:
        post = await get_owned(self.db, Post, post_id, identity)
        await self.db.delete(post)
        await self.db.commit()
        logger.info("post.deleted", post_id=post_id, owner_id=identity.id)
