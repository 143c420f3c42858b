"""Post API routes.

Learn: Every route here needs a CurrentIdentity (the router is mounted
with the auth dependency, and each handler also asks for the identity so
it can pass it to the service). The service applies the ownership guard.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth.dependencies import CurrentIdentity, get_current_user
from scribe.db.engine import get_db
from scribe.schemas.post import PostCreate, PostRead, PostUpdate
from scribe.services.post_service import PostService

router = APIRouter(prefix="/posts")

# Largest value the INTEGER id column holds.
MAX_ID = 2**31 - 1


def _svc(db: AsyncSession = Depends(get_db)) -> PostService:
    return PostService(db)


@router.get("", response_model=list[PostRead])
async def list_posts(
    limit: Optional[int] = Query(None, ge=0, le=MAX_ID, description="Max posts to return (all if omitted)"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    return await svc.list_posts(identity, limit=limit)


@router.post("", response_model=PostRead, status_code=201)
async def create_post(
    body: PostCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    return await svc.create_post(identity, title=body.title, body=body.body)


@router.get("/{post_id}", response_model=PostRead)
async def get_post(
    post_id: int = Path(..., ge=1, le=MAX_ID),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    return await svc.get_post(identity, post_id)


@router.patch("/{post_id}", response_model=PostRead)
async def update_post(
    body: PostUpdate,
    post_id: int = Path(..., ge=1, le=MAX_ID),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    return await svc.update_post(identity, post_id, body.model_dump(exclude_unset=True))


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int = Path(..., ge=1, le=MAX_ID),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    await svc.delete_post(identity, post_id)
    return Response(status_code=204)
